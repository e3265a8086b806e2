"""Summarization providers and the env-file resolver that picks one."""

from .create_provider import ProviderDisabled, ProviderEnabled, create_provider
from .types import LlmProvider, SummarizeParams

__all__ = ["LlmProvider", "ProviderDisabled", "ProviderEnabled", "SummarizeParams", "create_provider"]
