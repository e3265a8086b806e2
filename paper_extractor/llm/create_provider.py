"""
Resolve the configured summarization provider from the env file.

The outcome is either ProviderEnabled or ProviderDisabled. A disabled
provider is the user opting out (or not having opted in) and is not an
error. Missing mandatory fields for a selected provider raise ConfigError,
always before any network traffic.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Union

from ..errors import ConfigError
from .env import ProviderKind, coerce_provider_kind, read_env_file
from .mcp_client import DEFAULT_MCP_COMMAND, PAGEINDEX_MCP_URL, McpClient, create_pageindex_client
from .providers.gemini import GeminiProvider
from .providers.openai_chat import OpenAiChatProvider
from .providers.pageindex import DEFAULT_POLL_INTERVAL_SEC, DEFAULT_POLL_TIMEOUT_SEC, PageIndexProvider
from .providers.pageindex_api import (
    DEFAULT_UPLOAD_RETRIES,
    DEFAULT_UPLOAD_RETRY_DELAY_SEC,
    PAGEINDEX_API_BASE,
    HttpDocumentTransport,
)
from .providers.pageindex_mcp import McpDocumentTransport
from .types import LlmProvider

logger = logging.getLogger(__name__)


@dataclass
class ProviderEnabled:
    provider: LlmProvider
    provider_name: str
    model: str


@dataclass
class ProviderDisabled:
    reason: str


ProviderResult = Union[ProviderEnabled, ProviderDisabled]


def _parse_positive(env: dict[str, str], key: str, default: float, cast: Callable = float):
    raw = env.get(key, "")
    if not raw:
        return default
    try:
        value = cast(raw)
    except ValueError:
        raise ConfigError("PAGEINDEX_TUNING_INVALID", f"{key} is not a number") from None
    if value <= 0:
        raise ConfigError("PAGEINDEX_TUNING_INVALID", f"{key} must be positive")
    return value


def _build_openai(env: dict[str, str], session) -> ProviderResult:
    model = env.get("OPENAI_MODEL", "")
    if not model:
        return ProviderDisabled("OPENAI_MODEL_EMPTY_SKIP")
    api_key = env.get("OPENAI_API_KEY", "")
    if not api_key:
        raise ConfigError("OPENAI_API_KEY_MISSING", "OPENAI_API_KEY is required when LLM_PROVIDER=openai")
    provider = OpenAiChatProvider(api_key, model, base_url=env.get("OPENAI_BASE_URL") or None)
    return ProviderEnabled(provider, "openai", model)


def _build_gemini(env: dict[str, str], session) -> ProviderResult:
    api_key = env.get("GEMINI_API_KEY", "")
    if not api_key:
        raise ConfigError("GEMINI_API_KEY_MISSING", "GEMINI_API_KEY is required when LLM_PROVIDER=gemini")
    model = env.get("GEMINI_MODEL", "")
    if not model:
        raise ConfigError("GEMINI_MODEL_MISSING", "GEMINI_MODEL is required when LLM_PROVIDER=gemini")
    return ProviderEnabled(GeminiProvider(api_key, model, session=session), "gemini", model)


def _build_pageindex(env: dict[str, str], session) -> ProviderResult:
    transport_kind = (env.get("PAGEINDEX_TRANSPORT") or "mcp").lower()
    if transport_kind not in ("mcp", "api"):
        raise ConfigError("PAGEINDEX_TRANSPORT_INVALID", f"unknown PAGEINDEX_TRANSPORT: {transport_kind}")

    poll_interval = _parse_positive(env, "PAGEINDEX_POLL_INTERVAL_SEC", DEFAULT_POLL_INTERVAL_SEC)
    poll_timeout = _parse_positive(env, "PAGEINDEX_POLL_TIMEOUT_SEC", DEFAULT_POLL_TIMEOUT_SEC)

    if transport_kind == "api":
        api_key = env.get("PAGEINDEX_API_KEY", "")
        if not api_key:
            raise ConfigError("PAGEINDEX_API_KEY_MISSING", "PAGEINDEX_API_KEY is required when PAGEINDEX_TRANSPORT=api")
        transport = HttpDocumentTransport(
            api_key,
            base_url=env.get("PAGEINDEX_API_BASE") or PAGEINDEX_API_BASE,
            session=session,
            upload_retries=_parse_positive(env, "PAGEINDEX_UPLOAD_RETRIES", DEFAULT_UPLOAD_RETRIES, int),
            retry_delay=_parse_positive(env, "PAGEINDEX_UPLOAD_RETRY_DELAY_SEC", DEFAULT_UPLOAD_RETRY_DELAY_SEC),
        )
    else:
        command = env.get("PAGEINDEX_MCP_COMMAND") or DEFAULT_MCP_COMMAND
        if not McpClient.is_available(command):
            logger.info("MCP launcher %r not found on PATH; PageIndex disabled", command)
            return ProviderDisabled("PAGEINDEX_MCP_UNAVAILABLE")
        client = create_pageindex_client(command, env.get("PAGEINDEX_MCP_URL") or PAGEINDEX_MCP_URL)
        transport = McpDocumentTransport(client)

    provider = PageIndexProvider(transport, poll_interval=poll_interval, poll_timeout=poll_timeout)
    return ProviderEnabled(provider, "pageindex", transport.name)


_BUILDERS = {
    ProviderKind.OPENAI: _build_openai,
    ProviderKind.GEMINI: _build_gemini,
    ProviderKind.PAGEINDEX: _build_pageindex,
}


def create_provider(env_path: str, session=None) -> ProviderResult:
    """Resolve the provider for one run.

    Args:
        env_path: Path to the env file; blank disables summarization
        session: Optional requests.Session shared by HTTP-based providers

    Raises:
        ConfigError: If the env file is unreadable or a selected provider is misconfigured
    """
    env_path = (env_path or "").strip()
    if not env_path:
        return ProviderDisabled("ENV_PATH_MISSING")

    env = read_env_file(env_path)

    raw_kind = env.get("LLM_PROVIDER", "")
    if not raw_kind:
        return ProviderDisabled("LLM_PROVIDER_MISSING")

    kind = coerce_provider_kind(raw_kind)
    if kind is None:
        return ProviderDisabled("LLM_PROVIDER_INVALID")

    return _BUILDERS[kind](env, session)
