"""arXiv paper extraction for a local Markdown vault: title, files, AI summary."""

from .orchestrator import Orchestrator, RunOutcome

__all__ = ["Orchestrator", "RunOutcome"]
