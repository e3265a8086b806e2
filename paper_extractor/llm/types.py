"""Provider capability shared by every summarization backend."""

from dataclasses import dataclass
from typing import Callable, Optional, Protocol


@dataclass
class SummarizeParams:
    """Inputs to one summarize() call.

    Chat providers use system_prompt and user_content. Document-grounded
    providers use pdf_url and treat system_prompt as the question to ask.
    """

    system_prompt: str
    user_content: str
    pdf_url: Optional[str] = None
    arxiv_id: Optional[str] = None
    log: Optional[Callable[[str], None]] = None


class LlmProvider(Protocol):
    """Summarize given prompt/content/document location; raise ProviderError on failure."""

    name: str
    model: str
    uses_document: bool

    async def summarize(self, params: SummarizeParams) -> str: ...
