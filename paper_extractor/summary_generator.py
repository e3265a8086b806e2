"""
Summary generation: ask the configured provider for a summary and upsert it into the note.

Chat providers get the main text of the saved arXiv HTML; document-grounded
providers get the PDF URL and fetch the paper themselves.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Callable

import trafilatura

from common.display import notice
from common.fetcher_utils import truncate_content
from common.url_utils import get_pdf_url
from .audit_log import append_line, log_block
from .errors import SummaryError
from .llm.create_provider import ProviderDisabled, create_provider
from .llm.types import SummarizeParams
from .note import upsert_summary_block
from .paper_fetcher import attachment_folder
from .settings import Settings
from .vault import Vault, join_path, normalize_path

logger = logging.getLogger(__name__)

PAPER_MAX_CHARS = 64_000
WAIT_NOTICE_INTERVAL_SEC = 3.0
USER_CONTENT_PREFIX = "You will be given text extracted from an arXiv paper. Summarize it as Markdown.\n\n[PAPER]\n"


@dataclass
class SummaryOutcome:
    generated: bool
    skip_reason: str = ""
    summary_chars: int = 0


@asynccontextmanager
async def waiting_notices(notify: Callable[..., None], interval: float = WAIT_NOTICE_INTERVAL_SEC) -> AsyncIterator[None]:
    """Emit "still waiting" notices every interval until the block exits.

    The background task is cancelled on every exit path. Notification
    failures are swallowed here and never reach the awaited operation.
    """
    async def _tick() -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                notify("AI response waiting...")
            except Exception:
                logger.debug("Waiting notice failed", exc_info=True)

    task = asyncio.create_task(_tick())
    try:
        yield
    finally:
        task.cancel()
        # gather() still propagates a cancellation of the caller itself.
        await asyncio.gather(task, return_exceptions=True)


def extract_paper_text(html: str) -> str:
    """Main text of an arXiv HTML page, falling back to the raw HTML."""
    text = trafilatura.extract(html) or ""
    if not text.strip():
        text = html
    text, was_truncated = truncate_content(text.strip(), PAPER_MAX_CHARS)
    if was_truncated:
        logger.info("Paper text truncated to %d chars", PAPER_MAX_CHARS)
    return text


def read_system_prompt(vault: Vault, prompt_path: str) -> str:
    """
    Raises:
        SummaryError: PROMPT_PATH_MISSING, PROMPT_PATH_INVALID or PROMPT_READ_FAILED
    """
    if not prompt_path:
        raise SummaryError(
            "PROMPT_PATH_MISSING",
            "system_prompt_path is empty",
            user_message="system_prompt_path is required (settings).",
        )
    if prompt_path.startswith(("/", "~")):
        raise SummaryError(
            "PROMPT_PATH_INVALID",
            "system_prompt_path must be vault-relative",
            user_message="system_prompt_path must be a vault-relative path (not absolute).",
        )
    try:
        return vault.read_text(prompt_path)
    except (OSError, UnicodeDecodeError) as e:
        raise SummaryError("PROMPT_READ_FAILED", str(e), user_message="Failed to read system prompt.") from e


async def generate_summary(
    vault: Vault,
    log_dir: str,
    note_path: str,
    arxiv_id: str,
    settings: Settings,
    notify: Callable[..., None] = notice,
    session=None,
    provider_factory: Callable = create_provider,
    wait_interval: float = WAIT_NOTICE_INTERVAL_SEC,
) -> SummaryOutcome:
    """Summarize the paper and write the summary block into the note.

    Soft skips (feature off, provider disabled) end the log block with
    result=OK and the skip reason; everything else that goes wrong raises.
    """
    note_path = normalize_path(note_path)
    start_message = (
        f"component=summary_generator notePath={note_path} "
        f"noteBaseName={Vault.basename(note_path)} id={arxiv_id}"
    )

    with log_block(vault, log_dir, start_message) as block:
        block.set(provider="", model="", htmlPath="", promptPath="", summaryChars=0)

        if not settings.summary_enabled:
            block.succeed("SUMMARY_DISABLED_SKIP")
            notify("Summary generation is disabled; skipped.")
            return SummaryOutcome(generated=False, skip_reason="SUMMARY_DISABLED_SKIP")

        resolved = provider_factory(settings.env_path, session=session)
        if isinstance(resolved, ProviderDisabled):
            block.succeed(resolved.reason)
            notify(f"Summary skipped: {resolved.reason}")
            return SummaryOutcome(generated=False, skip_reason=resolved.reason)

        provider = resolved.provider
        block.set(provider=resolved.provider_name, model=resolved.model)

        notify("(1/4) loading prompt")
        prompt_path = settings.system_prompt_path.strip()
        block.set(promptPath=prompt_path)
        # Document providers fall back to their default query.
        if provider.uses_document and not prompt_path:
            system_prompt = ""
        else:
            system_prompt = read_system_prompt(vault, prompt_path)

        notify("(2/4) preparing paper content")
        if provider.uses_document:
            params = SummarizeParams(system_prompt=system_prompt, user_content="", pdf_url=get_pdf_url(arxiv_id), arxiv_id=arxiv_id)
        else:
            html_path = join_path(attachment_folder(note_path), f"{arxiv_id}.html")
            block.set(htmlPath=html_path)
            if not vault.is_file(html_path):
                raise SummaryError(
                    "HTML_MISSING",
                    f"not found: {html_path}",
                    user_message="HTML file not found. Cannot generate summary.",
                )
            try:
                html = vault.read_text(html_path)
            except (OSError, UnicodeDecodeError) as e:
                raise SummaryError("HTML_READ_FAILED", str(e), user_message="Failed to read HTML.") from e
            params = SummarizeParams(
                system_prompt=system_prompt,
                user_content=USER_CONTENT_PREFIX + extract_paper_text(html),
                arxiv_id=arxiv_id,
            )
        params.log = lambda message: append_line(vault, log_dir, message)

        notify("(3/4) requesting AI")
        notify("AI response waiting... (Do not delete/move the note until completion)")
        async with waiting_notices(notify, wait_interval):
            summary = await provider.summarize(params)
        block.set(summaryChars=len(summary))

        notify("(4/4) writing note")
        if not vault.is_file(note_path):
            raise SummaryError(
                "NOTE_MOVED_OR_DELETED",
                f"note no longer at {note_path}",
                user_message="Target note was moved or deleted.",
            )
        try:
            vault.write_text(note_path, upsert_summary_block(vault.read_text(note_path), summary))
        except (OSError, UnicodeDecodeError) as e:
            raise SummaryError("NOTE_WRITE_FAILED", str(e), user_message="Failed to write note.") from e

        block.succeed()
        notify("Summary generated.", "ok")
        return SummaryOutcome(generated=True, summary_chars=len(summary))
