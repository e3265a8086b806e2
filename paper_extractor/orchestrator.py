"""
Run orchestration: title -> fetch -> summary for one note, one run at a time.

A second run requested while one is in flight is rejected with a notice,
not queued. Any step failure aborts the rest of the run; side effects of
steps that already finished (renamed note, saved files) are kept.
"""

import asyncio
import logging
from enum import Enum
from typing import Callable

from common.display import notice
from common.url_utils import extract_arxiv_id
from .audit_log import append_line, format_error_for_log
from .errors import DEFAULT_USER_MESSAGE, NoteError, PaperExtractorError
from .llm.create_provider import create_provider
from .note import extract_url_from_note
from .paper_fetcher import fetch_and_save
from .settings import Settings
from .summary_generator import WAIT_NOTICE_INTERVAL_SEC, generate_summary
from .title_extractor import extract_and_rename_title
from .vault import Vault, normalize_path

logger = logging.getLogger(__name__)


class RunOutcome(str, Enum):
    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"
    BUSY = "busy"


def format_fetch_notice(folder_path: str, html_saved: bool, pdf_saved: bool) -> str:
    return f"Saved to: {folder_path}\nHTML: {'OK' if html_saved else 'NG'}\nPDF: {'OK' if pdf_saved else 'NG'}"


class Orchestrator:
    """Runs the paper workflow for notes in one vault.

    Each instance owns its own busy flag, so independent instances (as in
    tests) do not block each other.
    """

    def __init__(
        self,
        vault: Vault,
        settings: Settings,
        session=None,
        notify: Callable[..., None] = notice,
        provider_factory: Callable = create_provider,
        wait_interval: float = WAIT_NOTICE_INTERVAL_SEC,
    ):
        self.vault = vault
        self.settings = settings
        self.session = session
        self.notify = notify
        self.provider_factory = provider_factory
        self.wait_interval = wait_interval
        self._lock = asyncio.Lock()

    @property
    def is_busy(self) -> bool:
        return self._lock.locked()

    async def run(self, note_path: str, url: str | None = None) -> RunOutcome:
        """Run the workflow for a note; url overrides the note's url_01 line."""
        if self._lock.locked():
            self.notify("Already running", "warn")
            return RunOutcome.BUSY

        async with self._lock:
            return await self._run_locked(normalize_path(note_path), url)

    async def _run_locked(self, note_path: str, url: str | None) -> RunOutcome:
        log_dir = self.settings.log_dir.strip()
        if not log_dir:
            self.notify("logDir is required (settings: log_dir)", "error")
            return RunOutcome.FAILED

        try:
            arxiv_id = self._resolve_arxiv_id(note_path, url)

            title = await extract_and_rename_title(self.vault, log_dir, note_path, arxiv_id, session=self.session)
            note_path = title.new_note_path
            if not self.vault.is_file(note_path):
                raise NoteError("NOTE_MOVED_OR_DELETED", f"note not found after rename: {note_path}")

            self.notify("Fetching arXiv...")
            fetched = await fetch_and_save(self.vault, log_dir, note_path, arxiv_id, session=self.session)
            self.notify(format_fetch_notice(fetched.folder_path, fetched.html_saved, fetched.pdf_saved), "ok")

            summary = await generate_summary(
                self.vault,
                log_dir,
                note_path,
                arxiv_id,
                self.settings,
                notify=self.notify,
                session=self.session,
                provider_factory=self.provider_factory,
                wait_interval=self.wait_interval,
            )
        except PaperExtractorError as e:
            self.notify(e.user_message, "error")
            self._log_failure(log_dir, note_path, e)
            return RunOutcome.FAILED
        except Exception as e:
            logger.debug("Unexpected failure in run", exc_info=True)
            self.notify(DEFAULT_USER_MESSAGE, "error")
            self._log_failure(log_dir, note_path, e)
            return RunOutcome.FAILED

        return RunOutcome.SUCCESS if summary.generated else RunOutcome.SKIPPED

    def _resolve_arxiv_id(self, note_path: str, url: str | None) -> str:
        if url is None:
            if not self.vault.is_file(note_path):
                raise NoteError("NOTE_NOT_FOUND", f"no note at {note_path}", user_message="Note not found.")
            url = extract_url_from_note(self.vault.read_text(note_path))
        try:
            return extract_arxiv_id(url.strip())
        except ValueError as e:
            raise NoteError("ARXIV_URL_INVALID", str(e), user_message=str(e)) from e

    def _log_failure(self, log_dir: str, note_path: str, error: BaseException) -> None:
        name, code, summary = format_error_for_log(error)
        try:
            append_line(
                self.vault,
                log_dir,
                f"component=orchestrator result=NG notePath={note_path} "
                f"errorName={name} errorCode={code} errorSummary={summary}",
            )
        except OSError:
            logger.warning("Could not write the failure line to the audit log")
