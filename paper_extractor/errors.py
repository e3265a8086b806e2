"""Exceptions raised by workflow steps and providers."""

DEFAULT_USER_MESSAGE = "Paper extraction failed. See the log for details."


class PaperExtractorError(Exception):
    """Base exception for workflow failures that should abort the current run.

    Attributes:
        code: Machine-readable reason written to the audit log
        user_message: Short, non-sensitive text safe to show to the user
    """

    def __init__(self, code: str, message: str = "", user_message: str | None = None):
        super().__init__(f"{code}: {message}" if message else code)
        self.code = code
        self.user_message = user_message or DEFAULT_USER_MESSAGE


class ConfigError(PaperExtractorError):
    """A feature was selected but its mandatory configuration is missing or invalid."""

    def __init__(self, code: str, message: str = ""):
        super().__init__(code, message, user_message="Configuration error. Check the .env file and settings.")


class NoteError(PaperExtractorError):
    """The note could not be read, located, or created."""
    pass


class TitleError(PaperExtractorError):
    """Title resolution aborted before renaming."""
    pass


class FetchError(PaperExtractorError):
    """Neither HTML nor PDF could be saved, or the destination is unsafe."""
    pass


class SummaryError(PaperExtractorError):
    """Summary generation aborted outside of the provider call itself."""
    pass


class ProviderError(PaperExtractorError):
    """A summarization backend failed at a specific phase.

    The code is "<PROVIDER>_<PHASE>_FAILED", e.g. PAGEINDEX_UPLOAD_FAILED,
    unless an explicit code is given.
    """

    def __init__(self, provider: str, phase: str, message: str = "", status: int | None = None, code: str | None = None):
        self.provider = provider.upper()
        self.phase = phase.upper()
        self.status = status
        detail = f"status={status} {message}".strip() if status is not None else message
        super().__init__(code or f"{self.provider}_{self.phase}_FAILED", detail, user_message="AI request failed.")


class ProviderTimeoutError(ProviderError):
    """Polling gave up; the remote processing job may still be running."""

    def __init__(self, provider: str, message: str = ""):
        super().__init__(provider, "process_document", message)
        self.code = f"{self.provider}_PROCESS_DOCUMENT_TIMEOUT"
        self.args = (f"{self.code}: {message} (the remote job may still be running)",)
        self.user_message = "AI request timed out. The document may still be processing remotely."
