"""Daily audit log with secret redaction and START/END blocks.

Security invariant: nothing reaches the log file without passing through
redact(). If redaction itself fails, the original content is dropped and a
fixed fallback line is written instead.

Line format: "<UTC ISO-8601 timestamp> <message>", one entry per line, in
<log_dir>/paper_extractor_YYYYMMDD.log (local date).
"""

import logging
import re
import secrets
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterator

from .vault import Vault, join_path

logger = logging.getLogger(__name__)

REDACTED = "***REDACTED***"
REDACTION_FAILED = 'redact=FAILED message="Log redaction failed; original content suppressed."'
MAX_LINE_CHARS = 200
MAX_ERROR_SUMMARY_CHARS = 200

_REDACTIONS = [
    (re.compile(r"(Authorization\s*:\s*Bearer\s+)(\S+)", re.IGNORECASE), rf"\1{REDACTED}"),
    (re.compile(r"\bBearer\s+[A-Za-z0-9\-._~+/]+=*"), f"Bearer {REDACTED}"),
    (re.compile(r"\bsk-[A-Za-z0-9_\-]{10,}"), REDACTED),
    (re.compile(r"\bAIza[0-9A-Za-z\-_]{20,}"), REDACTED),
    (re.compile(r"\b(?:xoxb|xoxp|xoxa|xoxr)-[0-9A-Za-z\-]{10,}"), REDACTED),
    (re.compile(r"\bghp_[0-9A-Za-z]{20,}"), REDACTED),
    (re.compile(r"\bgithub_pat_[0-9A-Za-z_]{20,}"), REDACTED),
    (re.compile(r"""\b([A-Z0-9_]{2,})(?:API)?_?KEY\s*=\s*(?:"[^"]*"|'[^']*'|[^\s"']+)"""), rf"\1KEY={REDACTED}"),
    (re.compile(r"((?:x-goog-api-key|api[_-]?key)[\"']?\s*:\s*[\"']?)[^\s\"',}]+", re.IGNORECASE), rf"\1{REDACTED}"),
    (re.compile(r"([?&](?:api_key|apikey|access_token|token|key)=)[^&#\s]+", re.IGNORECASE), rf"\1{REDACTED}"),
]


def redact(text: str) -> str:
    """Replace credential-shaped substrings with a fixed placeholder."""
    out = text
    for pattern, replacement in _REDACTIONS:
        out = pattern.sub(replacement, out)
    return out


def safe_redact(text: str, fallback: str) -> str:
    """redact() that never raises; returns fallback instead of the original on failure."""
    try:
        return redact(text)
    except Exception:
        logger.warning("Log redaction failed; line content suppressed")
        return fallback


def one_line(text: str) -> str:
    """Collapse newlines, tabs and runs of whitespace into single spaces."""
    return re.sub(r"\s+", " ", re.sub(r"[\r\n\t]+", " ", text)).strip()


def one_line_and_truncate(text: str, max_len: int) -> str:
    return one_line(text)[:max_len]


def format_error_for_log(error: BaseException | None, max_len: int = MAX_ERROR_SUMMARY_CHARS) -> tuple[str, str, str]:
    """Summarize an exception for a log line.

    Returns:
        Tuple of (error_name, error_code, error_summary); the summary is
        redacted, single-line and truncated. Empty when redaction fails.
    """
    if error is None:
        return "UNKNOWN", "", ""
    code = getattr(error, "code", "")
    error_code = code if isinstance(code, str) else ""
    summary = one_line_and_truncate(safe_redact(str(error), ""), max_len)
    return type(error).__name__, error_code, summary


def utc_timestamp(now: datetime | None = None) -> str:
    now = now or datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def format_log_line(message: str, now: datetime | None = None) -> str:
    return f"{utc_timestamp(now)} {message}"


def get_daily_log_path(log_dir: str, now: datetime | None = None) -> str:
    """Path of today's log file; one file per local calendar day."""
    local = (now or datetime.now(timezone.utc)).astimezone()
    return join_path(log_dir, f"paper_extractor_{local.strftime('%Y%m%d')}.log")


def new_run_id(now: datetime | None = None) -> str:
    return f"{utc_timestamp(now)}_{secrets.token_hex(6)}"


def _append_text(vault: Vault, path: str, content: str) -> None:
    # Whole-file read/append/write; volume is a few lines per run.
    current = vault.read_text(path) if vault.is_file(path) else ""
    vault.write_text(path, current + content)


def _write_line(vault: Vault, path: str, message: str, fallback: str, now: datetime | None = None) -> None:
    redacted = one_line(safe_redact(message, fallback))
    _append_text(vault, path, format_log_line(redacted, now) + "\n")


@dataclass
class LogBlock:
    """One START/END pair bracketing a workflow step.

    Steps record context with set(), then mark the outcome with succeed()
    or fail(). The END line is written by log_block() on exit.
    """

    log_dir: str
    log_path: str
    run_id: str
    started_at: datetime
    ok: bool = False
    reason: str = ""
    fields: dict = field(default_factory=dict)
    closed: bool = False

    def set(self, **values) -> None:
        self.fields.update(values)

    def succeed(self, reason: str = "") -> None:
        self.ok = True
        self.reason = reason

    def fail(self, reason: str) -> None:
        self.ok = False
        self.reason = reason


def append_line(vault: Vault, log_dir: str, message: str) -> None:
    """Append one standalone, redacted, single-line, truncated entry."""
    vault.create_folder(log_dir)
    now = datetime.now(timezone.utc)
    path = get_daily_log_path(log_dir, now)
    redacted = one_line_and_truncate(safe_redact(message, REDACTION_FAILED), MAX_LINE_CHARS)
    _append_text(vault, path, format_log_line(redacted, now) + "\n")


def start_block(vault: Vault, log_dir: str, start_message: str) -> LogBlock:
    """Open a block: ensure the directory exists and write the START line."""
    vault.create_folder(log_dir)
    now = datetime.now(timezone.utc)
    block = LogBlock(log_dir=log_dir, log_path=get_daily_log_path(log_dir, now), run_id=new_run_id(now), started_at=now)
    fallback = f"block=START runId={block.run_id} {REDACTION_FAILED}"
    _write_line(vault, block.log_path, f"block=START runId={block.run_id} {start_message}", fallback, now)
    return block


def end_block(vault: Vault, block: LogBlock, end_message: str) -> None:
    """Close a block in the file it was started in. Later calls are ignored."""
    if block.closed:
        return
    block.closed = True
    fallback = f"block=END runId={block.run_id} {REDACTION_FAILED}"
    _write_line(vault, block.log_path, f"block=END runId={block.run_id} {end_message}", fallback)


def format_fields(values: dict) -> str:
    return " ".join(f"{key}={value}" for key, value in values.items())


def build_end_message(block: LogBlock, error: BaseException | None = None) -> str:
    parts = ["result=OK" if block.ok else "result=NG"]
    if block.ok:
        if block.reason:
            parts.append(f"reason={block.reason}")
    else:
        parts.append(f"reason={block.reason or getattr(error, 'code', '') or 'UNKNOWN'}")
    if block.fields:
        parts.append(format_fields(block.fields))
    if error is not None:
        name, code, summary = format_error_for_log(error)
        parts.append(f"errorName={name} errorCode={code} errorSummary={summary}")
    return " ".join(parts)


@contextmanager
def log_block(vault: Vault, log_dir: str, start_message: str) -> Iterator[LogBlock]:
    """Scoped START/END block; the END line is written exactly once on every exit path.

    An escaping exception marks the block NG (unless the step already
    recorded a reason), adds error details, and is re-raised.
    """
    block = start_block(vault, log_dir, start_message)
    try:
        yield block
    except BaseException as e:
        block.ok = False
        end_block(vault, block, build_end_message(block, e))
        raise
    else:
        end_block(vault, block, build_end_message(block))
