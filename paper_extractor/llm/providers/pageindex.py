"""
PageIndex document-grounded provider.

Flow for one summarize() call:
1. Ingest: submit the PDF (by URL over MCP, or as an uploaded file over HTTP)
2. Poll: check processing status at a fixed interval until ready, failed, or timed out
3. Query: ask the processed document for a summary

The remote processing time does not depend on how often we ask, so polling
uses a fixed interval rather than backoff.
"""

import asyncio
import json
import math
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Protocol

from ...errors import ProviderError, ProviderTimeoutError
from ..types import SummarizeParams

DEFAULT_POLL_INTERVAL_SEC = 2.0
DEFAULT_POLL_TIMEOUT_SEC = 300.0

DEFAULT_DOCUMENT_QUERY = (
    "Summarize this paper in Markdown. Cover the problem it addresses, "
    "the main contributions, the method, and the key results."
)


class DocumentStatus(str, Enum):
    PROCESSING = "processing"
    READY = "ready"
    FAILED = "failed"
    UNKNOWN = "unknown"


_STATUS_ALIASES = {
    "processing": DocumentStatus.PROCESSING,
    "pending": DocumentStatus.PROCESSING,
    "queued": DocumentStatus.PROCESSING,
    "ready": DocumentStatus.READY,
    "completed": DocumentStatus.READY,
    "complete": DocumentStatus.READY,
    "failed": DocumentStatus.FAILED,
    "error": DocumentStatus.FAILED,
}


def normalize_status(value: Any) -> DocumentStatus:
    """Fold the service's alternate spellings into one status."""
    if not isinstance(value, str):
        return DocumentStatus.UNKNOWN
    return _STATUS_ALIASES.get(value.strip().lower(), DocumentStatus.UNKNOWN)


@dataclass
class DocumentState:
    """Server-side ingestion state of one document handle."""

    status: DocumentStatus
    doc_id: Optional[str] = None
    doc_name: Optional[str] = None
    message: str = ""


def parse_document_state(payload: Any) -> DocumentState:
    """Build a DocumentState from a decoded status/process response.

    A response carrying an id but no recognised status counts as ready.
    """
    if not isinstance(payload, dict):
        return DocumentState(DocumentStatus.UNKNOWN)

    doc_id = None
    for key in ("doc_id", "document_id", "id"):
        value = payload.get(key)
        if isinstance(value, str) and value:
            doc_id = value
            break

    doc_name = payload.get("doc_name") if isinstance(payload.get("doc_name"), str) else None
    status = normalize_status(payload.get("status"))
    if status is DocumentStatus.UNKNOWN and doc_id:
        status = DocumentStatus.READY

    message = payload.get("error") or payload.get("message") or ""
    return DocumentState(status=status, doc_id=doc_id, doc_name=doc_name, message=str(message))


def parse_json_text(text: Optional[str]) -> Any:
    """Decode a JSON text payload; None if it is missing or not JSON."""
    if not text:
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return None


class DocumentTransport(Protocol):
    """How documents reach PageIndex: MCP tool calls or the HTTP API."""

    name: str

    async def ingest(self, pdf_url: str, arxiv_id: Optional[str]) -> DocumentState: ...

    async def check_status(self, state: DocumentState) -> DocumentState: ...

    async def query(self, doc_id: str, query: str) -> str: ...

    async def close(self) -> None: ...


class PageIndexProvider:
    """Upload-then-query summarization over a DocumentTransport."""

    name = "pageindex"
    uses_document = True

    def __init__(
        self,
        transport: DocumentTransport,
        poll_interval: float = DEFAULT_POLL_INTERVAL_SEC,
        poll_timeout: float = DEFAULT_POLL_TIMEOUT_SEC,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.transport = transport
        self.model = transport.name
        self.poll_interval = poll_interval
        self.poll_timeout = poll_timeout
        self._sleep = sleep
        self._clock = clock

    async def summarize(self, params: SummarizeParams) -> str:
        if not params.pdf_url:
            raise ProviderError("pageindex", "input", "a PDF URL is required", code="PAGEINDEX_PDF_URL_REQUIRED")

        log = params.log or (lambda message: None)
        query = params.system_prompt.strip() or DEFAULT_DOCUMENT_QUERY

        try:
            state = await self.transport.ingest(params.pdf_url, params.arxiv_id)
            log(f"component=pageindex phase=ingest status={state.status.value} docName={state.doc_name or ''}")
            doc_id = await self.wait_until_ready(state, log)
            log(f"component=pageindex phase=query docId={doc_id}")
            return await self.transport.query(doc_id, query)
        finally:
            await self.transport.close()

    async def wait_until_ready(self, state: DocumentState, log: Callable[[str], None] = lambda message: None) -> str:
        """Poll until the document is ready and return its id.

        Raises:
            ProviderError: If the service reports the document failed
            ProviderTimeoutError: If the time budget runs out first
        """
        if state.status is DocumentStatus.FAILED:
            raise ProviderError("pageindex", "process_document", state.message or "processing failed")
        if state.status is DocumentStatus.READY and state.doc_id:
            return state.doc_id

        max_attempts = max(1, math.ceil(self.poll_timeout / self.poll_interval))
        deadline = self._clock() + self.poll_timeout
        current = state

        for attempt in range(1, max_attempts + 1):
            await self._sleep(self.poll_interval)
            latest = await self.transport.check_status(current)
            log(f"component=pageindex phase=poll attempt={attempt} status={latest.status.value}")

            if latest.status is DocumentStatus.READY:
                doc_id = latest.doc_id or current.doc_id
                if not doc_id:
                    raise ProviderError("pageindex", "process_document", "ready without a document id")
                return doc_id
            if latest.status is DocumentStatus.FAILED:
                raise ProviderError("pageindex", "process_document", latest.message or "processing failed")

            current = DocumentState(
                status=latest.status,
                doc_id=latest.doc_id or current.doc_id,
                doc_name=latest.doc_name or current.doc_name,
            )
            if self._clock() >= deadline:
                break

        label = current.doc_name or current.doc_id or "document"
        raise ProviderTimeoutError("pageindex", f'"{label}" did not complete within {self.poll_timeout:g}s')
