"""PageIndex over its HTTP document API.

The PDF is downloaded locally and uploaded as a multipart file, since the
API does not fetch remote URLs itself. Transient upload failures (gateway
statuses and network errors) are retried a fixed number of times.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

import requests

from common.fetcher_utils import TRANSIENT_STATUSES, http_request, is_success
from ...errors import ProviderError
from .pageindex import DocumentState, DocumentStatus, normalize_status, parse_document_state

logger = logging.getLogger(__name__)

PAGEINDEX_API_BASE = "https://api.pageindex.ai"
DEFAULT_UPLOAD_RETRIES = 3
DEFAULT_UPLOAD_RETRY_DELAY_SEC = 3.0


def _explicit_status(body: dict) -> DocumentStatus:
    return normalize_status(body.get("status"))


def _json_or_none(response: requests.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


def extract_chat_text(body: Any) -> str:
    """Message content of the first choice; "" if absent."""
    if not isinstance(body, dict):
        return ""
    choices = body.get("choices") or []
    if not choices or not isinstance(choices[0], dict):
        return ""
    content = (choices[0].get("message") or {}).get("content")
    return content.strip() if isinstance(content, str) else ""


class HttpDocumentTransport:
    """download -> upload -> status check -> chat, with the api_key header."""

    name = "pageindex-api"

    def __init__(
        self,
        api_key: str,
        base_url: str = PAGEINDEX_API_BASE,
        session=None,
        upload_retries: int = DEFAULT_UPLOAD_RETRIES,
        retry_delay: float = DEFAULT_UPLOAD_RETRY_DELAY_SEC,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.base_url = base_url.rstrip("/")
        self.session = session
        self.headers = {"api_key": api_key}
        self.upload_retries = max(1, upload_retries)
        self.retry_delay = retry_delay
        self._sleep = sleep

    async def ingest(self, pdf_url: str, arxiv_id: Optional[str] = None) -> DocumentState:
        pdf_bytes = await self._download(pdf_url)
        filename = f"{arxiv_id or 'paper'}.pdf"
        body = await self._upload(filename, pdf_bytes)

        state = parse_document_state(body)
        if not state.doc_id:
            raise ProviderError("pageindex", "upload", "response has no document id")
        # The upload response only acknowledges the file; readiness comes from polling.
        state.status = _explicit_status(body)
        if state.status is DocumentStatus.UNKNOWN:
            state.status = DocumentStatus.PROCESSING
        return state

    async def _download(self, pdf_url: str) -> bytes:
        try:
            response = await http_request("GET", pdf_url, session=self.session)
        except requests.RequestException as e:
            raise ProviderError("pageindex", "download", str(e)) from e
        if not is_success(response.status_code):
            raise ProviderError("pageindex", "download", status=response.status_code)
        return response.content

    async def _upload(self, filename: str, pdf_bytes: bytes) -> dict:
        url = f"{self.base_url}/doc/"
        last_error: ProviderError | None = None

        for attempt in range(1, self.upload_retries + 1):
            try:
                response = await http_request(
                    "POST",
                    url,
                    session=self.session,
                    headers=self.headers,
                    files={"file": (filename, pdf_bytes, "application/pdf")},
                )
            except requests.RequestException as e:
                last_error = ProviderError("pageindex", "upload", str(e))
                last_error.__cause__ = e
            else:
                if is_success(response.status_code):
                    body = _json_or_none(response)
                    if not isinstance(body, dict):
                        raise ProviderError("pageindex", "upload", "response is not a JSON object")
                    return body
                if response.status_code not in TRANSIENT_STATUSES:
                    raise ProviderError("pageindex", "upload", status=response.status_code)
                last_error = ProviderError("pageindex", "upload", status=response.status_code)

            if attempt < self.upload_retries:
                logger.info("Upload attempt %d/%d failed (%s); retrying in %gs",
                            attempt, self.upload_retries, last_error.code, self.retry_delay)
                await self._sleep(self.retry_delay)

        raise last_error

    async def check_status(self, state: DocumentState) -> DocumentState:
        url = f"{self.base_url}/doc/{state.doc_id}/"
        try:
            response = await http_request("GET", url, session=self.session, headers=self.headers)
        except requests.RequestException as e:
            raise ProviderError("pageindex", "status_check", str(e)) from e
        if not is_success(response.status_code):
            raise ProviderError("pageindex", "status_check", status=response.status_code)

        body = _json_or_none(response)
        if not isinstance(body, dict):
            return DocumentState(DocumentStatus.UNKNOWN, doc_id=state.doc_id)
        latest = parse_document_state(body)
        # Only an explicit status counts; the id echoed back says nothing about readiness.
        latest.status = _explicit_status(body)
        latest.doc_id = latest.doc_id or state.doc_id
        return latest

    async def query(self, doc_id: str, query: str) -> str:
        url = f"{self.base_url}/chat/completions"
        payload = {
            "messages": [{"role": "user", "content": query}],
            "doc_id": doc_id,
            "stream": False,
        }
        try:
            response = await http_request("POST", url, session=self.session, headers=self.headers, json=payload)
        except requests.RequestException as e:
            raise ProviderError("pageindex", "chat", str(e)) from e
        if not is_success(response.status_code):
            raise ProviderError("pageindex", "chat", status=response.status_code)

        text = extract_chat_text(_json_or_none(response))
        if not text:
            raise ProviderError("pageindex", "chat", "no message content", code="PAGEINDEX_RESPONSE_INVALID")
        return text

    async def close(self) -> None:
        pass
