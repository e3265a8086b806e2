"""PageIndex over MCP tool calls (process_document / get_document / query_document)."""

from typing import Optional

from ...errors import ProviderError
from ..mcp_client import McpClient, McpToolResult
from .pageindex import DocumentState, DocumentStatus, parse_document_state, parse_json_text


def _require_text(result: McpToolResult, phase: str) -> str:
    if result.is_error:
        raise ProviderError("pageindex", phase, (result.text or "tool returned an error")[:200])
    if not result.text:
        raise ProviderError("pageindex", phase, "no text content")
    return result.text


class McpDocumentTransport:
    """Submits the PDF by URL; the server downloads it itself.

    The client is connected lazily on ingest and disconnected on close().
    """

    name = "pageindex-mcp"

    def __init__(self, client: McpClient):
        self.client = client

    async def ingest(self, pdf_url: str, arxiv_id: Optional[str] = None) -> DocumentState:
        if not self.client.is_connected():
            await self.client.connect()

        text = _require_text(await self.client.call_tool("process_document", {"url": pdf_url}), "process_document")
        payload = parse_json_text(text)
        if payload is None:
            raise ProviderError("pageindex", "process_document", f"unexpected response: {text[:200]}")

        state = parse_document_state(payload)
        if state.status is DocumentStatus.FAILED:
            return state
        # A returned doc_id means the document is already indexed.
        if state.doc_id:
            state.status = DocumentStatus.READY
            return state
        if not state.doc_name:
            raise ProviderError("pageindex", "process_document", "no doc_name for polling")
        return state

    async def check_status(self, state: DocumentState) -> DocumentState:
        result = await self.client.call_tool("get_document", {"doc_name": state.doc_name})
        # Empty, errored or unparseable answers count as still processing.
        if result.is_error or not result.text:
            return DocumentState(DocumentStatus.UNKNOWN, doc_id=state.doc_id, doc_name=state.doc_name)
        return parse_document_state(parse_json_text(result.text))

    async def query(self, doc_id: str, query: str) -> str:
        text = _require_text(
            await self.client.call_tool("query_document", {"doc_id": doc_id, "query": query}),
            "query_document",
        )
        return text.strip()

    async def close(self) -> None:
        await self.client.disconnect()
