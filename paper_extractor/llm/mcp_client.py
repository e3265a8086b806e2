"""
Stdio MCP client used by the PageIndex provider.

The server process is spawned on connect() (for PageIndex: `npx -y mcp-remote <url>`,
which also handles the OAuth browser flow on first use) and torn down on disconnect().
"""

import os
import shutil
from contextlib import AsyncExitStack
from dataclasses import dataclass, field

from mcp import ClientSession, StdioServerParameters
from mcp.client.stdio import stdio_client

from ..errors import ProviderError

PAGEINDEX_MCP_URL = "https://chat.pageindex.ai/mcp"
DEFAULT_MCP_COMMAND = "npx"


@dataclass
class McpToolResult:
    """Text parts of a tool call result."""

    texts: list[str] = field(default_factory=list)
    is_error: bool = False

    @property
    def text(self) -> str | None:
        """First text part, or None if the tool returned no text."""
        return self.texts[0] if self.texts else None


class McpClient:
    """Thin wrapper keeping one MCP session open across several tool calls."""

    def __init__(self, command: str, args: list[str] | None = None, env: dict[str, str] | None = None):
        self.command = command
        self.args = args or []
        self.env = env or {}
        self._stack: AsyncExitStack | None = None
        self._session: ClientSession | None = None

    @staticmethod
    def is_available(command: str = DEFAULT_MCP_COMMAND) -> bool:
        """MCP over stdio needs the launcher binary on PATH."""
        return shutil.which(command) is not None

    def is_connected(self) -> bool:
        return self._session is not None

    async def connect(self) -> None:
        if self._session is not None:
            return

        params = StdioServerParameters(
            command=self.command,
            args=self.args,
            env={**os.environ, **self.env},
        )
        stack = AsyncExitStack()
        try:
            read, write = await stack.enter_async_context(stdio_client(params))
            session = await stack.enter_async_context(ClientSession(read, write))
            await session.initialize()
        except BaseException:
            await stack.aclose()
            raise

        self._stack = stack
        self._session = session

    async def call_tool(self, name: str, arguments: dict) -> McpToolResult:
        if self._session is None:
            raise ProviderError("mcp", "call_tool", "call connect() first", code="MCP_NOT_CONNECTED")

        result = await self._session.call_tool(name, arguments)
        texts = [
            item.text for item in (result.content or [])
            if getattr(item, "type", "") == "text" and isinstance(getattr(item, "text", None), str)
        ]
        return McpToolResult(texts=texts, is_error=bool(result.isError))

    async def disconnect(self) -> None:
        stack, self._stack, self._session = self._stack, None, None
        if stack is not None:
            await stack.aclose()


def create_pageindex_client(command: str = DEFAULT_MCP_COMMAND, url: str = PAGEINDEX_MCP_URL) -> McpClient:
    """MCP client for PageIndex Cloud via mcp-remote."""
    return McpClient(command=command, args=["-y", "mcp-remote", url])
