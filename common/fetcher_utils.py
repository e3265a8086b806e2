"""
Shared HTTP and text helpers for fetch steps and providers.
"""

import asyncio
from typing import Any, Tuple

import requests

DEFAULT_TIMEOUT = 60

# Statuses worth retrying: the upstream gateway, not the request, failed
TRANSIENT_STATUSES = {502, 503, 504}


def is_success(status: int) -> bool:
    """True for any 2xx status."""
    return 200 <= status < 300


async def http_request(method: str, url: str, session: Any = None, timeout: float = DEFAULT_TIMEOUT, **kwargs) -> requests.Response:
    """Run one blocking requests call without stalling the event loop.

    Args:
        method: HTTP method
        url: Target URL
        session: requests.Session (or compatible object); module-level requests if None
        timeout: Per-request timeout in seconds
        **kwargs: Passed through to requests (headers, json, files, ...)

    Returns:
        The response, whatever its status. Callers decide what a failure is.

    Raises:
        requests.RequestException: On network-level failures
    """
    requester = session if session is not None else requests
    return await asyncio.to_thread(requester.request, method, url, timeout=timeout, **kwargs)


def truncate_content(text: str, max_chars: int) -> Tuple[str, bool]:
    """
    Truncate text at a sentence boundary.

    Args:
        text: Text to truncate
        max_chars: Maximum characters (approximate)

    Returns:
        Tuple of (truncated text with " ..." suffix if truncated, was_truncated boolean)
    """
    if len(text) <= max_chars:
        return text, False

    truncated = text[:max_chars]

    sentence_endings = ['. ', '! ', '? ', '.\n', '!\n', '?\n']
    last_boundary = -1

    for ending in sentence_endings:
        pos = truncated.rfind(ending)
        if pos > last_boundary:
            last_boundary = pos + len(ending) - 1  # Keep the punctuation

    if last_boundary > max_chars * 0.5:  # Only use boundary if it's not too early
        return truncated[:last_boundary + 1] + " ...", True

    last_space = truncated.rfind(' ')
    if last_space > 0:
        return truncated[:last_space] + " ...", True

    return truncated + " ...", True
