"""arXiv URL parsing and construction utilities."""

import re
from urllib.parse import urlparse

ARXIV_HOSTS = {"arxiv.org", "www.arxiv.org"}
ARXIV_BASE_URL = "https://arxiv.org"

# /abs/<id>, /pdf/<id>[.pdf], /html/<id>[.html]
ARXIV_PATH_RE = re.compile(r"^/(abs|pdf|html)/(.+)$")
ARXIV_ID_RE = re.compile(r"^\d{4}\.\d{5}(v\d+)?$")


def extract_arxiv_id(url: str) -> str:
    """Extract the arXiv identifier from an arXiv abs/pdf/html URL.

    Args:
        url: URL such as https://arxiv.org/abs/2301.00001v2

    Returns:
        The identifier, e.g. "2301.00001v2"

    Raises:
        ValueError: If the URL is malformed, not on arxiv.org, or the id format is unsupported
    """
    if not url or not url.strip():
        raise ValueError("Invalid URL")

    parsed = urlparse(url.strip())
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError("Invalid URL")

    if (parsed.hostname or "").lower() not in ARXIV_HOSTS:
        raise ValueError("Not an arXiv URL")

    path = parsed.path.rstrip("/")
    match = ARXIV_PATH_RE.match(path)
    if not match:
        raise ValueError("Unsupported arXiv URL format")

    arxiv_id = re.sub(r"\.(pdf|html)$", "", match.group(2), flags=re.IGNORECASE)
    if not ARXIV_ID_RE.match(arxiv_id):
        raise ValueError("Unsupported arXiv id format")

    return arxiv_id


def get_abs_url(arxiv_id: str) -> str:
    return f"{ARXIV_BASE_URL}/abs/{arxiv_id}"


def get_html_url(arxiv_id: str) -> str:
    return f"{ARXIV_BASE_URL}/html/{arxiv_id}"


def get_pdf_url(arxiv_id: str) -> str:
    return f"{ARXIV_BASE_URL}/pdf/{arxiv_id}"
