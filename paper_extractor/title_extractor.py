"""
Title resolution: rename the note after the paper's citation title.

Fetches the arXiv abstract page, reads its citation_title meta tag, and
renames the note to "<title>.md" in the same folder. Nothing is renamed
unless every check passes.
"""

import re
from dataclasses import dataclass

import requests
from bs4 import BeautifulSoup

from common.fetcher_utils import http_request, is_success
from common.url_utils import get_abs_url
from .audit_log import log_block
from .errors import TitleError
from .vault import Vault, join_path, normalize_path

# Characters the host file system (or the vault's link syntax) rejects in a file name
_UNSAFE_CHARS_RE = re.compile(r'[\\/:*?"<>|]')


@dataclass
class TitleResult:
    arxiv_id: str
    old_note_path: str
    new_note_path: str
    new_title: str
    renamed: bool


def extract_citation_title(html: str) -> str:
    """Content of <meta name="citation_title">, whatever the attribute order.

    Raises:
        TitleError: CITATION_TITLE_NOT_FOUND
    """
    soup = BeautifulSoup(html, "html.parser")
    for meta in soup.find_all("meta"):
        name = meta.get("name")
        if isinstance(name, str) and name.lower() == "citation_title":
            content = meta.get("content")
            if content and content.strip():
                return content
    raise TitleError("CITATION_TITLE_NOT_FOUND", "citation_title meta tag not found")


def sanitize_title(title: str) -> str:
    """Collapse whitespace and replace path-hostile characters with underscores."""
    collapsed = re.sub(r"\s+", " ", title).strip()
    return _UNSAFE_CHARS_RE.sub("_", collapsed).strip()


async def extract_and_rename_title(vault: Vault, log_dir: str, note_path: str, arxiv_id: str, session=None) -> TitleResult:
    """Rename the note to its paper title.

    Raises:
        TitleError: ABS_FETCH_FAILED, CITATION_TITLE_NOT_FOUND, TITLE_EMPTY or NOTE_CONFLICT
    """
    note_path = normalize_path(note_path)
    start_message = f"component=title_extractor notePath={note_path} id={arxiv_id}"

    with log_block(vault, log_dir, start_message) as block:
        block.set(oldNotePath=note_path, newNotePath="", newTitle="")

        abs_url = get_abs_url(arxiv_id)
        try:
            response = await http_request("GET", abs_url, session=session)
        except requests.RequestException as e:
            raise TitleError("ABS_FETCH_FAILED", str(e), user_message="Failed to fetch the arXiv abstract page.") from e
        if not is_success(response.status_code):
            raise TitleError(
                "ABS_FETCH_FAILED",
                f"httpStatus={response.status_code}",
                user_message="Failed to fetch the arXiv abstract page.",
            )

        new_title = sanitize_title(extract_citation_title(response.text))
        if not new_title:
            raise TitleError("TITLE_EMPTY", "title is empty after sanitization")

        new_note_path = join_path(Vault.parent(note_path), f"{new_title}.md")
        block.set(newNotePath=new_note_path, newTitle=new_title)

        if new_note_path == note_path:
            block.succeed("ALREADY_TITLED")
            return TitleResult(arxiv_id, note_path, new_note_path, new_title, renamed=False)

        if vault.exists(new_note_path):
            raise TitleError(
                "NOTE_CONFLICT",
                f"target note already exists: {new_note_path}",
                user_message="A note with this title already exists.",
            )

        vault.rename(note_path, new_note_path)
        block.succeed()
        return TitleResult(arxiv_id, note_path, new_note_path, new_title, renamed=True)
