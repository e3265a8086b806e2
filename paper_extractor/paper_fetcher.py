"""
Document fetch: save the arXiv HTML and PDF next to the note.

Files go to "<note folder>/<note name>/<id>.html|.pdf". The two downloads
are independent: one failing does not stop the other, and the step only
fails when neither was saved.
"""

import logging
from dataclasses import dataclass

import requests

from common.fetcher_utils import http_request, is_success
from common.url_utils import get_html_url, get_pdf_url
from .audit_log import log_block
from .errors import FetchError
from .vault import Vault, join_path, normalize_path

logger = logging.getLogger(__name__)


@dataclass
class FetchResult:
    arxiv_id: str
    note_path: str
    folder_path: str
    html_path: str
    pdf_path: str
    html_saved: bool
    pdf_saved: bool
    html_status: str
    pdf_status: str


def attachment_folder(note_path: str) -> str:
    """Folder holding a note's fetched files: sibling of the note, named after it."""
    return join_path(Vault.parent(note_path), Vault.basename(note_path))


async def _fetch_one(vault: Vault, url: str, dest_path: str, binary: bool, session=None) -> tuple[bool, str]:
    """GET url and save it; returns (saved, status). Never raises for network or write errors."""
    try:
        response = await http_request("GET", url, session=session)
    except requests.RequestException as e:
        logger.warning("GET %s failed: %s", url, type(e).__name__)
        return False, "ERR"

    if not is_success(response.status_code):
        logger.warning("GET %s returned %s", url, response.status_code)
        return False, str(response.status_code)

    try:
        if binary:
            vault.write_bytes(dest_path, response.content)
        else:
            vault.write_text(dest_path, response.text)
    except OSError as e:
        logger.warning("Could not write %s: %s", dest_path, e)
        return False, "WRITE_ERR"
    return True, str(response.status_code)


async def fetch_and_save(vault: Vault, log_dir: str, note_path: str, arxiv_id: str, session=None) -> FetchResult:
    """Download HTML and PDF for the paper into the note's attachment folder.

    Raises:
        FetchError: FETCH_FOLDER_CONFLICT if a file stands where the folder should be,
            FETCH_BOTH_FAILED if neither format could be saved
    """
    note_path = normalize_path(note_path)
    folder_path = attachment_folder(note_path)
    html_path = join_path(folder_path, f"{arxiv_id}.html")
    pdf_path = join_path(folder_path, f"{arxiv_id}.pdf")

    start_message = f"component=paper_fetcher notePath={note_path} id={arxiv_id}"
    with log_block(vault, log_dir, start_message) as block:
        block.set(folderPath=folder_path)

        if vault.exists(folder_path) and not vault.is_folder(folder_path):
            raise FetchError(
                "FETCH_FOLDER_CONFLICT",
                f"a non-folder entry exists at {folder_path}",
                user_message="A file already exists where the paper folder should be.",
            )
        vault.create_folder(folder_path)

        html_saved, html_status = await _fetch_one(vault, get_html_url(arxiv_id), html_path, binary=False, session=session)
        pdf_saved, pdf_status = await _fetch_one(vault, get_pdf_url(arxiv_id), pdf_path, binary=True, session=session)

        block.set(
            html="OK" if html_saved else "NG",
            pdf="OK" if pdf_saved else "NG",
            htmlStatus=html_status,
            pdfStatus=pdf_status,
        )

        if not html_saved and not pdf_saved:
            raise FetchError(
                "FETCH_BOTH_FAILED",
                f"html:{html_status} pdf:{pdf_status}",
                user_message="Failed to fetch arXiv content.",
            )

        block.succeed()
        return FetchResult(
            arxiv_id=arxiv_id,
            note_path=note_path,
            folder_path=folder_path,
            html_path=html_path,
            pdf_path=pdf_path,
            html_saved=html_saved,
            pdf_saved=pdf_saved,
            html_status=html_status,
            pdf_status=pdf_status,
        )
