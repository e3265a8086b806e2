"""Tests for arXiv URL helpers."""

import pytest

from common.url_utils import extract_arxiv_id, get_abs_url, get_html_url, get_pdf_url


@pytest.mark.parametrize("url,expected", [
    ("https://arxiv.org/abs/2301.00001", "2301.00001"),
    ("http://www.arxiv.org/abs/2301.00001v2/", "2301.00001v2"),
    ("https://arxiv.org/pdf/2301.00001.pdf", "2301.00001"),
    ("https://arxiv.org/html/2301.00001v1.html", "2301.00001v1"),
])
def test_extract_arxiv_id(url, expected):
    assert extract_arxiv_id(url) == expected


@pytest.mark.parametrize("url,message", [
    ("", "Invalid URL"),
    ("arxiv.org/abs/2301.00001", "Invalid URL"),
    ("https://example.com/abs/2301.00001", "Not an arXiv URL"),
    ("https://arxiv.org/list/cs.CL", "Unsupported arXiv URL format"),
    ("https://arxiv.org/abs/hep-th/9901001", "Unsupported arXiv id format"),
])
def test_extract_arxiv_id_errors(url, message):
    with pytest.raises(ValueError, match=message):
        extract_arxiv_id(url)


def test_builders():
    assert get_abs_url("2301.00001") == "https://arxiv.org/abs/2301.00001"
    assert get_html_url("2301.00001") == "https://arxiv.org/html/2301.00001"
    assert get_pdf_url("2301.00001") == "https://arxiv.org/pdf/2301.00001"
