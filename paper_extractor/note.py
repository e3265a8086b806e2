"""Note text helpers: url_01 lookup, template injection, summary block upsert."""

import re

from .errors import NoteError

SUMMARY_START_MARKER = "<!-- paper_extractor:summary:start -->"
SUMMARY_END_MARKER = "<!-- paper_extractor:summary:end -->"
URL_PLACEHOLDER = "{{url}}"

_URL_01_RE = re.compile(r"^######\s*url_01:\s*(\S+)?\s*$")


def extract_url_from_note(text: str) -> str:
    """Return the URL on the first `###### url_01:` line.

    The URL is either inline after the colon or on the first non-blank
    line that follows.

    Raises:
        NoteError: URL_01_NOT_FOUND
    """
    lines = text.splitlines()
    for i, line in enumerate(lines):
        match = _URL_01_RE.match(line)
        if not match:
            continue
        if match.group(1):
            return match.group(1)
        for following in lines[i + 1:]:
            if following.strip():
                return following.strip()
        break

    raise NoteError("URL_01_NOT_FOUND", "no '###### url_01:' line with a URL", user_message="url_01 not found in the note.")


def inject_url(template_text: str, url: str) -> str:
    """Replace every {{url}} placeholder in the template.

    Raises:
        NoteError: TEMPLATE_URL_PLACEHOLDER_MISSING
    """
    if URL_PLACEHOLDER not in template_text:
        raise NoteError(
            "TEMPLATE_URL_PLACEHOLDER_MISSING",
            f"template has no {URL_PLACEHOLDER} placeholder",
            user_message="The note template must contain {{url}}.",
        )
    return template_text.replace(URL_PLACEHOLDER, url)


def build_summary_block(summary: str) -> str:
    return f"{SUMMARY_START_MARKER}\n\n{summary}\n\n{SUMMARY_END_MARKER}"


def upsert_summary_block(text: str, summary: str) -> str:
    """Replace the existing summary block in place, or append one at the end."""
    block = build_summary_block(summary)
    start = text.find(SUMMARY_START_MARKER)
    end = text.find(SUMMARY_END_MARKER)
    if start != -1 and end != -1 and start < end:
        return text[:start] + block + text[end + len(SUMMARY_END_MARKER):]

    separator = "\n" if text.endswith("\n") else "\n\n"
    return f"{text}{separator}{block}"
