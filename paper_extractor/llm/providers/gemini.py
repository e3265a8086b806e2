"""Gemini generateContent provider."""

from typing import Any
from urllib.parse import quote

import requests

from common.fetcher_utils import http_request, is_success
from ...errors import ProviderError
from ..types import SummarizeParams

GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta"


def extract_candidate_text(body: Any) -> str:
    """Concatenate the text parts of the first candidate; "" if absent."""
    if not isinstance(body, dict):
        return ""
    candidates = body.get("candidates") or []
    if not candidates or not isinstance(candidates[0], dict):
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(p.get("text") or "" for p in parts if isinstance(p, dict)).strip()


class GeminiProvider:
    """Single POST with a systemInstruction + contents envelope."""

    name = "gemini"
    uses_document = False

    def __init__(self, api_key: str, model: str, session=None):
        self.api_key = api_key
        self.model = model
        self.session = session

    async def summarize(self, params: SummarizeParams) -> str:
        url = f"{GEMINI_API_BASE}/models/{quote(self.model, safe='')}:generateContent"
        payload = {
            "systemInstruction": {"parts": [{"text": params.system_prompt}]},
            "contents": [{"parts": [{"text": params.user_content}]}],
        }
        headers = {
            "x-goog-api-key": self.api_key,
            "Content-Type": "application/json",
        }

        try:
            response = await http_request("POST", url, session=self.session, headers=headers, json=payload)
        except requests.RequestException as e:
            raise ProviderError("gemini", "request", str(e)) from e

        if not is_success(response.status_code):
            detail = ""
            try:
                error = response.json().get("error") or {}
                detail = f"status={error.get('status', '')} message={error.get('message', '')}"
            except (ValueError, AttributeError):
                pass
            raise ProviderError("gemini", "request", f"httpStatus={response.status_code} {detail}".strip())

        try:
            body = response.json()
        except ValueError as e:
            raise ProviderError("gemini", "response", "body is not JSON", code="GEMINI_RESPONSE_INVALID") from e

        text = extract_candidate_text(body)
        if not text:
            raise ProviderError("gemini", "response", "no candidate text", code="GEMINI_RESPONSE_INVALID")
        return text
