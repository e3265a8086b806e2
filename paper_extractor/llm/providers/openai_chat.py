"""OpenAI-compatible Chat Completions provider."""

from openai import APIError, APIStatusError, AsyncOpenAI
from openai.types.chat import ChatCompletionSystemMessageParam, ChatCompletionUserMessageParam

from ...errors import ProviderError
from ..types import SummarizeParams


def _status_error_detail(error: APIStatusError) -> str:
    body = error.body if isinstance(error.body, dict) else {}
    if isinstance(body.get("error"), dict):
        body = body["error"]
    return f"type={body.get('type') or ''} code={body.get('code') or ''} message={error.message}"


class OpenAiChatProvider:
    """One POST to /chat/completions with system + user messages.

    The SDK's own retries are disabled: a failed call is terminal.
    """

    name = "openai"
    uses_document = False

    def __init__(self, api_key: str, model: str, base_url: str | None = None, client: AsyncOpenAI | None = None):
        self.model = model
        client_kwargs = {"api_key": api_key, "max_retries": 0}
        if base_url:
            client_kwargs["base_url"] = base_url
        self.client = client or AsyncOpenAI(**client_kwargs)

    async def summarize(self, params: SummarizeParams) -> str:
        message_system_prompt: ChatCompletionSystemMessageParam = {"role": "system", "content": params.system_prompt}
        message_user_prompt: ChatCompletionUserMessageParam = {"role": "user", "content": params.user_content}

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[message_system_prompt, message_user_prompt],
            )
        except APIStatusError as e:
            raise ProviderError("openai", "request", _status_error_detail(e), status=e.status_code) from e
        except APIError as e:
            raise ProviderError("openai", "request", str(e)) from e

        choices = getattr(response, "choices", None) or []
        text = choices[0].message.content if choices else None
        if not isinstance(text, str) or not text.strip():
            raise ProviderError("openai", "response", "empty message content", code="OPENAI_RESPONSE_INVALID")
        return text.strip()
