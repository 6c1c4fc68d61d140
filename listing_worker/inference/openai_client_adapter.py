from typing import Any

import httpx
import openai

from listing_worker.inference.client_base import BaseInferenceClient, InferenceResponse
from listing_worker.inference.exceptions import (
    EmptyResponseError,
    InferenceNetworkError,
    InferenceTerminalError,
)
from listing_worker.stages.models import StageRequest


class OpenAIClientAdapter(BaseInferenceClient):
    """Inference client built on the OpenAI-compatible chat completions API."""

    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        timeout_seconds: int,
        base_url: str | None = None,
        max_output_tokens: int | None = None,
    ) -> None:
        self._client = openai.OpenAI(
            api_key=api_key,
            timeout=timeout_seconds,
            base_url=base_url,
            max_retries=0,
        )
        self._model = model
        self._max_output_tokens = max_output_tokens

    def invoke(self, request: StageRequest) -> InferenceResponse:
        kwargs: dict[str, Any] = {
            "model": self._model,
            "messages": _build_messages(request),
        }
        if request.json_mode:
            kwargs["response_format"] = {"type": "json_object"}
        max_tokens = request.max_output_tokens or self._max_output_tokens
        if max_tokens:
            kwargs["max_completion_tokens"] = max_tokens

        try:
            response = self._client.chat.completions.create(**kwargs)
        except (openai.APIConnectionError, httpx.ConnectError, httpx.TimeoutException) as exc:
            raise InferenceNetworkError(f"AI provider network error: {exc}") from exc
        except (openai.BadRequestError, openai.UnprocessableEntityError) as exc:
            raise InferenceTerminalError(f"AI provider rejected request: {exc}") from exc
        except openai.APIError as exc:
            raise InferenceNetworkError(f"AI provider API error: {exc}") from exc

        if not response.choices:
            raise EmptyResponseError("AI returned no choices")
        content = response.choices[0].message.content
        if not content:
            raise EmptyResponseError("AI returned empty response")
        return content


def _build_messages(request: StageRequest) -> list[dict[str, Any]]:
    messages: list[dict[str, Any]] = []
    if request.system_prompt:
        messages.append({"role": "system", "content": request.system_prompt})
    if request.image_urls:
        content: list[dict[str, Any]] = [{"type": "text", "text": request.user_prompt}]
        content.extend(
            {"type": "image_url", "image_url": {"url": url}} for url in request.image_urls
        )
        messages.append({"role": "user", "content": content})
    else:
        messages.append({"role": "user", "content": request.user_prompt})
    return messages
