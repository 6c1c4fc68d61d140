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


class OpenAIResponsesClientAdapter(BaseInferenceClient):
    """Inference client built on the OpenAI Responses API.

    Returns the raw list of output elements (reasoning, tool calls, the
    "message" element). Unwrapping the message text is left to the stage
    executor.
    """

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
        content: list[dict[str, Any]] = [{"type": "input_text", "text": request.user_prompt}]
        content.extend(
            {"type": "input_image", "image_url": url} for url in request.image_urls
        )
        kwargs: dict[str, Any] = {
            "model": self._model,
            "input": [{"type": "message", "role": "user", "content": content}],
        }
        if request.system_prompt:
            kwargs["instructions"] = request.system_prompt
        max_tokens = request.max_output_tokens or self._max_output_tokens
        if max_tokens:
            kwargs["max_output_tokens"] = max_tokens

        try:
            response = self._client.responses.create(**kwargs)
        except (openai.APIConnectionError, httpx.ConnectError, httpx.TimeoutException) as exc:
            raise InferenceNetworkError(f"AI provider network error: {exc}") from exc
        except (openai.BadRequestError, openai.UnprocessableEntityError) as exc:
            raise InferenceTerminalError(f"AI provider rejected request: {exc}") from exc
        except openai.APIError as exc:
            raise InferenceNetworkError(f"AI provider API error: {exc}") from exc

        output = getattr(response, "output", None)
        if not output:
            raise EmptyResponseError("AI returned empty output")
        return [_to_dict(item) for item in output]


def _to_dict(item: Any) -> Any:
    if hasattr(item, "model_dump"):
        return item.model_dump()
    return item
