from abc import ABC, abstractmethod
from typing import Any

from listing_worker.stages.models import StageRequest

InferenceResponse = str | dict[str, Any] | list[Any]


class BaseInferenceClient(ABC):
    """Contract for provider-specific inference clients."""

    @abstractmethod
    def invoke(self, request: StageRequest) -> InferenceResponse:
        """Send one request and return the provider response untouched.

        The response may be plain text, a JSON object, or a list of typed
        output elements of which one has type "message".

        Raises:
            InferenceError: on any failure. InferenceTerminalError when the
                request itself was rejected.
        """
