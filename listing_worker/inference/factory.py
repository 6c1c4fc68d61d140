from typing import ClassVar

from listing_worker.config.settings import Settings
from listing_worker.inference.client_base import BaseInferenceClient
from listing_worker.inference.example_client_adapter import ExampleClientAdapter
from listing_worker.inference.openai_client_adapter import OpenAIClientAdapter
from listing_worker.inference.openai_responses_adapter import OpenAIResponsesClientAdapter


class InferenceClientFactory:
    """Creates the configured inference client adapter."""

    OPENAI_COMPATIBLE_BASE_URLS: ClassVar[dict[str, str]] = {
        "openrouter": "https://openrouter.ai/api/v1",
        "groq": "https://api.groq.com/openai/v1",
        "together": "https://api.together.xyz/v1",
        "deepseek": "https://api.deepseek.com/v1",
        "ollama": "http://localhost:11434/v1",
    }

    @classmethod
    def create(cls, settings: Settings) -> BaseInferenceClient:
        """Create a configured inference client from application settings."""
        provider = settings.inference_provider.lower()
        if provider == "example":
            return ExampleClientAdapter()
        adapter_cls = (
            OpenAIResponsesClientAdapter if provider == "openai_responses" else OpenAIClientAdapter
        )
        return adapter_cls(
            api_key=settings.inference_api_key,
            model=settings.inference_model_name,
            timeout_seconds=settings.inference_timeout_seconds,
            base_url=cls._resolve_base_url(provider, settings),
            max_output_tokens=settings.inference_max_output_tokens,
        )

    @classmethod
    def _resolve_base_url(cls, provider: str, settings: Settings) -> str | None:
        configured = (settings.inference_base_url or "").strip()
        if provider in ("openai", "openai_responses"):
            return configured or None
        if provider == "openai_compatible":
            if not configured:
                raise ValueError(
                    "inference_base_url is required for inference_provider=openai_compatible"
                )
            return configured
        default_base_url = cls.OPENAI_COMPATIBLE_BASE_URLS.get(provider)
        if default_base_url is not None:
            return configured or default_base_url
        supported = [
            "example",
            "openai",
            "openai_responses",
            "openai_compatible",
            *sorted(cls.OPENAI_COMPATIBLE_BASE_URLS),
        ]
        raise ValueError(
            f"Unknown inference provider '{provider}'. Choose from: {supported}"
        )
