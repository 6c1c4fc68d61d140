from listing_worker.inference.client_base import BaseInferenceClient
from listing_worker.inference.factory import InferenceClientFactory

__all__ = ["BaseInferenceClient", "InferenceClientFactory"]
