"""Example inference client adapter.

Use this module as a reference when implementing new provider adapters.
Implement BaseInferenceClient and register the provider in InferenceClientFactory.
"""

import json
from typing import Any, ClassVar

from listing_worker.inference.client_base import BaseInferenceClient, InferenceResponse
from listing_worker.stages.models import StageName, StageRequest


class ExampleClientAdapter(BaseInferenceClient):
    """Example adapter that returns a fixed valid JSON document per stage.

    No network calls. Useful for local development and tests.
    """

    DEFAULT_RESPONSES: ClassVar[dict[StageName, dict[str, Any]]] = {
        StageName.RESEARCH: {
            "finalCharacteristics": [],
            "confidence": 0.5,
        },
        StageName.CATALOG_ALIGNMENT: {
            "characteristics": [],
            "confidence": 0.5,
        },
        StageName.COPYWRITING: {
            "seoTitle": "",
            "seoDescription": "",
            "confidence": 0.5,
        },
    }

    def invoke(self, request: StageRequest) -> InferenceResponse:
        return json.dumps(self.DEFAULT_RESPONSES[request.stage], ensure_ascii=False)
