import json

import pytest

from listing_worker.inference.example_client_adapter import ExampleClientAdapter
from listing_worker.stages.models import StageName, StageRequest


class TestExampleClientAdapter:
    @pytest.mark.parametrize("stage", list(StageName))
    def test_returns_valid_json_for_every_stage(self, stage: StageName) -> None:
        adapter = ExampleClientAdapter()

        content = adapter.invoke(StageRequest(stage=stage, user_prompt="prompt"))

        assert isinstance(json.loads(content), dict)

    def test_alignment_response_has_characteristics_list(self) -> None:
        adapter = ExampleClientAdapter()

        content = adapter.invoke(
            StageRequest(stage=StageName.CATALOG_ALIGNMENT, user_prompt="prompt")
        )

        assert json.loads(content)["characteristics"] == []
