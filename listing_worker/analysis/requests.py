"""Prompt building for the three pipeline stages."""

import json
import math
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from listing_worker.database.models import Subject
from listing_worker.inference.prompt_loader import load_prompt_template
from listing_worker.quality.models import QualityConfig
from listing_worker.reconciliation.models import AttributeDefinition, CanonicalAttribute
from listing_worker.stages.extraction import RAW_TEXT_KEY
from listing_worker.stages.models import StageName, StageRequest

SYSTEM_PROMPT = (
    "You are a marketplace catalog specialist. Answer with a single JSON object "
    "and nothing else."
)
FILL_TARGET_SHARE = 0.75
MAX_OPTIONAL_ATTRIBUTES = 20
MAX_ALLOWED_VALUES_SHOWN = 3
MAX_RAW_TEXT_CHARS = 4000


class StageRequestBuilder:
    """Renders the bundled prompt templates into stage requests."""

    def __init__(
        self,
        quality: QualityConfig | None = None,
        prompt_dir: Path | None = None,
    ) -> None:
        self._quality = quality or QualityConfig()
        self._research = load_prompt_template("research_prompt.txt", prompt_dir)
        self._alignment = load_prompt_template("catalog_alignment_prompt.txt", prompt_dir)
        self._copywriting = load_prompt_template("copywriting_prompt.txt", prompt_dir)

    def research(self, subject: Subject) -> StageRequest:
        has_reference = bool(subject.reference_url.strip())
        if has_reference:
            source_instructions = (
                f"Open the reference page {subject.reference_url} and take every "
                "characteristic from it, then complete them from the photos."
            )
        else:
            source_instructions = (
                f'Search for "{subject.name} specifications" and "{subject.name} review" '
                "and complete the findings from the photos."
            )
        prompt = self._research.format(
            name=subject.name,
            source_instructions=source_instructions,
            description=subject.description or "-",
            package_contents=subject.package_contents or "-",
            price=subject.price if subject.price is not None else "-",
            has_reference=json.dumps(has_reference),
        )
        return StageRequest(
            stage=StageName.RESEARCH,
            system_prompt=SYSTEM_PROMPT,
            user_prompt=prompt,
            image_urls=tuple(subject.image_urls),
        )

    def catalog_alignment(
        self,
        subject: Subject,
        research: dict[str, Any],
        catalog: Sequence[AttributeDefinition],
    ) -> StageRequest:
        required = [a for a in catalog if a.required]
        optional = [a for a in catalog if not a.required][:MAX_OPTIONAL_ATTRIBUTES]
        prompt = self._alignment.format(
            name=subject.name,
            found_characteristics=_describe_research(research),
            fill_target=math.ceil(len(catalog) * FILL_TARGET_SHARE),
            attribute_count=len(catalog),
            required_attributes=_describe_attributes(required) or "-",
            optional_attributes=_describe_attributes(optional) or "-",
        )
        return StageRequest(
            stage=StageName.CATALOG_ALIGNMENT,
            system_prompt=SYSTEM_PROMPT,
            user_prompt=prompt,
        )

    def copywriting(
        self,
        subject: Subject,
        attributes: Sequence[CanonicalAttribute],
    ) -> StageRequest:
        characteristics = "\n".join(
            f"- {a.name}: {a.value}" for a in attributes if a.value is not None
        )
        prompt = self._copywriting.format(
            name=subject.name,
            characteristics=characteristics or "-",
            description=subject.description or "-",
            title_max_length=self._quality.title_max_length,
            description_min_length=self._quality.description_min_length,
            description_max_length=self._quality.description_max_length,
        )
        return StageRequest(
            stage=StageName.COPYWRITING,
            system_prompt=SYSTEM_PROMPT,
            user_prompt=prompt,
        )


def _describe_research(research: dict[str, Any]) -> str:
    found = research.get("finalCharacteristics") or research.get("characteristics")
    if isinstance(found, list) and found:
        lines = []
        for index, item in enumerate(found, start=1):
            if not isinstance(item, dict):
                continue
            lines.append(
                f"{index}. {item.get('name')}: {item.get('value')} "
                f"(source: {item.get('source', 'unknown')})"
            )
        if lines:
            return "\n".join(lines)
    raw_text = research.get(RAW_TEXT_KEY)
    if isinstance(raw_text, str) and raw_text.strip():
        return raw_text[:MAX_RAW_TEXT_CHARS]
    return "No characteristics found"


def _describe_attributes(attributes: Sequence[AttributeDefinition]) -> str:
    lines = []
    for attribute in attributes:
        line = f"- {attribute.name} (ID: {attribute.id}) - {attribute.type.upper()}"
        if attribute.allowed_values:
            shown = ", ".join(attribute.allowed_values[:MAX_ALLOWED_VALUES_SHOWN])
            line += f" [values: {shown}]"
        lines.append(line)
    return "\n".join(lines)
