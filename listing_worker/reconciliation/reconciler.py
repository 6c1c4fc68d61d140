"""Merge of research (stage 1) and catalog-alignment (stage 2) outputs.

Stage 2 answers against the catalog and carries attribute ids, so it is the
primary source. Stage 1 is free-form and is only mined when stage 2 yields
nothing.
"""

import re
from collections.abc import Iterable, Iterator, Sequence
from typing import Any

from listing_worker.logging.logger import Log
from listing_worker.reconciliation.coercion import coerce_value
from listing_worker.reconciliation.matching import match_attribute, normalize_name
from listing_worker.reconciliation.models import (
    NUMBER_TYPE,
    STRING_TYPE,
    UNRESOLVED_ID,
    AttributeDefinition,
    CanonicalAttribute,
    ReconcileConfig,
)
from listing_worker.stages.extraction import RAW_TEXT_KEY
from listing_worker.stages.models import StageName

# Where the research stage puts characteristics, in order of trust.
_STAGE1_LIST_PATHS: tuple[tuple[str, ...], ...] = (
    ("finalCharacteristics",),
    ("characteristics",),
    ("referenceData", "characteristics"),
    ("photoData", "characteristics"),
    ("technicalSpecs", "confirmed"),
)
_STAGE2_LIST_PATHS: tuple[tuple[str, ...], ...] = (
    ("characteristics",),
    ("attributes",),
)

_TEXT_LINE = re.compile(r"^\s*(?:[-*•]\s*|\d+[.)]\s*)?([^:\n]{1,80}?)\s*:\s*(.+?)\s*$")


def reconcile(
    stage1: dict[str, Any],
    stage2: dict[str, Any],
    catalog: Sequence[AttributeDefinition],
    config: ReconcileConfig | None = None,
) -> list[CanonicalAttribute]:
    """Build the canonical attribute list of a listing.

    Returns at most one attribute per resolved catalog id, first occurrence
    wins. Unresolved attributes keep id 0 and follow the resolved ones.
    """
    config = config or ReconcileConfig()

    entries = list(_stage2_entries(stage2))
    if entries:
        source, confidence = StageName.CATALOG_ALIGNMENT.value, config.catalog_confidence
    else:
        entries = list(_stage1_entries(stage1))
        source, confidence = StageName.RESEARCH.value, config.freeform_confidence
        if entries:
            Log.warning(
                f"Catalog alignment produced no attributes, mined {len(entries)} from research"
            )

    resolved: dict[int, CanonicalAttribute] = {}
    unresolved: dict[str, CanonicalAttribute] = {}
    for entry in entries:
        attribute = _canonicalize(entry, catalog, source, confidence)
        if attribute is None:
            continue
        if attribute.resolved:
            resolved.setdefault(attribute.id, attribute)
        else:
            unresolved.setdefault(normalize_name(attribute.name), attribute)

    Log.info(
        f"Reconciled {len(resolved)} resolved and {len(unresolved)} unresolved "
        f"attributes from {source} against {len(catalog)} catalog entries"
    )
    return [*resolved.values(), *unresolved.values()]


def _canonicalize(
    entry: dict[str, Any],
    catalog: Sequence[AttributeDefinition],
    source: str,
    confidence: float,
) -> CanonicalAttribute | None:
    raw_name = entry.get("name")
    name = raw_name.strip() if isinstance(raw_name, str) else ""
    raw_value = entry.get("value")
    if _is_blank(raw_value):
        return None

    match = match_attribute(name, catalog, raw_id=entry.get("id"))
    if match is None:
        if not name:
            return None
        return CanonicalAttribute(
            id=UNRESOLVED_ID,
            name=name,
            value=_plain_value(raw_value),
            confidence=confidence,
            source_stage=source,
            detected_type=_detected_type(raw_value),
        )

    definition = match.attribute
    return CanonicalAttribute(
        id=definition.id,
        name=definition.name,
        value=coerce_value(_plain_value(raw_value), definition.type),
        confidence=confidence,
        source_stage=source,
        detected_type=definition.type,
        match_method=match.method,
    )


def _stage2_entries(stage2: dict[str, Any]) -> Iterator[dict[str, Any]]:
    yield from _list_entries(stage2, _STAGE2_LIST_PATHS)


def _stage1_entries(stage1: dict[str, Any]) -> Iterator[dict[str, Any]]:
    yield from _list_entries(stage1, _STAGE1_LIST_PATHS)
    raw_text = stage1.get(RAW_TEXT_KEY)
    if isinstance(raw_text, str):
        yield from _text_entries(raw_text)


def _list_entries(
    data: dict[str, Any], paths: Iterable[tuple[str, ...]]
) -> Iterator[dict[str, Any]]:
    for path in paths:
        node: Any = data
        for key in path:
            node = node.get(key) if isinstance(node, dict) else None
        if isinstance(node, list):
            yield from (item for item in node if isinstance(item, dict))


def _text_entries(text: str) -> Iterator[dict[str, Any]]:
    for line in text.splitlines():
        match = _TEXT_LINE.match(line)
        if match:
            yield {"name": match.group(1), "value": match.group(2)}


def _is_blank(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, dict)):
        return not value
    return False


def _plain_value(value: object) -> Any:
    """Lists of values are joined, other non-scalar values are stringified."""
    if isinstance(value, list):
        return ", ".join(str(item) for item in value if not _is_blank(item))
    if isinstance(value, dict):
        return str(value.get("value", value))
    return value


def _detected_type(value: object) -> str:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return NUMBER_TYPE
    return STRING_TYPE
