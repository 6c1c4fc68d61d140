"""Resolution of loosely named attributes against catalog definitions.

Pure functions, no I/O. Resolution order: exact id, exact normalized name,
then best token overlap.
"""

import re
from collections.abc import Sequence

from listing_worker.reconciliation.models import AttributeDefinition, AttributeMatch

MATCH_BY_ID = "id"
MATCH_BY_NAME = "name"
MATCH_BY_TOKENS = "tokens"

_WHITESPACE = re.compile(r"\s+")


def normalize_name(name: str) -> str:
    """Lower-case, underscores as spaces, internal whitespace collapsed."""
    return _WHITESPACE.sub(" ", name.replace("_", " ").lower()).strip()


def name_tokens(name: str) -> list[str]:
    return normalize_name(name).split()


def match_attribute(
    raw_name: str,
    catalog: Sequence[AttributeDefinition],
    raw_id: object = None,
) -> AttributeMatch | None:
    """Resolve a raw attribute to a catalog entry, or None if nothing fits."""
    attribute_id = _as_id(raw_id)
    if attribute_id is not None:
        for attribute in catalog:
            if attribute.id == attribute_id:
                return AttributeMatch(attribute, MATCH_BY_ID)

    normalized = normalize_name(raw_name or "")
    if not normalized:
        return None

    for attribute in catalog:
        if normalize_name(attribute.name) == normalized:
            return AttributeMatch(attribute, MATCH_BY_NAME)

    raw_tokens = set(normalized.split())
    required = min(2, len(raw_tokens))
    best: AttributeDefinition | None = None
    best_shared = 0
    for attribute in catalog:
        shared = len(raw_tokens & set(name_tokens(attribute.name)))
        if shared > best_shared:
            best, best_shared = attribute, shared
    if best is not None and best_shared >= required:
        return AttributeMatch(best, MATCH_BY_TOKENS)
    return None


def _as_id(raw_id: object) -> int | None:
    if isinstance(raw_id, bool):
        return None
    if isinstance(raw_id, int):
        return raw_id if raw_id > 0 else None
    if isinstance(raw_id, float) and raw_id.is_integer():
        return int(raw_id) if raw_id > 0 else None
    if isinstance(raw_id, str) and raw_id.strip().isdigit():
        return int(raw_id.strip()) or None
    return None
