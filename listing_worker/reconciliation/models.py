from dataclasses import dataclass, field

AttributeValue = str | int | float | None

UNRESOLVED_ID = 0
NUMBER_TYPE = "number"
STRING_TYPE = "string"


@dataclass(frozen=True)
class AttributeDefinition:
    """One attribute of a marketplace category."""

    id: int
    name: str
    type: str = STRING_TYPE
    required: bool = False
    allowed_values: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class AttributeMatch:
    """A catalog entry resolved for a raw attribute, and how it was found."""

    attribute: AttributeDefinition
    method: str


@dataclass(frozen=True)
class CanonicalAttribute:
    """A reconciled attribute ready to be persisted with the listing."""

    id: int
    name: str
    value: AttributeValue
    confidence: float
    source_stage: str
    detected_type: str
    match_method: str | None = None

    @property
    def resolved(self) -> bool:
        return self.id != UNRESOLVED_ID


@dataclass(frozen=True)
class ReconcileConfig:
    """Confidence assigned per source; business tuning values."""

    catalog_confidence: float = 0.95
    freeform_confidence: float = 0.85
