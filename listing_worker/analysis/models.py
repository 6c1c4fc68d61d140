from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any

from listing_worker.quality.models import QualityMetrics
from listing_worker.reconciliation.models import CanonicalAttribute


@dataclass
class AnalysisResult:
    """Everything the analysis pipeline produces for one subject."""

    attributes: list[CanonicalAttribute]
    title: str
    description: str
    quality: QualityMetrics
    warnings: list[str] = field(default_factory=list)
    stage_attempts: dict[str, int] = field(default_factory=dict)
    stage_errors: dict[str, str] = field(default_factory=dict)
    processed_at: datetime | None = None

    @property
    def degraded(self) -> bool:
        return bool(self.warnings)

    def to_payload(self) -> dict[str, Any]:
        """JSON-ready dict for the subject's analysis_result column."""
        payload = asdict(self)
        payload["processed_at"] = self.processed_at.isoformat() if self.processed_at else None
        return payload
