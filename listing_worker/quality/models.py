from dataclasses import dataclass, field


@dataclass(frozen=True)
class QualityConfig:
    """Targets of the listing quality model."""

    fill_rate_threshold: int = 60
    description_min_length: int = 1300
    description_max_length: int = 2000
    title_max_length: int = 60


@dataclass(frozen=True)
class QualityMetrics:
    """Composite 0-100 quality score of one analyzed listing."""

    fill_rate: int
    title_length: int
    description_length: int
    overall_score: int
    acceptable: bool
    fill_component: float = 0.0
    description_component: float = 0.0
    title_component: float = 0.0
    issues: list[str] = field(default_factory=list)
