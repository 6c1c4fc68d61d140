import math
from collections.abc import Sequence

from listing_worker.quality.models import QualityConfig, QualityMetrics
from listing_worker.reconciliation.models import CanonicalAttribute

FILL_WEIGHT = 50.0
DESCRIPTION_WEIGHT = 30.0
TITLE_WEIGHT = 20.0
DESCRIPTION_DEVIATION_STEP = 50.0
TITLE_SHORTFALL_PENALTY = 0.5


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class QualityScorer:
    """Scores attribute fill rate and text lengths of a listing."""

    def __init__(self, config: QualityConfig | None = None) -> None:
        self._config = config or QualityConfig()

    def score(
        self,
        attributes: Sequence[CanonicalAttribute],
        catalog_size: int,
        title_length: int,
        description_length: int,
    ) -> QualityMetrics:
        config = self._config
        filled = sum(1 for a in attributes if a.resolved and a.value is not None)
        fill_rate = round_half_up(100 * filled / catalog_size) if catalog_size > 0 else 0

        fill_component = min(FILL_WEIGHT, fill_rate / config.fill_rate_threshold * FILL_WEIGHT)
        description_component = self._description_component(description_length)
        title_component = self._title_component(title_length)

        return QualityMetrics(
            fill_rate=fill_rate,
            title_length=title_length,
            description_length=description_length,
            overall_score=round_half_up(fill_component + description_component + title_component),
            acceptable=fill_rate >= config.fill_rate_threshold,
            fill_component=fill_component,
            description_component=description_component,
            title_component=title_component,
            issues=self._issues(fill_rate, title_length, description_length),
        )

    def _description_component(self, length: int) -> float:
        low, high = self._config.description_min_length, self._config.description_max_length
        if low <= length <= high:
            return DESCRIPTION_WEIGHT
        deviation = abs(length - (low + high) / 2)
        return max(0.0, DESCRIPTION_WEIGHT - deviation / DESCRIPTION_DEVIATION_STEP)

    def _title_component(self, length: int) -> float:
        limit = self._config.title_max_length
        if length > limit:
            return 0.0
        return max(0.0, TITLE_WEIGHT - (limit - length) * TITLE_SHORTFALL_PENALTY)

    def _issues(self, fill_rate: int, title_length: int, description_length: int) -> list[str]:
        config = self._config
        issues: list[str] = []
        if fill_rate < config.fill_rate_threshold:
            issues.append(
                f"Only {fill_rate}% of category attributes filled, "
                f"target is {config.fill_rate_threshold}%"
            )
        if not config.description_min_length <= description_length <= config.description_max_length:
            issues.append(
                f"Description has {description_length} characters, expected "
                f"{config.description_min_length}-{config.description_max_length}"
            )
        if title_length > config.title_max_length:
            issues.append(
                f"Title has {title_length} characters, limit is {config.title_max_length}"
            )
        elif title_length == 0:
            issues.append("Title is empty")
        return issues


def truncate_title(title: str, max_length: int) -> str:
    """Shorten a title at word boundaries; hard-cut with "..." if one word is too long."""
    if len(title) <= max_length:
        return title
    truncated = ""
    for word in title.split(" "):
        candidate = f"{truncated} {word}".strip()
        if len(candidate) > max_length:
            break
        truncated = candidate
    return truncated or title[: max_length - 3] + "..."
