import pytest

from listing_worker.quality.models import QualityConfig
from listing_worker.quality.scorer import QualityScorer, round_half_up, truncate_title
from listing_worker.reconciliation.models import CanonicalAttribute


def _attributes(filled: int, unresolved: int = 0, empty: int = 0) -> list[CanonicalAttribute]:
    result = [
        CanonicalAttribute(
            id=i + 1, name=f"a{i}", value="x", confidence=0.95,
            source_stage="catalog_alignment", detected_type="string",
        )
        for i in range(filled)
    ]
    result += [
        CanonicalAttribute(
            id=100 + i, name=f"n{i}", value=None, confidence=0.95,
            source_stage="catalog_alignment", detected_type="number",
        )
        for i in range(empty)
    ]
    result += [
        CanonicalAttribute(
            id=0, name=f"u{i}", value="y", confidence=0.85,
            source_stage="research", detected_type="string",
        )
        for i in range(unresolved)
    ]
    return result


class TestQualityScore:
    def test_reference_scenario_scores_full_marks(self) -> None:
        metrics = QualityScorer().score(_attributes(12), 20, 60, 1650)

        assert metrics.fill_rate == 60
        assert metrics.fill_component == 50
        assert metrics.description_component == 30
        assert metrics.title_component == 20
        assert metrics.overall_score == 100
        assert metrics.acceptable is True
        assert metrics.issues == []

    def test_unresolved_and_empty_attributes_do_not_count(self) -> None:
        metrics = QualityScorer().score(_attributes(6, unresolved=5, empty=3), 20, 60, 1650)

        assert metrics.fill_rate == 30
        assert metrics.fill_component == 25
        assert metrics.acceptable is False
        assert any("30%" in issue for issue in metrics.issues)

    def test_fill_component_is_capped(self) -> None:
        metrics = QualityScorer().score(_attributes(20), 20, 60, 1650)

        assert metrics.fill_rate == 100
        assert metrics.fill_component == 50

    def test_empty_catalog_gives_zero_fill_rate(self) -> None:
        metrics = QualityScorer().score([], 0, 60, 1650)

        assert metrics.fill_rate == 0
        assert metrics.fill_component == 0

    def test_description_outside_range_loses_points(self) -> None:
        metrics = QualityScorer().score(_attributes(12), 20, 60, 650)

        # 1000 characters from the range midpoint of 1650.
        assert metrics.description_component == 10
        assert any("650 characters" in issue for issue in metrics.issues)

    def test_short_title_loses_half_point_per_character(self) -> None:
        metrics = QualityScorer().score(_attributes(12), 20, 40, 1650)

        assert metrics.title_component == 10
        assert metrics.overall_score == 90

    def test_title_over_limit_scores_zero(self) -> None:
        metrics = QualityScorer().score(_attributes(12), 20, 61, 1650)

        assert metrics.title_component == 0
        assert any("limit is 60" in issue for issue in metrics.issues)

    def test_uses_configured_threshold(self) -> None:
        scorer = QualityScorer(QualityConfig(fill_rate_threshold=50))

        metrics = scorer.score(_attributes(10), 20, 60, 1650)

        assert metrics.acceptable is True
        assert metrics.fill_component == 50


class TestRoundHalfUp:
    @pytest.mark.parametrize(("value", "expected"), [(0.5, 1), (1.5, 2), (2.5, 3), (2.49, 2)])
    def test_rounds_halves_up(self, value: float, expected: int) -> None:
        assert round_half_up(value) == expected


class TestTruncateTitle:
    def test_short_title_is_unchanged(self) -> None:
        assert truncate_title("Smart Watch X5", 60) == "Smart Watch X5"

    def test_cuts_at_word_boundary(self) -> None:
        assert truncate_title("Smart Watch X5 Black Edition", 20) == "Smart Watch X5 Black"

    def test_hard_cuts_single_long_word(self) -> None:
        assert truncate_title("Supercalifragilistic", 10) == "Superca..."
