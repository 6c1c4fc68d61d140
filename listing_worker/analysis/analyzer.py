from collections.abc import Callable, Collection
from datetime import datetime
from typing import Any

from listing_worker.analysis.models import AnalysisResult
from listing_worker.analysis.requests import StageRequestBuilder
from listing_worker.database.models import Subject
from listing_worker.database.repositories.catalog_repository import CatalogRepository
from listing_worker.logging.logger import Log
from listing_worker.quality.scorer import QualityScorer, truncate_title
from listing_worker.reconciliation.models import ReconcileConfig
from listing_worker.reconciliation.reconciler import reconcile
from listing_worker.stages.executor import StageExecutor
from listing_worker.stages.extraction import extract
from listing_worker.stages.models import StageRequest, StageResult, StageTrace
from listing_worker.tasks.exceptions import CatalogNotFoundError
from listing_worker.tasks.state_machine import utc_now


class ListingAnalyzer:
    """Runs research, catalog alignment and copywriting for one subject.

    Pipeline: catalog lookup -> research -> alignment -> reconcile ->
    copywriting -> score. Stage failures degrade to fallback data; only a
    missing catalog aborts the analysis.
    """

    def __init__(
        self,
        *,
        catalog: CatalogRepository,
        executor: StageExecutor,
        requests: StageRequestBuilder,
        scorer: QualityScorer,
        reconcile_config: ReconcileConfig | None = None,
        excluded_attribute_ids: Collection[int] = (),
        title_max_length: int = 60,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._catalog = catalog
        self._executor = executor
        self._requests = requests
        self._scorer = scorer
        self._reconcile_config = reconcile_config or ReconcileConfig()
        self._excluded_attribute_ids = frozenset(excluded_attribute_ids)
        self._title_max_length = title_max_length
        self._clock = clock

    def analyze(self, subject: Subject) -> AnalysisResult:
        """Produce attributes, listing texts and a quality score for a subject.

        Raises:
            CatalogNotFoundError: if the subject's category has no attributes.
        """
        catalog = self._catalog.lookup(subject.category_id)
        if not catalog:
            raise CatalogNotFoundError(
                f"No catalog attributes for category {subject.category_id}"
            )
        eligible = [a for a in catalog if a.id not in self._excluded_attribute_ids]
        Log.info(
            f"Analyzing subject {subject.id} ({subject.name!r}): category "
            f"{subject.category_id}, {len(catalog)} attributes, {len(eligible)} offered to AI"
        )
        trace = StageTrace()
        warnings: list[str] = []

        research_result = self._run(self._requests.research(subject), trace, warnings)
        research = self._extract_or(research_result, {"name": subject.name})

        alignment_result = self._run(
            self._requests.catalog_alignment(subject, research, eligible), trace, warnings
        )
        alignment = self._extract_or(alignment_result, {})

        attributes = reconcile(research, alignment, catalog, self._reconcile_config)

        copy_result = self._run(self._requests.copywriting(subject, attributes), trace, warnings)
        copy = self._extract_or(copy_result, {})
        title = _text(copy.get("seoTitle")) or subject.name
        description = _text(copy.get("seoDescription")) or _fallback_description(subject)
        title = truncate_title(title, self._title_max_length)

        quality = self._scorer.score(attributes, len(catalog), len(title), len(description))
        Log.info(
            f"Subject {subject.id} analysis done: fill rate {quality.fill_rate}%, "
            f"score {quality.overall_score}, {len(warnings)} degraded stage(s)"
        )
        return AnalysisResult(
            attributes=attributes,
            title=title,
            description=description,
            quality=quality,
            warnings=warnings,
            stage_attempts=dict(trace.attempts),
            stage_errors=dict(trace.failures),
            processed_at=self._clock(),
        )

    def _run(self, request: StageRequest, trace: StageTrace, warnings: list[str]) -> StageResult:
        result = self._executor.run_stage(request)
        trace.record(result)
        if not result.success:
            message = f"Stage {result.stage.value} failed, continuing with fallback data: {result.error}"
            Log.warning(message)
            warnings.append(message)
        return result

    @staticmethod
    def _extract_or(result: StageResult, fallback: dict[str, Any]) -> dict[str, Any]:
        if not result.success or result.payload is None:
            return fallback
        return extract(result.payload)


def _text(value: object) -> str:
    return value.strip() if isinstance(value, str) else ""


def _fallback_description(subject: Subject) -> str:
    if subject.description.strip():
        return f"{subject.name}. {subject.description.strip()}"
    return f"{subject.name}."
