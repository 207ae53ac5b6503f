"""
Regulatory Monitoring Workflow
==============================

Runs the five pipeline stages for one invocation:

    collect -> analyze -> threshold filter -> classify/synthesize
      -> personalize -> plan -> persist

The generation service is resolved once per run and passed to the
stages that can use it. Empty batches end the run early with accurate
metrics. Only a missing insight store stops a run.

Version: 0.1.0
"""

import time
from collections.abc import Callable, Iterable, Sequence
from datetime import date
from typing import Any

from services.regulatory_monitoring.exceptions import PipelineUnavailableError
from services.regulatory_monitoring.ids import IdGenerator
from services.regulatory_monitoring.models import (
    ActionableInsight,
    MonitoringMetrics,
    OrganizationContext,
    PersonalizationMetrics,
    RunRequest,
    UrgencyLevel,
    WorkflowResult,
)
from services.regulatory_monitoring.organization import (
    GenerationResolver,
    OrganizationDirectory,
    SettingsGenerationResolver,
)
from services.regulatory_monitoring.pipeline import (
    ActionPlanningStage,
    AnalysisStage,
    ClassificationSynthesisStage,
    CollectionStage,
    PersonalizationStage,
)
from services.regulatory_monitoring.sources import FetchParams, SourceAdapter
from services.regulatory_monitoring.store import InsightStore, InsightSummary
from shared.config import MonitoringSettings, get_settings
from shared.llm import TextGenerationService
from shared.logging import get_logger, run_context


logger = get_logger(__name__)

HIGH_URGENCY = (UrgencyLevel.IMMEDIATE, UrgencyLevel.HIGH)


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)


def personalization_metrics(insights: Sequence[ActionableInsight]) -> PersonalizationMetrics:
    """Aggregate relevance, urgency and action counts of a run's output."""
    if not insights:
        return PersonalizationMetrics()

    total_actions = sum(i.action_plan.action_count for i in insights)
    return PersonalizationMetrics(
        average_relevance_score=round(
            sum(i.user_context.relevance_score for i in insights) / len(insights), 2
        ),
        high_urgency_count=sum(1 for i in insights if i.user_context.urgency_level in HIGH_URGENCY),
        total_actions_generated=total_actions,
        average_actions_per_insight=round(total_actions / len(insights), 2),
    )


class RegulatoryMonitoringWorkflow:
    """
    Orchestrates one regulatory monitoring run.

    Example:
        >>> workflow = RegulatoryMonitoringWorkflow(
        ...     adapters=[StaticSourceAdapter("eurlex", documents)],
        ...     store=InMemoryInsightStore(),
        ... )
        >>> result = await workflow.run(RunRequest(org_id="org-1"))
        >>> result.metrics.total_actionable
        3
    """

    def __init__(
        self,
        adapters: Iterable[SourceAdapter],
        store: InsightStore | None,
        resolver: GenerationResolver | None = None,
        directory: OrganizationDirectory | None = None,
        settings: MonitoringSettings | None = None,
        id_generator: IdGenerator | None = None,
        clock: Callable[[], date] | None = None,
    ) -> None:
        self.adapters = {adapter.source_id: adapter for adapter in adapters}
        self.store = store
        self.directory = directory
        self.resolver = resolver or SettingsGenerationResolver(directory=directory)
        self.settings = settings or get_settings().monitoring
        self.ids = id_generator or IdGenerator()

        self.collection = CollectionStage()
        self.analysis = AnalysisStage(content_excerpt_chars=self.settings.content_excerpt_chars)
        self.classification = ClassificationSynthesisStage(
            id_generator=self.ids,
            excerpt_chars=self.settings.classification_excerpt_chars,
        )
        self.personalization = PersonalizationStage()
        self.action_planning = ActionPlanningStage(
            id_generator=self.ids,
            hourly_rate=self.settings.hourly_rate,
            clock=clock,
        )

    async def run(self, request: RunRequest | None = None) -> WorkflowResult:
        """
        Execute one monitoring run.

        Args:
            request: Run parameters; unset fields fall back to settings

        Returns:
            WorkflowResult with actionable insights and run metrics

        Raises:
            PipelineUnavailableError: If the workflow has no insight store
        """
        if self.store is None:
            raise PipelineUnavailableError("insight store is not configured")

        request = request or RunRequest()
        run_id = self.ids.new_id("run")
        with run_context(run_id, org_id=request.org_id):
            return await self._run(run_id, request)

    async def _run(self, run_id: str, request: RunRequest) -> WorkflowResult:
        start = time.perf_counter()
        durations: dict[str, float] = {}
        counts: dict[str, Any] = {}

        params = FetchParams(
            days_back=request.days_back or self.settings.days_back,
            enabled_sources=self._enabled_sources(request),
        )
        min_score = (
            request.min_relevance_score
            if request.min_relevance_score is not None
            else self.settings.min_relevance_score
        )
        logger.info(
            "monitoring_run_started",
            days_back=params.days_back,
            sources=params.enabled_sources,
            min_relevance_score=min_score,
        )

        generator = await self._resolve_generator(request.org_id)

        # 1. Collection
        stage_start = time.perf_counter()
        collected = await self.collection.collect(self.adapters, params)
        durations["collection"] = _elapsed_ms(stage_start)
        counts["total_collected"] = len(collected.documents)
        counts["source_status"] = collected.source_status

        if not collected.documents:
            logger.warning("monitoring_run_no_documents")
            return self._finish(run_id, start, [], durations, counts)

        # 2. Analysis + threshold
        stage_start = time.perf_counter()
        analyzed = await self.analysis.analyze(collected.documents, generator)
        relevant = [u for u in analyzed if u.analysis.relevance_score >= min_score]
        durations["analysis"] = _elapsed_ms(stage_start)
        counts["total_analyzed"] = len(analyzed)
        counts["total_relevant"] = len(relevant)

        if not relevant:
            logger.info("monitoring_run_nothing_relevant", analyzed=len(analyzed), min_score=min_score)
            return self._finish(run_id, start, [], durations, counts)

        # 3. Classification & synthesis
        stage_start = time.perf_counter()
        insights = await self.classification.classify_and_synthesize(relevant, generator)
        durations["classification_synthesis"] = _elapsed_ms(stage_start)
        counts["total_insights"] = len(insights)

        # 4. Personalization
        stage_start = time.perf_counter()
        context = await self._load_context(request.org_id)
        personalized = await self.personalization.personalize(insights, context)
        durations["personalization"] = _elapsed_ms(stage_start)
        counts["total_personalized"] = len(personalized)

        # 5. Action planning
        stage_start = time.perf_counter()
        actionable = await self.action_planning.plan(personalized)
        durations["action_planning"] = _elapsed_ms(stage_start)
        counts["total_actionable"] = len(actionable)

        # 6. Persistence
        stage_start = time.perf_counter()
        persisted, failures = await self._persist(actionable)
        durations["persistence"] = _elapsed_ms(stage_start)
        counts["persisted"] = persisted
        counts["persistence_failures"] = failures

        return self._finish(run_id, start, actionable, durations, counts)

    def _enabled_sources(self, request: RunRequest) -> list[str] | None:
        if request.sources is not None:
            return request.sources
        return self.settings.enabled_sources_list or None

    async def _resolve_generator(self, org_id: str | None) -> TextGenerationService | None:
        try:
            return await self.resolver.resolve(org_id)
        except Exception as e:
            logger.error(
                "generation_resolution_failed",
                error=str(e),
                error_type=type(e).__name__,
            )
            return None

    async def _load_context(self, org_id: str | None) -> OrganizationContext | None:
        if not org_id or self.directory is None:
            return None
        try:
            context = await self.directory.get_context(org_id)
        except Exception as e:
            logger.error(
                "organization_context_failed",
                error=str(e),
                error_type=type(e).__name__,
            )
            return None
        if context is None:
            logger.warning("organization_not_found")
        return context

    async def _persist(self, insights: Sequence[ActionableInsight]) -> tuple[int, int]:
        persisted = failures = 0
        for insight in insights:
            try:
                await self.store.persist(InsightSummary.from_insight(insight))
                persisted += 1
            except Exception as e:
                failures += 1
                logger.error(
                    "insight_persist_failed",
                    url=insight.document.url,
                    error=str(e),
                    error_type=type(e).__name__,
                )
        return persisted, failures

    def _finish(
        self,
        run_id: str,
        start: float,
        insights: list[ActionableInsight],
        durations: dict[str, float],
        counts: dict[str, Any],
    ) -> WorkflowResult:
        metrics = MonitoringMetrics(
            run_id=run_id,
            stage_durations_ms=durations,
            execution_time_ms=_elapsed_ms(start),
            personalization=personalization_metrics(insights),
            **counts,
        )
        logger.info(
            "monitoring_run_completed",
            collected=metrics.total_collected,
            relevant=metrics.total_relevant,
            actionable=metrics.total_actionable,
            persisted=metrics.persisted,
            persistence_failures=metrics.persistence_failures,
            execution_time_ms=metrics.execution_time_ms,
        )
        return WorkflowResult(insights=insights, metrics=metrics)
