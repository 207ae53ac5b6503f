"""
Tests for the Regulatory Monitoring Workflow
============================================

Tests for:
- End-to-end rule-based runs
- Threshold filtering and short-circuits
- Collaborator failures (store, directory, resolver)
- Run metrics and persisted summaries

Version: 0.1.0
"""

from datetime import date
from unittest.mock import AsyncMock

import pytest

from services.regulatory_monitoring.exceptions import PipelineUnavailableError
from services.regulatory_monitoring.ids import SequentialIdGenerator
from services.regulatory_monitoring.models import (
    ImpactLevel,
    OrganizationContext,
    RawDocument,
    RunRequest,
    UrgencyLevel,
)
from services.regulatory_monitoring.organization import InMemoryOrganizationDirectory
from services.regulatory_monitoring.sources import StaticSourceAdapter
from services.regulatory_monitoring.store import InMemoryInsightStore, severity_for
from services.regulatory_monitoring.workflow import RegulatoryMonitoringWorkflow
from shared.config import MonitoringSettings
from tests.factories import make_document


@pytest.fixture
def resolver() -> AsyncMock:
    """Resolver that never provides a generation service."""
    resolver = AsyncMock()
    resolver.resolve.return_value = None
    return resolver


@pytest.fixture
def store() -> InMemoryInsightStore:
    return InMemoryInsightStore()


@pytest.fixture
def directory(org_context: OrganizationContext) -> InMemoryOrganizationDirectory:
    return InMemoryOrganizationDirectory([org_context])


@pytest.fixture
def adapters(sanction_document: RawDocument, irrelevant_document: RawDocument) -> list[StaticSourceAdapter]:
    return [
        StaticSourceAdapter("eurlex", [sanction_document]),
        StaticSourceAdapter("cnil", [irrelevant_document]),
    ]


@pytest.fixture
def workflow(
    adapters: list[StaticSourceAdapter],
    store: InMemoryInsightStore,
    resolver: AsyncMock,
    directory: InMemoryOrganizationDirectory,
    today: date,
) -> RegulatoryMonitoringWorkflow:
    return RegulatoryMonitoringWorkflow(
        adapters=adapters,
        store=store,
        resolver=resolver,
        directory=directory,
        settings=MonitoringSettings(),
        id_generator=SequentialIdGenerator(),
        clock=lambda: today,
    )


# ============================================================================
# End-to-End Tests
# ============================================================================


class TestWorkflowRun:
    """Tests for RegulatoryMonitoringWorkflow.run."""

    @pytest.mark.asyncio
    async def test_rule_based_run(
        self,
        workflow: RegulatoryMonitoringWorkflow,
        store: InMemoryInsightStore,
        resolver: AsyncMock,
        sanction_document: RawDocument,
    ) -> None:
        """Test a full run without generation produces one actionable insight."""
        result = await workflow.run(RunRequest(org_id="org-1"))

        assert [i.document.url for i in result.insights] == [sanction_document.url]
        insight = result.insights[0]
        assert insight.user_context.urgency_level == UrgencyLevel.IMMEDIATE
        assert insight.action_plan.priority_actions
        assert all(a.id for a in insight.action_plan.priority_actions)

        metrics = result.metrics
        assert metrics.run_id == "run-0001"
        assert metrics.total_collected == 2
        assert metrics.total_analyzed == 2
        assert metrics.total_relevant == 1
        assert metrics.total_insights == 1
        assert metrics.total_personalized == 1
        assert metrics.total_actionable == 1
        assert metrics.persisted == 1
        assert metrics.persistence_failures == 0
        assert set(metrics.source_status) == {"eurlex", "cnil"}
        assert list(metrics.stage_durations_ms) == [
            "collection",
            "analysis",
            "classification_synthesis",
            "personalization",
            "action_planning",
            "persistence",
        ]
        assert metrics.personalization.high_urgency_count == 1
        assert metrics.personalization.total_actions_generated == insight.action_plan.action_count

        resolver.resolve.assert_awaited_once_with("org-1")
        assert len(store) == 1

    @pytest.mark.asyncio
    async def test_persisted_summary(
        self,
        workflow: RegulatoryMonitoringWorkflow,
        store: InMemoryInsightStore,
    ) -> None:
        """Test the flattened summary written to the store."""
        result = await workflow.run(RunRequest(org_id="org-1"))

        [summary] = store.summaries
        insight = result.insights[0]
        assert summary.url == insight.document.url
        assert summary.severity == "critique"
        assert summary.category == "enforcement"
        assert summary.metadata["total_actions"] == insight.action_plan.action_count
        assert summary.metadata["urgency_level"] == "immediate"

    @pytest.mark.asyncio
    async def test_threshold_respected(self, workflow: RegulatoryMonitoringWorkflow) -> None:
        """Test nothing under the minimum relevance reaches classification."""
        strict = await workflow.run(RunRequest(min_relevance_score=50))
        lenient = await workflow.run(RunRequest(min_relevance_score=0))

        assert strict.metrics.total_relevant == 1
        assert all(i.insight.analysis.relevance_score >= 50 for i in strict.insights)
        assert lenient.metrics.total_relevant == 2
        assert lenient.metrics.total_insights == 2

    @pytest.mark.asyncio
    async def test_without_organization(self, workflow: RegulatoryMonitoringWorkflow) -> None:
        """Test a run without org id uses the generic personalization."""
        result = await workflow.run()

        [insight] = result.insights
        assert insight.user_context.impacted_systems == []
        assert insight.user_context.risk_amplification == 1.0

    @pytest.mark.asyncio
    async def test_source_selection(
        self,
        workflow: RegulatoryMonitoringWorkflow,
    ) -> None:
        """Test request sources restrict collection."""
        result = await workflow.run(RunRequest(sources=["cnil"]))

        assert list(result.metrics.source_status) == ["cnil"]
        assert result.metrics.total_collected == 1


# ============================================================================
# Short-Circuit Tests
# ============================================================================


class TestShortCircuits:
    """Tests for empty batches."""

    @pytest.mark.asyncio
    async def test_no_documents(self, store: InMemoryInsightStore, resolver: AsyncMock) -> None:
        """Test an empty collection ends the run with accurate metrics."""
        workflow = RegulatoryMonitoringWorkflow(
            adapters=[StaticSourceAdapter("eurlex", [])],
            store=store,
            resolver=resolver,
            settings=MonitoringSettings(),
        )

        result = await workflow.run()

        assert result.insights == []
        assert result.metrics.total_collected == 0
        assert result.metrics.source_status["eurlex"].success is True
        assert list(result.metrics.stage_durations_ms) == ["collection"]
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_nothing_relevant(
        self,
        store: InMemoryInsightStore,
        resolver: AsyncMock,
        irrelevant_document: RawDocument,
    ) -> None:
        """Test nothing above the threshold ends the run after analysis."""
        workflow = RegulatoryMonitoringWorkflow(
            adapters=[StaticSourceAdapter("cnil", [irrelevant_document])],
            store=store,
            resolver=resolver,
            settings=MonitoringSettings(),
        )

        result = await workflow.run()

        assert result.insights == []
        assert result.metrics.total_analyzed == 1
        assert result.metrics.total_relevant == 0
        assert result.metrics.total_insights == 0


# ============================================================================
# Collaborator Failure Tests
# ============================================================================


class TestCollaboratorFailures:
    """Tests for failing collaborators."""

    @pytest.mark.asyncio
    async def test_missing_store(self, adapters: list[StaticSourceAdapter], resolver: AsyncMock) -> None:
        """Test a workflow without a store refuses to run."""
        workflow = RegulatoryMonitoringWorkflow(
            adapters=adapters,
            store=None,
            resolver=resolver,
            settings=MonitoringSettings(),
        )

        with pytest.raises(PipelineUnavailableError):
            await workflow.run()

    @pytest.mark.asyncio
    async def test_store_failures_counted(
        self,
        adapters: list[StaticSourceAdapter],
        resolver: AsyncMock,
    ) -> None:
        """Test persistence failures are counted, not raised."""
        store = AsyncMock()
        store.persist.side_effect = ConnectionError("database down")
        workflow = RegulatoryMonitoringWorkflow(
            adapters=adapters,
            store=store,
            resolver=resolver,
            settings=MonitoringSettings(),
        )

        result = await workflow.run()

        assert len(result.insights) == 1
        assert result.metrics.persisted == 0
        assert result.metrics.persistence_failures == 1

    @pytest.mark.asyncio
    async def test_directory_failure(
        self,
        adapters: list[StaticSourceAdapter],
        store: InMemoryInsightStore,
        resolver: AsyncMock,
    ) -> None:
        """Test a failing directory falls back to generic personalization."""
        directory = AsyncMock()
        directory.get_context.side_effect = ConnectionError("directory down")
        workflow = RegulatoryMonitoringWorkflow(
            adapters=adapters,
            store=store,
            resolver=resolver,
            directory=directory,
            settings=MonitoringSettings(),
        )

        result = await workflow.run(RunRequest(org_id="org-1"))

        assert len(result.insights) == 1
        assert result.insights[0].user_context.impacted_systems == []

    @pytest.mark.asyncio
    async def test_resolver_failure(
        self,
        adapters: list[StaticSourceAdapter],
        store: InMemoryInsightStore,
    ) -> None:
        """Test a failing resolver means a rule-based run."""
        resolver = AsyncMock()
        resolver.resolve.side_effect = RuntimeError("resolver crashed")
        workflow = RegulatoryMonitoringWorkflow(
            adapters=adapters,
            store=store,
            resolver=resolver,
            settings=MonitoringSettings(),
        )

        result = await workflow.run()

        assert result.metrics.total_actionable == 1

    @pytest.mark.asyncio
    async def test_failing_generator(
        self,
        adapters: list[StaticSourceAdapter],
        store: InMemoryInsightStore,
        failing_generator: AsyncMock,
    ) -> None:
        """Test a raising generation service never surfaces."""
        resolver = AsyncMock()
        resolver.resolve.return_value = failing_generator
        workflow = RegulatoryMonitoringWorkflow(
            adapters=adapters,
            store=store,
            resolver=resolver,
            settings=MonitoringSettings(),
        )

        result = await workflow.run()

        assert result.metrics.total_actionable == 1
        assert failing_generator.generate.await_count >= 1

    @pytest.mark.asyncio
    async def test_failing_source(
        self,
        sanction_document: RawDocument,
        store: InMemoryInsightStore,
        resolver: AsyncMock,
    ) -> None:
        """Test a failing source is reported while others continue."""
        broken = AsyncMock()
        broken.source_id = "broken"
        broken.fetch.side_effect = TimeoutError("timed out")
        workflow = RegulatoryMonitoringWorkflow(
            adapters=[broken, StaticSourceAdapter("eurlex", [sanction_document])],
            store=store,
            resolver=resolver,
            settings=MonitoringSettings(),
        )

        result = await workflow.run()

        assert result.metrics.source_status["broken"].success is False
        assert result.metrics.total_actionable == 1



    @pytest.mark.asyncio
    async def test_duplicate_url_across_sources(
        self,
        store: InMemoryInsightStore,
        resolver: AsyncMock,
        sanction_document: RawDocument,
    ) -> None:
        """Test the same url from two sources is processed once."""
        duplicate = make_document(
            url=sanction_document.url,
            title=sanction_document.title,
            content=sanction_document.raw_content,
            source_id="cnil",
        )
        workflow = RegulatoryMonitoringWorkflow(
            adapters=[
                StaticSourceAdapter("eurlex", [sanction_document]),
                StaticSourceAdapter("cnil", [duplicate]),
            ],
            store=store,
            resolver=resolver,
            settings=MonitoringSettings(),
        )

        result = await workflow.run()

        assert result.metrics.total_collected == 1
        assert result.insights[0].document.source_id == "cnil"
        assert len(store) == 1


class TestSeverity:
    """Tests for stored severity mapping."""

    def test_severity_mapping(self) -> None:
        """Test impact levels map to stored severities."""
        assert severity_for(ImpactLevel.CRITICAL) == "critique"
        assert severity_for(ImpactLevel.HIGH) == "important"
        assert severity_for(ImpactLevel.MEDIUM) == "info"
        assert severity_for(ImpactLevel.LOW) == "info"
