"""
Tests for the Analysis Stage
============================

Tests for:
- Keyword relevance and impact rules
- Generated analysis handling
- Fallback totality and ordering

Version: 0.1.0
"""

from unittest.mock import AsyncMock

import pytest

from services.regulatory_monitoring.models import AnalysisMethod, ImpactLevel, RawDocument
from services.regulatory_monitoring.pipeline import analysis as analysis_module
from services.regulatory_monitoring.pipeline.analysis import (
    AnalysisStage,
    default_analysis,
    keyword_impact,
    keyword_relevance,
    rule_based_analysis,
)
from tests.factories import json_generator, make_document, text_generator


@pytest.fixture
def stage() -> AnalysisStage:
    return AnalysisStage()


# ============================================================================
# Keyword Rule Tests
# ============================================================================


class TestKeywordRules:
    """Tests for the keyword scorer."""

    def test_relevance_weights(self) -> None:
        """Test each term group adds its weight once."""
        assert keyword_relevance("the ai act") == 30.0
        assert keyword_relevance("ai act amendment") == 45.0
        assert keyword_relevance("ai act amendment for providers") == 55.0

    def test_variants_count_once(self) -> None:
        """Test English and French variants of one term are not double counted."""
        assert keyword_relevance("amendment / amendement") == 15.0

    def test_relevance_capped(self, sanction_document: RawDocument) -> None:
        """Test the keyword score never exceeds 100."""
        text = f"{sanction_document.title} {sanction_document.raw_content}".lower()

        assert keyword_relevance(text) == 100.0

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("new sanction regime", ImpactLevel.CRITICAL),
            ("interdiction de mise sur le marché", ImpactLevel.CRITICAL),
            ("new obligation for deployers", ImpactLevel.HIGH),
            ("guidance on transparency", ImpactLevel.MEDIUM),
            ("press release", ImpactLevel.LOW),
        ],
    )
    def test_impact_levels(self, text: str, expected: ImpactLevel) -> None:
        """Test impact follows the strongest keyword class."""
        assert keyword_impact(text) == expected


# ============================================================================
# Fallback Tests
# ============================================================================


class TestFallbacks:
    """Tests for rule-based and default analyses."""

    def test_sanction_document_is_critical(self) -> None:
        """Test a sanction document needs action without generation."""
        document = make_document(title="Notice", content="A sanction applies.")

        update = rule_based_analysis(document)

        assert update.analysis.impact_level == ImpactLevel.CRITICAL
        assert update.analysis.action_required is True
        assert update.analysis.method == AnalysisMethod.RULE_BASED
        assert update.analysis.confidence_score == 60.0

    def test_stakeholders_and_topics(self, sanction_document: RawDocument) -> None:
        """Test stakeholders and topics are detected from keywords."""
        analysis = rule_based_analysis(sanction_document).analysis

        assert analysis.affected_stakeholders == ["providers", "deployers"]
        assert analysis.key_topics == ["High-risk systems", "Sanctions"]
        assert analysis.ai_act_relevance is True

    def test_no_keywords(self, irrelevant_document: RawDocument) -> None:
        """Test an unrelated document gets neutral defaults."""
        analysis = rule_based_analysis(irrelevant_document).analysis

        assert analysis.relevance_score == 0.0
        assert analysis.impact_level == ImpactLevel.LOW
        assert analysis.affected_stakeholders == ["all"]
        assert analysis.key_topics == ["General"]
        assert analysis.action_required is False

    def test_default_analysis(self, irrelevant_document: RawDocument) -> None:
        """Test the conservative default."""
        analysis = default_analysis(irrelevant_document).analysis

        assert analysis.relevance_score == 50.0
        assert analysis.ai_act_relevance is True
        assert analysis.impact_level == ImpactLevel.MEDIUM
        assert analysis.key_topics == ["Not analyzed"]
        assert analysis.confidence_score == 30.0
        assert analysis.method == AnalysisMethod.DEFAULT


# ============================================================================
# Stage Tests
# ============================================================================


class TestAnalysisStage:
    """Tests for AnalysisStage.analyze."""

    @pytest.mark.asyncio
    async def test_generated_analysis(self, stage: AnalysisStage, irrelevant_document: RawDocument) -> None:
        """Test a valid generated payload is used as-is."""
        generator = json_generator(
            {"relevanceScore": 88, "impactLevel": "High", "keyTopics": ["GPAI"]}
        )

        [update] = await stage.analyze([irrelevant_document], generator)

        assert update.analysis.method == AnalysisMethod.GENERATED
        assert update.analysis.relevance_score == 88.0
        assert update.analysis.impact_level == ImpactLevel.HIGH
        assert update.analysis.action_required is True
        assert update.analysis.affected_stakeholders == ["all"]

    @pytest.mark.asyncio
    async def test_malformed_falls_back_to_rules(
        self,
        stage: AnalysisStage,
        sanction_document: RawDocument,
    ) -> None:
        """Test unparseable output uses the keyword scorer."""
        [update] = await stage.analyze([sanction_document], text_generator("I think it is relevant."))

        assert update.analysis.method == AnalysisMethod.RULE_BASED
        assert update.analysis.impact_level == ImpactLevel.CRITICAL

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "response",
        [
            '{"relevance_score": NaN, "impact_level": "low"}',
            '{"relevance_score": 40, "impact_level": "low", "confidence_score": Infinity}',
        ],
    )
    async def test_non_finite_score_falls_back_to_rules(
        self,
        stage: AnalysisStage,
        irrelevant_document: RawDocument,
        response: str,
    ) -> None:
        """Test a NaN or infinite score is rejected instead of clamped to 100."""
        [update] = await stage.analyze([irrelevant_document], text_generator(response))

        assert update.analysis.method == AnalysisMethod.RULE_BASED
        assert update.analysis.relevance_score == 0.0

    @pytest.mark.asyncio
    async def test_generator_failure_falls_back(
        self,
        stage: AnalysisStage,
        sanction_document: RawDocument,
        failing_generator: AsyncMock,
    ) -> None:
        """Test a raising provider does not surface."""
        [update] = await stage.analyze([sanction_document], failing_generator)

        assert update.analysis.method == AnalysisMethod.RULE_BASED

    @pytest.mark.asyncio
    async def test_unexpected_error_uses_default(
        self,
        stage: AnalysisStage,
        irrelevant_document: RawDocument,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Test an unexpected per-document error yields the default analysis."""

        def boom(document: RawDocument) -> None:
            raise RuntimeError("scorer crashed")

        monkeypatch.setattr(analysis_module, "rule_based_analysis", boom)

        [update] = await stage.analyze([irrelevant_document], None)

        assert update.analysis.method == AnalysisMethod.DEFAULT

    @pytest.mark.asyncio
    async def test_sorted_by_relevance(
        self,
        stage: AnalysisStage,
        sanction_document: RawDocument,
        irrelevant_document: RawDocument,
    ) -> None:
        """Test output is ordered by relevance, ties in input order."""
        tie_a = make_document(url="https://x/a", title="Press release A")
        tie_b = make_document(url="https://x/b", title="Press release B")

        updates = await stage.analyze([tie_a, irrelevant_document, sanction_document, tie_b], None)

        scores = [u.analysis.relevance_score for u in updates]
        assert scores == sorted(scores, reverse=True)
        assert updates[0].document.url == sanction_document.url
        assert [u.document.url for u in updates[1:]] == [
            "https://x/a",
            irrelevant_document.url,
            "https://x/b",
        ]

    @pytest.mark.asyncio
    async def test_every_document_analyzed(self, stage: AnalysisStage) -> None:
        """Test one update per document even with a failing provider."""
        documents = [make_document(url=f"https://x/{i}") for i in range(5)]
        generator = AsyncMock()
        generator.generate.side_effect = ConnectionError("down")

        updates = await stage.analyze(documents, generator)

        assert len(updates) == 5
