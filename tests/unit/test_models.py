"""
Tests for Monitoring Models
===========================

Tests for:
- Score clamping
- Record immutability
- Organization profile derivation
- Id generators

Version: 0.1.0
"""

import pytest
from pydantic import ValidationError

from services.regulatory_monitoring.ids import IdGenerator, SequentialIdGenerator
from services.regulatory_monitoring.models import (
    AISystem,
    Analysis,
    AnalysisMethod,
    ComplianceRecord,
    ImpactLevel,
    MaturityLevel,
    OrganizationContext,
    RiskLevel,
    RiskTolerance,
    clamp_score,
)
from tests.factories import make_document


# ============================================================================
# Score Tests
# ============================================================================


class TestScores:
    """Tests for 0-100 score handling."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [(-5, 0.0), (0, 0.0), (42.5, 42.5), (100, 100.0), (250, 100.0), ("75", 75.0)],
    )
    def test_clamp_score(self, raw: object, expected: float) -> None:
        """Test scores are coerced and clamped."""
        assert clamp_score(raw) == expected

    def test_clamp_rejects_nan(self) -> None:
        """Test NaN is not a score."""
        with pytest.raises(ValueError):
            clamp_score(float("nan"))

    def test_analysis_clamps_on_construction(self) -> None:
        """Test out-of-range scores are clamped, not rejected."""
        analysis = Analysis(
            relevance_score=140,
            ai_act_relevance=True,
            impact_level=ImpactLevel.HIGH,
            confidence_score=-3,
            method=AnalysisMethod.GENERATED,
        )

        assert analysis.relevance_score == 100.0
        assert analysis.confidence_score == 0.0

    def test_records_are_frozen(self) -> None:
        """Test records cannot be mutated once built."""
        document = make_document()

        with pytest.raises(ValidationError):
            document.title = "changed"

    def test_document_requires_url(self) -> None:
        """Test an empty url is rejected."""
        with pytest.raises(ValidationError):
            make_document(url="")


# ============================================================================
# Organization Tests
# ============================================================================


class TestOrganizationContext:
    """Tests for OrganizationContext.from_inventory."""

    def test_profile_derivation(self, org_context: OrganizationContext) -> None:
        """Test sector, tolerance and compliance score are derived."""
        assert org_context.sector_profile.primary_sector == "finance"
        assert org_context.risk_tolerance == RiskTolerance.MEDIUM
        assert org_context.compliance_score == 60.0
        assert org_context.maturity_level == MaturityLevel.DEVELOPING

    def test_empty_inventory(self) -> None:
        """Test an organization without systems gets neutral defaults."""
        context = OrganizationContext.from_inventory(org_id="org-empty", ai_systems=[])

        assert context.sector_profile.primary_sector is None
        assert context.risk_tolerance == RiskTolerance.LOW
        assert context.compliance_score == 0.0
        assert context.maturity_level == MaturityLevel.INITIAL

    def test_high_tolerance_when_mostly_high_risk(self) -> None:
        """Test more than half high/unacceptable systems means high tolerance."""
        systems = [
            AISystem(id="a", name="A", risk_level=RiskLevel.HIGH),
            AISystem(id="b", name="B", risk_level=RiskLevel.UNACCEPTABLE),
            AISystem(id="c", name="C", risk_level=RiskLevel.MINIMAL),
        ]

        context = OrganizationContext.from_inventory(org_id="org-2", ai_systems=systems)

        assert context.risk_tolerance == RiskTolerance.HIGH

    def test_maturity_accepts_string(self) -> None:
        """Test maturity level can be given by value."""
        context = OrganizationContext.from_inventory(
            org_id="org-3", ai_systems=[], maturity_level="managed"
        )

        assert context.maturity_level == MaturityLevel.MANAGED

    def test_find_compliance_record(self, org_context: OrganizationContext) -> None:
        """Test records are looked up by system and article."""
        record = org_context.find_compliance_record("sys-1", "Art. 9")

        assert record == ComplianceRecord(ai_system_id="sys-1", article_id="Art. 9", compliant=False)
        assert org_context.find_compliance_record("sys-1", "Art. 10") is None


# ============================================================================
# Id Generator Tests
# ============================================================================


class TestIdGenerators:
    """Tests for id generation."""

    def test_random_ids_unique(self) -> None:
        """Test uuid-based ids carry the prefix and do not repeat."""
        generator = IdGenerator()

        first, second = generator.new_id("action"), generator.new_id("action")

        assert first.startswith("action-")
        assert first != second

    def test_sequential_ids(self) -> None:
        """Test sequential ids share one counter across prefixes."""
        generator = SequentialIdGenerator()

        assert generator.new_id("action") == "action-0001"
        assert generator.new_id("check") == "check-0002"

    def test_sequential_start(self) -> None:
        """Test the counter start is configurable."""
        assert SequentialIdGenerator(start=42).new_id("run") == "run-0042"
