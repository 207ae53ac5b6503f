"""
Test Configuration
==================

Pytest fixtures for Regwatch tests.
"""

import os
from datetime import date
from unittest.mock import AsyncMock

import pytest

# Set test environment before settings are first loaded
os.environ["ENVIRONMENT"] = "testing"
os.environ["LLM_ENABLED"] = "false"

from services.regulatory_monitoring.ids import SequentialIdGenerator
from services.regulatory_monitoring.models import (
    AISystem,
    ComplianceRecord,
    MaturityLevel,
    OrganizationContext,
    RawDocument,
    RiskLevel,
)
from tests.factories import make_document


@pytest.fixture
def ids() -> SequentialIdGenerator:
    """Deterministic id generator."""
    return SequentialIdGenerator()


@pytest.fixture
def today() -> date:
    """Fixed planning date."""
    return date(2025, 3, 1)


@pytest.fixture
def sanction_document() -> RawDocument:
    """A document that scores high on every keyword class."""
    return make_document(
        url="https://eur-lex.europa.eu/doc/sanctions",
        title="AI Act enforcement: sanction regime for providers",
        content=(
            "Regulation (EU) 2024/1689 (AI Act) sets the sanction regime. "
            "Providers and deployers of high-risk systems face a prohibition "
            "on non-compliant placing on the market."
        ),
    )


@pytest.fixture
def irrelevant_document() -> RawDocument:
    """A document with no monitored keyword."""
    return make_document(
        url="https://example.org/news/weather",
        title="Weather report",
        content="Sunny with light winds across the region.",
    )


@pytest.fixture
def ai_systems() -> list[AISystem]:
    """A small mixed-risk inventory."""
    return [
        AISystem(
            id="sys-1",
            name="Credit Scoring",
            description="Scores loan applicants",
            sector="finance",
            risk_level=RiskLevel.HIGH,
            compliance_score=40.0,
        ),
        AISystem(
            id="sys-2",
            name="Chat Assistant",
            description="Customer support chatbot",
            sector="retail",
            risk_level=RiskLevel.LIMITED,
            compliance_score=80.0,
        ),
        AISystem(
            id="sys-3",
            name="Spam Filter",
            sector="finance",
            risk_level=RiskLevel.MINIMAL,
        ),
    ]


@pytest.fixture
def org_context(ai_systems: list[AISystem]) -> OrganizationContext:
    """Organization derived from the mixed-risk inventory."""
    return OrganizationContext.from_inventory(
        org_id="org-1",
        ai_systems=ai_systems,
        maturity_level=MaturityLevel.DEVELOPING,
        compliance_records=[
            ComplianceRecord(ai_system_id="sys-1", article_id="Art. 9", compliant=False),
        ],
    )


@pytest.fixture
def failing_generator() -> AsyncMock:
    """Generation service whose every call raises."""
    generator = AsyncMock()
    generator.generate.side_effect = TimeoutError("provider timed out")
    return generator
