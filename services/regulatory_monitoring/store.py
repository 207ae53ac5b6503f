"""
Insight Storage
===============

Flattened insight summaries and the store interface the workflow
persists them through.

Version: 0.1.0
"""

from datetime import date
from typing import Any, Protocol

from pydantic import BaseModel, Field

from services.regulatory_monitoring.models import ActionableInsight, ImpactLevel


_SEVERITY = {
    ImpactLevel.CRITICAL: "critique",
    ImpactLevel.HIGH: "important",
}


def severity_for(impact_level: ImpactLevel) -> str:
    """Map an impact level to the stored severity (critique, important, info)."""
    return _SEVERITY.get(impact_level, "info")


class InsightSummary(BaseModel):
    """What gets persisted for one actionable insight."""

    source: str
    title: str
    summary: str
    url: str
    severity: str
    category: str
    published_date: date | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_insight(cls, insight: ActionableInsight) -> "InsightSummary":
        document = insight.document
        context = insight.user_context
        plan = insight.action_plan
        return cls(
            source=document.source,
            title=document.title,
            summary=insight.insight.synthesis.executive_summary,
            url=document.url,
            severity=severity_for(insight.insight.analysis.impact_level),
            category=insight.insight.classification.update_type.value,
            published_date=document.published_date,
            metadata={
                "relevance_score": context.relevance_score,
                "urgency_level": context.urgency_level.value,
                "estimated_impact": context.estimated_impact,
                "risk_amplification": context.risk_amplification,
                "total_actions": plan.action_count,
                "estimated_effort": plan.estimated_effort.label,
                "budget_impact": plan.budget_impact.label,
            },
        )


class InsightStore(Protocol):
    """Append-only sink for insight summaries. May raise."""

    async def persist(self, summary: InsightSummary) -> None: ...


class InMemoryInsightStore:
    """Dict-backed store; a second summary for the same url replaces the first."""

    def __init__(self) -> None:
        self._by_url: dict[str, InsightSummary] = {}

    async def persist(self, summary: InsightSummary) -> None:
        self._by_url[summary.url] = summary

    @property
    def summaries(self) -> list[InsightSummary]:
        return list(self._by_url.values())

    def __len__(self) -> int:
        return len(self._by_url)
