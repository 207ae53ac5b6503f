"""
Analysis Stage
==============

Scores each collected document for AI Act relevance and impact.

A generated analysis is used when the generation service returns a
valid payload. Otherwise a keyword-weighted scorer takes over:

- +30 per regulation-identifying term
- +15 per high-priority term (amendment, sanction, prohibition, ...)
- +10 per stakeholder term (provider, deployer, high-risk)

Keywords are matched in English and French.

Version: 0.1.0
"""

from collections.abc import Sequence
from datetime import date
from typing import Annotated

from pydantic import Field

from services.regulatory_monitoring.generation import (
    Generated,
    Payload,
    Token,
    attempt_generation,
)
from services.regulatory_monitoring.models import (
    Analysis,
    AnalysisMethod,
    AnalyzedUpdate,
    ImpactLevel,
    RawDocument,
)
from services.regulatory_monitoring.prompts import analysis_prompt
from shared.llm import TextGenerationService
from shared.logging import get_logger


logger = get_logger(__name__)

RULE_BASED_CONFIDENCE = 60.0
DEFAULT_CONFIDENCE = 30.0
DEFAULT_RELEVANCE = 50.0

# Each group counts once, whichever variant matches
REGULATION_TERMS: tuple[tuple[str, ...], ...] = (
    ("2024/1689",),
    ("ai act", "artificial intelligence act"),
    ("règlement ia",),
    ("intelligence artificielle",),
)
HIGH_PRIORITY_TERMS: tuple[tuple[str, ...], ...] = (
    ("amendment", "amendement"),
    ("delegated act", "acte délégué"),
    ("sanction",),
    ("prohibition", "interdiction"),
    ("obligation",),
)
STAKEHOLDER_TERMS: tuple[tuple[str, ...], ...] = (
    ("provider", "fournisseur"),
    ("deployer", "déployeur"),
    ("high risk", "high-risk", "haut risque"),
)

CRITICAL_TERMS = ("sanction", "prohibition", "interdiction", "immediate obligation", "obligation immédiate")
HIGH_TERMS = ("obligation", "compliance", "conformité", "high risk", "high-risk", "haut risque")
MEDIUM_TERMS = ("recommendation", "recommandation", "guidance")

STAKEHOLDER_RULES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("providers", ("provider", "fournisseur")),
    ("deployers", ("deployer", "déployeur")),
    ("distributors", ("distributor", "distributeur")),
    ("importers", ("importer", "importateur")),
    ("authorities", ("authority", "authorities", "autorité")),
)

TOPIC_RULES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("High-risk systems", ("high risk", "high-risk", "haut risque")),
    ("GPAI", ("gpai", "general-purpose", "general purpose", "usage général")),
    ("Transparency", ("transparency", "transparence")),
    ("Sanctions", ("sanction",)),
    ("Compliance", ("compliance", "conformité")),
)


class AnalysisPayload(Payload):
    """Expected shape of a generated analysis."""

    relevance_score: float = Field(allow_inf_nan=False)
    ai_act_relevance: bool | None = None
    impact_level: Annotated[ImpactLevel, Token]
    affected_stakeholders: list[str] = Field(default_factory=list)
    key_topics: list[str] = Field(default_factory=list)
    deadlines: list[date] = Field(default_factory=list)
    action_required: bool | None = None
    confidence_score: float = Field(default=80.0, allow_inf_nan=False)
    reasoning: str | None = None

    def to_analysis(self) -> Analysis:
        relevance = max(0.0, min(100.0, self.relevance_score))
        ai_act_relevance = (
            self.ai_act_relevance if self.ai_act_relevance is not None else relevance >= 50
        )
        action_required = (
            self.action_required
            if self.action_required is not None
            else self.impact_level in (ImpactLevel.CRITICAL, ImpactLevel.HIGH)
        )
        return Analysis(
            relevance_score=relevance,
            ai_act_relevance=ai_act_relevance,
            impact_level=self.impact_level,
            affected_stakeholders=self.affected_stakeholders or ["all"],
            key_topics=self.key_topics or ["General"],
            deadlines=self.deadlines,
            action_required=action_required,
            confidence_score=self.confidence_score,
            reasoning=self.reasoning,
            method=AnalysisMethod.GENERATED,
        )


def _text_of(document: RawDocument) -> str:
    return f"{document.title} {document.raw_content}".lower()


def _contains_any(text: str, terms: Sequence[str]) -> bool:
    return any(term in text for term in terms)


def keyword_relevance(text: str) -> float:
    """Weighted keyword score of lower-cased text, clamped to 100."""
    score = 0
    score += 30 * sum(1 for group in REGULATION_TERMS if _contains_any(text, group))
    score += 15 * sum(1 for group in HIGH_PRIORITY_TERMS if _contains_any(text, group))
    score += 10 * sum(1 for group in STAKEHOLDER_TERMS if _contains_any(text, group))
    return float(min(100, score))


def keyword_impact(text: str) -> ImpactLevel:
    """Impact level from the strongest keyword class present."""
    if _contains_any(text, CRITICAL_TERMS):
        return ImpactLevel.CRITICAL
    if _contains_any(text, HIGH_TERMS):
        return ImpactLevel.HIGH
    if _contains_any(text, MEDIUM_TERMS):
        return ImpactLevel.MEDIUM
    return ImpactLevel.LOW


def rule_based_analysis(document: RawDocument) -> AnalyzedUpdate:
    """Keyword-weighted analysis. Total: never raises for a valid document."""
    text = _text_of(document)

    relevance = keyword_relevance(text)
    impact = keyword_impact(text)
    stakeholders = [name for name, terms in STAKEHOLDER_RULES if _contains_any(text, terms)]
    topics = [topic for topic, terms in TOPIC_RULES if _contains_any(text, terms)]

    return AnalyzedUpdate(
        document=document,
        analysis=Analysis(
            relevance_score=relevance,
            ai_act_relevance=relevance >= 50,
            impact_level=impact,
            affected_stakeholders=stakeholders or ["all"],
            key_topics=topics or ["General"],
            deadlines=[],
            action_required=impact in (ImpactLevel.CRITICAL, ImpactLevel.HIGH),
            confidence_score=RULE_BASED_CONFIDENCE,
            method=AnalysisMethod.RULE_BASED,
        ),
    )


def default_analysis(document: RawDocument) -> AnalyzedUpdate:
    """Conservative analysis for a document that could not be processed."""
    return AnalyzedUpdate(
        document=document,
        analysis=Analysis(
            relevance_score=DEFAULT_RELEVANCE,
            ai_act_relevance=True,
            impact_level=ImpactLevel.MEDIUM,
            affected_stakeholders=["all"],
            key_topics=["Not analyzed"],
            deadlines=[],
            action_required=False,
            confidence_score=DEFAULT_CONFIDENCE,
            method=AnalysisMethod.DEFAULT,
        ),
    )


class AnalysisStage:
    """
    Relevance and impact scoring.

    Example:
        >>> stage = AnalysisStage()
        >>> updates = await stage.analyze(documents, generator=None)
        >>> updates[0].analysis.method
        <AnalysisMethod.RULE_BASED: 'rule_based'>
    """

    def __init__(self, content_excerpt_chars: int = 3000) -> None:
        self.content_excerpt_chars = content_excerpt_chars

    async def analyze(
        self,
        documents: Sequence[RawDocument],
        generator: TextGenerationService | None,
    ) -> list[AnalyzedUpdate]:
        """
        Analyze every document, most relevant first.

        Returns one AnalyzedUpdate per document. Ties keep collection order.
        """
        analyzed: list[AnalyzedUpdate] = []

        for document in documents:
            try:
                analyzed.append(await self.analyze_document(document, generator))
            except Exception as e:
                logger.error(
                    "document_analysis_failed",
                    url=document.url,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                analyzed.append(default_analysis(document))

        analyzed.sort(key=lambda update: update.analysis.relevance_score, reverse=True)

        logger.info(
            "analysis_completed",
            total=len(analyzed),
            generated=sum(1 for u in analyzed if u.analysis.method == AnalysisMethod.GENERATED),
        )
        return analyzed

    async def analyze_document(
        self,
        document: RawDocument,
        generator: TextGenerationService | None,
    ) -> AnalyzedUpdate:
        outcome = await attempt_generation(
            generator,
            analysis_prompt(document, self.content_excerpt_chars),
            AnalysisPayload,
            task="analysis",
        )
        if isinstance(outcome, Generated):
            return AnalyzedUpdate(document=document, analysis=outcome.value.to_analysis())

        logger.debug("analysis_fallback", url=document.url, reason=outcome.reason)
        return rule_based_analysis(document)
