"""
Classification & Synthesis Stage
================================

Two generate-or-fallback steps per relevant update:

1. Classification: update type, impacted domains, concerned actors,
   temporal urgency, related articles, contradiction detection
2. Synthesis: executive summary, key points, recommended actions and a
   compliance checklist

Action and checklist ids always come from the id generator, never from
generated text.

Version: 0.1.0
"""

from collections.abc import Iterable, Sequence
from datetime import date
from typing import Annotated

from pydantic import Field

from services.regulatory_monitoring.generation import (
    Generated,
    Payload,
    Token,
    attempt_generation,
    normalize_token,
)
from services.regulatory_monitoring.ids import IdGenerator
from services.regulatory_monitoring.models import (
    Action,
    ActionPriority,
    Actor,
    AnalyzedUpdate,
    ChecklistItem,
    Classification,
    ClassifiedUpdate,
    Enrichment,
    ExtractedEntities,
    ImpactLevel,
    RegulatoryInsight,
    Synthesis,
    TemporalUrgency,
    UpdateType,
)
from services.regulatory_monitoring.prompts import classification_prompt, synthesis_prompt
from shared.llm import TextGenerationService
from shared.logging import get_logger


logger = get_logger(__name__)


# =============================================================================
# Generated payloads
# =============================================================================


class ClassificationPayload(Payload):
    """Expected shape of a generated classification."""

    update_type: Annotated[UpdateType, Token]
    impacted_domains: list[str] = Field(default_factory=list)
    concerned_actors: list[str] = Field(default_factory=list)
    temporal_urgency: Annotated[TemporalUrgency, Token]
    related_articles: list[str] = Field(default_factory=list)
    detects_contradiction: bool = False
    contradiction_details: str | None = None
    extracted_dates: list[date] = Field(default_factory=list)
    extracted_articles: list[str] = Field(default_factory=list)
    extracted_annexes: list[str] = Field(default_factory=list)
    normative_changes: list[str] = Field(default_factory=list)


class ActionPayload(Payload):
    description: str = Field(..., min_length=1)
    priority: Annotated[ActionPriority, Token] = ActionPriority.MEDIUM
    deadline: date | None = None


class ChecklistPayload(Payload):
    task: str = Field(..., min_length=1)
    required: bool = True
    deadline: date | None = None
    related_article: str | None = None


class SynthesisPayload(Payload):
    """Expected shape of a generated synthesis."""

    executive_summary: str = Field(..., min_length=1)
    key_points: list[str] = Field(default_factory=list)
    practical_implications: list[str] = Field(default_factory=list)
    recommended_actions: list[ActionPayload] = Field(default_factory=list)
    compliance_checklist: list[ChecklistPayload] = Field(default_factory=list)
    estimated_impact_score: float = Field(allow_inf_nan=False)


# =============================================================================
# Rule-based fallbacks
# =============================================================================


def resolve_actors(values: Iterable[str]) -> list[Actor]:
    """Keep valid actor names in order; ``all`` expands to every actor."""
    actors: list[Actor] = []
    for value in values:
        token = normalize_token(value)
        if token == "all":
            return list(Actor)
        try:
            actor = Actor(token)
        except ValueError:
            continue
        if actor not in actors:
            actors.append(actor)
    return actors


def infer_update_type(text: str) -> UpdateType:
    """Update type from substrings of lower-cased text."""
    if "amendment" in text or "amendement" in text:
        return UpdateType.AMENDMENT
    if "delegated act" in text or "acte délégué" in text:
        return UpdateType.DELEGATED_ACT
    if "sanction" in text:
        return UpdateType.ENFORCEMENT
    return UpdateType.GUIDANCE


def urgency_from_impact(impact: ImpactLevel) -> TemporalUrgency:
    if impact == ImpactLevel.CRITICAL:
        return TemporalUrgency.IMMEDIATE
    if impact == ImpactLevel.HIGH:
        return TemporalUrgency.THREE_MONTHS
    return TemporalUrgency.SIX_MONTHS


def rule_based_classification(update: AnalyzedUpdate) -> ClassifiedUpdate:
    """Substring-driven classification of an analyzed update."""
    document, analysis = update.document, update.analysis
    text = f"{document.title} {document.raw_content}".lower()

    return ClassifiedUpdate(
        analyzed=update,
        classification=Classification(
            update_type=infer_update_type(text),
            impacted_domains=["General"],
            concerned_actors=resolve_actors(analysis.affected_stakeholders),
            temporal_urgency=urgency_from_impact(analysis.impact_level),
            related_articles=[],
            detects_contradiction=False,
        ),
        enrichment=Enrichment(
            extracted_entities=ExtractedEntities(
                dates=list(analysis.deadlines),
                organizations=[document.source],
            ),
        ),
    )


def rule_based_synthesis(classified: ClassifiedUpdate, ids: IdGenerator) -> RegulatoryInsight:
    """Templated synthesis: one review action, one applicability check."""
    document = classified.analyzed.document
    analysis = classified.analyzed.analysis

    return RegulatoryInsight(
        classified=classified,
        synthesis=Synthesis(
            executive_summary=f"New regulatory update from {document.source} requiring review.",
            key_points=[
                document.title,
                f"Impact: {analysis.impact_level.value}",
                f"Relevance: {analysis.relevance_score:g}%",
            ],
            practical_implications=[
                "Review of the source document required",
                "Assess the impact on your AI systems",
            ],
            recommended_actions=[
                Action(
                    id=ids.new_id("action"),
                    description="Review the full document",
                    priority=ActionPriority.HIGH,
                ),
            ],
            compliance_checklist=[
                ChecklistItem(
                    id=ids.new_id("check"),
                    task="Assess applicability to your AI systems",
                    required=True,
                ),
            ],
            estimated_impact_score=analysis.relevance_score,
        ),
    )


# =============================================================================
# Stage
# =============================================================================


class ClassificationSynthesisStage:
    """Classifies relevant updates and writes one insight per update."""

    def __init__(
        self,
        id_generator: IdGenerator | None = None,
        excerpt_chars: int = 2000,
    ) -> None:
        self.ids = id_generator or IdGenerator()
        self.excerpt_chars = excerpt_chars

    async def classify_and_synthesize(
        self,
        updates: Sequence[AnalyzedUpdate],
        generator: TextGenerationService | None,
    ) -> list[RegulatoryInsight]:
        """
        Build one RegulatoryInsight per update, in input order.

        Never raises: an unexpected error on one item falls back to the
        rule-based classification and synthesis for that item.
        """
        insights: list[RegulatoryInsight] = []

        for update in updates:
            try:
                classified = await self.classify(update, generator)
                insights.append(await self.synthesize(classified, generator))
            except Exception as e:
                logger.error(
                    "classification_synthesis_failed",
                    url=update.document.url,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                insights.append(
                    rule_based_synthesis(rule_based_classification(update), self.ids)
                )

        logger.info(
            "classification_synthesis_completed",
            total=len(insights),
            critical=sum(1 for i in insights if i.analysis.impact_level == ImpactLevel.CRITICAL),
            high=sum(1 for i in insights if i.analysis.impact_level == ImpactLevel.HIGH),
        )
        return insights

    async def classify(
        self,
        update: AnalyzedUpdate,
        generator: TextGenerationService | None,
    ) -> ClassifiedUpdate:
        outcome = await attempt_generation(
            generator,
            classification_prompt(update, self.excerpt_chars),
            ClassificationPayload,
            task="classification",
        )
        if not isinstance(outcome, Generated):
            logger.debug("classification_fallback", url=update.document.url, reason=outcome.reason)
            return rule_based_classification(update)

        payload = outcome.value
        return ClassifiedUpdate(
            analyzed=update,
            classification=Classification(
                update_type=payload.update_type,
                impacted_domains=payload.impacted_domains or ["General"],
                concerned_actors=resolve_actors(payload.concerned_actors),
                temporal_urgency=payload.temporal_urgency,
                related_articles=payload.related_articles,
                detects_contradiction=payload.detects_contradiction,
                contradiction_details=payload.contradiction_details,
            ),
            enrichment=Enrichment(
                extracted_entities=ExtractedEntities(
                    dates=payload.extracted_dates,
                    articles=payload.extracted_articles,
                    annexes=payload.extracted_annexes,
                    organizations=[update.document.source],
                ),
                linked_articles=payload.related_articles,
                normative_changes=payload.normative_changes,
            ),
        )

    async def synthesize(
        self,
        classified: ClassifiedUpdate,
        generator: TextGenerationService | None,
    ) -> RegulatoryInsight:
        outcome = await attempt_generation(
            generator,
            synthesis_prompt(classified, self.excerpt_chars),
            SynthesisPayload,
            task="synthesis",
        )
        if not isinstance(outcome, Generated):
            logger.debug(
                "synthesis_fallback",
                url=classified.analyzed.document.url,
                reason=outcome.reason,
            )
            return rule_based_synthesis(classified, self.ids)

        payload = outcome.value
        return RegulatoryInsight(
            classified=classified,
            synthesis=Synthesis(
                executive_summary=payload.executive_summary,
                key_points=payload.key_points,
                practical_implications=payload.practical_implications,
                recommended_actions=[
                    Action(
                        id=self.ids.new_id("action"),
                        description=action.description,
                        priority=action.priority,
                        deadline=action.deadline,
                    )
                    for action in payload.recommended_actions
                ],
                compliance_checklist=[
                    ChecklistItem(
                        id=self.ids.new_id("check"),
                        task=item.task,
                        required=item.required,
                        deadline=item.deadline,
                        related_article=item.related_article,
                    )
                    for item in payload.compliance_checklist
                ],
                estimated_impact_score=payload.estimated_impact_score,
            ),
        )
