"""
Personalization Stage
=====================

Cross-references insights with one organization's AI-system inventory,
maturity and compliance posture.

Per insight:
1. impacted systems
2. personalized relevance (0-100)
3. urgency level
4. maturity and compliance gaps
5. estimated impact (0-100)
6. risk amplification factor

Version: 0.1.0
"""

import math
from collections.abc import Sequence

from services.regulatory_monitoring.models import (
    Actor,
    AISystem,
    MaturityLevel,
    OrganizationContext,
    PersonalizedInsight,
    RegulatoryInsight,
    RiskLevel,
    RiskTolerance,
    TemporalUrgency,
    UpdateType,
    UrgencyLevel,
    UserContext,
)
from shared.logging import get_logger


logger = get_logger(__name__)

SYSTEM_IMPACT_MAX_BONUS = 30.0
SECTOR_MATCH_BONUS = 20.0

TOLERANCE_BONUS = {
    RiskTolerance.HIGH: 20.0,
    RiskTolerance.MEDIUM: 10.0,
    RiskTolerance.LOW: 0.0,
}
MATURITY_PENALTY = {
    MaturityLevel.INITIAL: -15.0,
    MaturityLevel.DEVELOPING: -10.0,
    MaturityLevel.DEFINED: -5.0,
    MaturityLevel.MANAGED: 0.0,
    MaturityLevel.OPTIMIZING: 0.0,
}
MATURITY_IMPACT_MULTIPLIER = {
    MaturityLevel.INITIAL: 1.5,
    MaturityLevel.DEVELOPING: 1.3,
    MaturityLevel.DEFINED: 1.1,
    MaturityLevel.MANAGED: 1.0,
    MaturityLevel.OPTIMIZING: 1.0,
}
MATURITY_AMPLIFICATION = {
    MaturityLevel.INITIAL: 0.5,
    MaturityLevel.DEVELOPING: 0.3,
    MaturityLevel.DEFINED: 0.1,
    MaturityLevel.MANAGED: 0.0,
    MaturityLevel.OPTIMIZING: 0.0,
}
TOLERANCE_AMPLIFICATION = {
    RiskTolerance.LOW: 0.4,
    RiskTolerance.MEDIUM: 0.2,
    RiskTolerance.HIGH: 0.0,
}

GOVERNANCE_GAP = "AI governance insufficient for the new requirements"
DOCUMENTATION_GAP = "Documentation process needs strengthening"
MONITORING_GAP = "Monitoring capabilities need to be developed"
TRAINING_GAP = "Teams need training on the new requirements"


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _clamp(value: float) -> float:
    return max(0.0, min(100.0, value))


# =============================================================================
# Scoring rules
# =============================================================================


def identify_impacted_systems(insight: RegulatoryInsight, systems: Sequence[AISystem]) -> list[AISystem]:
    """
    Systems concerned by an insight.

    A system is impacted when any of these holds:
    - providers are concerned and the system is high/unacceptable risk
    - its sector appears in an impacted domain
    - the insight links any statutory article
    - a topic or domain keyword appears in its name, description or sector
    """
    classification = insight.classification
    domains = [d.lower() for d in classification.impacted_domains]
    keywords = [k.lower() for k in (*insight.analysis.key_topics, *classification.impacted_domains)]
    providers_concerned = Actor.PROVIDERS in classification.concerned_actors
    links_articles = bool(insight.enrichment.linked_articles)

    impacted: list[AISystem] = []
    for system in systems:
        sector = (system.sector or "").lower()
        haystack = " ".join([system.name.lower(), (system.description or "").lower(), sector])

        if (
            (providers_concerned and system.is_high_risk)
            or (sector and any(sector in domain for domain in domains))
            or links_articles
            or any(keyword and keyword in haystack for keyword in keywords)
        ):
            impacted.append(system)

    return impacted


def sector_matches(insight: RegulatoryInsight, context: OrganizationContext) -> bool:
    sector = context.sector_profile.primary_sector
    if not sector:
        return False
    return any(sector.lower() in domain.lower() for domain in insight.classification.impacted_domains)


def compliance_bonus(compliance_score: float) -> float:
    if compliance_score < 50:
        return 15.0
    if compliance_score < 80:
        return 10.0
    return 5.0


def compute_relevance(
    insight: RegulatoryInsight,
    context: OrganizationContext,
    impacted: Sequence[AISystem],
) -> float:
    """Base relevance adjusted for the organization, rounded and clamped."""
    total = len(context.ai_systems)
    system_bonus = (
        min(SYSTEM_IMPACT_MAX_BONUS, len(impacted) / total * SYSTEM_IMPACT_MAX_BONUS) if total else 0.0
    )
    score = (
        insight.analysis.relevance_score
        + system_bonus
        + (SECTOR_MATCH_BONUS if sector_matches(insight, context) else 0.0)
        + TOLERANCE_BONUS[context.risk_tolerance]
        + MATURITY_PENALTY[context.maturity_level]
        + compliance_bonus(context.compliance_score)
    )
    return float(round_half_up(_clamp(score)))


def compute_urgency(
    insight: RegulatoryInsight,
    context: OrganizationContext,
    impacted: Sequence[AISystem],
) -> UrgencyLevel:
    classification = insight.classification
    urgency = classification.temporal_urgency

    if urgency == TemporalUrgency.IMMEDIATE or (
        classification.update_type == UpdateType.AMENDMENT
        and any(s.risk_level == RiskLevel.UNACCEPTABLE for s in impacted)
    ):
        return UrgencyLevel.IMMEDIATE

    if (
        urgency == TemporalUrgency.THREE_MONTHS
        or (impacted and context.maturity_level == MaturityLevel.INITIAL)
        or (
            any(s.risk_level == RiskLevel.HIGH for s in impacted)
            and context.compliance_score < 60
        )
    ):
        return UrgencyLevel.HIGH

    if urgency == TemporalUrgency.SIX_MONTHS or impacted:
        return UrgencyLevel.MEDIUM

    return UrgencyLevel.LOW


def detect_maturity_gaps(insight: RegulatoryInsight, context: OrganizationContext) -> list[str]:
    classification = insight.classification
    maturity = context.maturity_level
    domains = [d.lower() for d in classification.impacted_domains]

    gaps: list[str] = []
    if any("governance" in d for d in domains) and maturity == MaturityLevel.INITIAL:
        gaps.append(GOVERNANCE_GAP)
    if (
        classification.update_type == UpdateType.IMPLEMENTING_ACT
        and maturity != MaturityLevel.OPTIMIZING
    ):
        gaps.append(DOCUMENTATION_GAP)
    if any("monitoring" in d for d in domains) and maturity in (
        MaturityLevel.INITIAL,
        MaturityLevel.DEVELOPING,
    ):
        gaps.append(MONITORING_GAP)
    if Actor.PROVIDERS in classification.concerned_actors and maturity == MaturityLevel.INITIAL:
        gaps.append(TRAINING_GAP)
    return gaps


def detect_compliance_gaps(insight: RegulatoryInsight, context: OrganizationContext) -> list[str]:
    """One gap per linked article and high/unacceptable system lacking a compliant record."""
    high_risk = [s for s in context.ai_systems if s.is_high_risk]

    gaps: list[str] = []
    for article in insight.enrichment.linked_articles:
        for system in high_risk:
            record = context.find_compliance_record(system.id, article)
            if record is None:
                gaps.append(f"Missing compliance record: {system.name} - {article}")
            elif not record.compliant:
                gaps.append(f"Non-compliance detected: {system.name} - {article}")
    return gaps


def compute_estimated_impact(
    insight: RegulatoryInsight,
    context: OrganizationContext,
    impacted: Sequence[AISystem],
) -> float:
    system_multiplier = min(2.0, 1 + len(impacted) * 0.2)
    if context.compliance_score < 50:
        compliance_multiplier = 1.4
    elif context.compliance_score < 80:
        compliance_multiplier = 1.2
    else:
        compliance_multiplier = 1.0

    impact = (
        insight.synthesis.estimated_impact_score
        * system_multiplier
        * MATURITY_IMPACT_MULTIPLIER[context.maturity_level]
        * compliance_multiplier
    )
    return float(min(100, round_half_up(impact)))


def compute_risk_amplification(context: OrganizationContext, impacted: Sequence[AISystem]) -> float:
    amplification = (
        1.0
        + 0.3 * sum(1 for s in impacted if s.is_high_risk)
        + MATURITY_AMPLIFICATION[context.maturity_level]
        + TOLERANCE_AMPLIFICATION[context.risk_tolerance]
    )
    return round_half_up(amplification * 100) / 100


# =============================================================================
# Fallbacks
# =============================================================================


def generic_personalization(insight: RegulatoryInsight) -> PersonalizedInsight:
    """Personalization without an organization context."""
    return PersonalizedInsight(
        insight=insight,
        user_context=UserContext(
            impacted_systems=[],
            relevance_score=insight.analysis.relevance_score,
            urgency_level=UrgencyLevel.MEDIUM,
            maturity_gaps=["Maturity assessment required for personalization"],
            compliance_gaps=["AI system inventory required for compliance analysis"],
            estimated_impact=insight.synthesis.estimated_impact_score,
            risk_amplification=1.0,
        ),
    )


def conservative_personalization(
    insight: RegulatoryInsight,
    context: OrganizationContext,
) -> PersonalizedInsight:
    """Fail-safe personalization: every system is treated as impacted."""
    return PersonalizedInsight(
        insight=insight,
        user_context=UserContext(
            impacted_systems=list(context.ai_systems),
            relevance_score=max(50.0, insight.analysis.relevance_score),
            urgency_level=UrgencyLevel.MEDIUM,
            maturity_gaps=["Detailed analysis required (manual review)"],
            compliance_gaps=["Manual verification required"],
            estimated_impact=insight.synthesis.estimated_impact_score,
            risk_amplification=1.2,
        ),
    )


# =============================================================================
# Stage
# =============================================================================


def personalize_insight(insight: RegulatoryInsight, context: OrganizationContext) -> PersonalizedInsight:
    impacted = identify_impacted_systems(insight, context.ai_systems)
    return PersonalizedInsight(
        insight=insight,
        user_context=UserContext(
            impacted_systems=impacted,
            relevance_score=compute_relevance(insight, context, impacted),
            urgency_level=compute_urgency(insight, context, impacted),
            maturity_gaps=detect_maturity_gaps(insight, context),
            compliance_gaps=detect_compliance_gaps(insight, context),
            estimated_impact=compute_estimated_impact(insight, context, impacted),
            risk_amplification=compute_risk_amplification(context, impacted),
        ),
    )


class PersonalizationStage:
    """Personalizes insights for one organization."""

    async def personalize(
        self,
        insights: Sequence[RegulatoryInsight],
        context: OrganizationContext | None,
    ) -> list[PersonalizedInsight]:
        """
        Personalize every insight, most relevant first.

        Without a context each insight gets a generic personalization; a
        per-item error yields the conservative fallback for that item.
        """
        if context is None:
            logger.warning("personalization_without_context", count=len(insights))
            personalized = [generic_personalization(insight) for insight in insights]
        else:
            personalized = []
            for insight in insights:
                try:
                    personalized.append(personalize_insight(insight, context))
                except Exception as e:
                    logger.error(
                        "personalization_failed",
                        url=insight.document.url,
                        error=str(e),
                        error_type=type(e).__name__,
                    )
                    personalized.append(conservative_personalization(insight, context))

        personalized.sort(key=lambda p: p.user_context.relevance_score, reverse=True)

        logger.info(
            "personalization_completed",
            total=len(personalized),
            high_relevance=sum(1 for p in personalized if p.user_context.relevance_score >= 70),
        )
        return personalized
