"""
Action Planning Stage
=====================

Expands personalized insights into concrete, timed action plans using
deterministic keyword rules only (no generation):

- priority actions (recommendations, maturity gaps, compliance gaps)
- per-system actions
- enriched compliance checklist
- timeline buckets, effort and budget estimates
- risk mitigation plan

Version: 0.1.0
"""

import math
from collections.abc import Callable, Sequence
from datetime import UTC, date, datetime, timedelta

from services.regulatory_monitoring.ids import IdGenerator
from services.regulatory_monitoring.models import (
    ActionableInsight,
    ActionCategory,
    ActionPlan,
    ActionPriority,
    AISystem,
    BudgetBand,
    BudgetImpact,
    ChecklistCategory,
    ChecklistItem,
    EffortEstimate,
    ImpactLevel,
    PersonalizedInsight,
    PlannedAction,
    PlannedChecklistItem,
    RiskLevel,
    RiskMitigation,
    Timeline,
    UpdateType,
    UrgencyLevel,
)
from shared.logging import get_logger


logger = get_logger(__name__)

DEADLINE_DAYS = {
    UrgencyLevel.IMMEDIATE: 30,
    UrgencyLevel.HIGH: 90,
    UrgencyLevel.MEDIUM: 180,
    UrgencyLevel.LOW: 365,
}
PRIORITY_FROM_URGENCY = {
    UrgencyLevel.IMMEDIATE: ActionPriority.URGENT,
    UrgencyLevel.HIGH: ActionPriority.HIGH,
    UrgencyLevel.MEDIUM: ActionPriority.MEDIUM,
    UrgencyLevel.LOW: ActionPriority.LOW,
}
PRIORITY_RANK = {
    ActionPriority.URGENT: 4,
    ActionPriority.HIGH: 3,
    ActionPriority.MEDIUM: 2,
    ActionPriority.LOW: 1,
}
IMPACT_RANK = {
    ImpactLevel.CRITICAL: 4,
    ImpactLevel.HIGH: 3,
    ImpactLevel.MEDIUM: 2,
    ImpactLevel.LOW: 1,
}

# First matching category wins
CATEGORY_RULES: tuple[tuple[ActionCategory, tuple[str, ...]], ...] = (
    (ActionCategory.COMPLIANCE, ("compliance", "conformité", "audit")),
    (ActionCategory.DOCUMENTATION, ("documentation", "document")),
    (ActionCategory.TECHNICAL, ("technical", "technique", "system", "système")),
    (ActionCategory.GOVERNANCE, ("governance", "gouvernance", "process")),
    (ActionCategory.TRAINING, ("training", "formation", "skill", "compétence")),
)
SKILL_RULES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("Regulatory compliance", ("compliance", "conformité")),
    ("Technical expertise", ("technical", "technique")),
    ("Audit", ("audit",)),
    ("Technical writing", ("documentation",)),
    ("AI governance", ("governance", "gouvernance")),
    ("Training", ("training", "formation")),
)
DEPENDENCY_RULES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("Prior impact analysis", ("review", "révision", "update", "mise à jour")),
    ("Up-to-date documentation", ("test", "audit")),
    ("Training material prepared", ("training", "formation")),
)
CHECKLIST_CATEGORY_RULES: tuple[tuple[ChecklistCategory, tuple[str, ...]], ...] = (
    (ChecklistCategory.IMMEDIATE, ("immediate", "immédiat", "urgent")),
    (ChecklistCategory.SHORT_TERM, ("short term", "short-term", "court terme", "3 months", "3 mois")),
    (ChecklistCategory.MEDIUM_TERM, ("medium term", "medium-term", "moyen terme", "6 months", "6 mois")),
)
CHECKLIST_HOURS_RULES: tuple[tuple[float, tuple[str, ...]], ...] = (
    (16.0, ("full review", "révision complète", "audit")),
    (8.0, ("documentation", "report", "rapport")),
    (4.0, ("verify", "verification", "vérification", "check", "contrôle")),
)
PREREQUISITE_RULES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("Complete system documentation", ("audit", "verify", "verification", "vérification")),
    ("Test environment configured", ("test",)),
    ("Participants identified", ("training", "formation")),
)
VALIDATION_RULES: tuple[tuple[tuple[str, ...], tuple[str, ...]], ...] = (
    (("Validated by internal audit", "Documented evidence"), ("compliance", "conformité")),
    (("Tests passed", "Test report approved"), ("test",)),
    (("Participant assessment", "Training certificate"), ("training", "formation")),
)

CONTINGENCY_PLANS = [
    "Temporary suspension plan for non-compliant systems",
    "Escalation procedure to management",
    "Crisis communication with the regulatory authorities",
]
MONITORING_REQUIREMENTS = [
    "Weekly tracking of action progress",
    "Monthly reporting to management",
    "Quarterly compliance audit",
]

BUDGET_BANDS: tuple[tuple[float, BudgetBand, str], ...] = (
    (5_000, BudgetBand.LOW, "Low (< 5k EUR)"),
    (20_000, BudgetBand.MODERATE, "Moderate (5-20k EUR)"),
    (50_000, BudgetBand.HIGH, "High (20-50k EUR)"),
)


def _matches(text: str, terms: Sequence[str]) -> bool:
    return any(term in text for term in terms)


# =============================================================================
# Keyword rules
# =============================================================================


def categorize_action(description: str) -> ActionCategory:
    text = description.lower()
    for category, terms in CATEGORY_RULES:
        if _matches(text, terms):
            return category
    return ActionCategory.COMPLIANCE


def required_skills(description: str) -> list[str]:
    text = description.lower()
    skills = [skill for skill, terms in SKILL_RULES if _matches(text, terms)]
    return skills or ["General expertise"]


def dependencies_for(description: str) -> list[str]:
    text = description.lower()
    return [dependency for dependency, terms in DEPENDENCY_RULES if _matches(text, terms)]


def estimate_action_hours(description: str, urgency: UrgencyLevel) -> float:
    """24h for long descriptions, 16h otherwise; x1.5 when immediate."""
    base = 24.0 if len(description) > 100 else 16.0
    return base * 1.5 if urgency == UrgencyLevel.IMMEDIATE else base


def action_impact_level(personalized: PersonalizedInsight) -> ImpactLevel:
    context = personalized.user_context
    if context.urgency_level == UrgencyLevel.IMMEDIATE:
        return ImpactLevel.CRITICAL
    if context.estimated_impact > 80:
        return ImpactLevel.HIGH
    if context.estimated_impact > 50:
        return ImpactLevel.MEDIUM
    return ImpactLevel.LOW


def categorize_checklist_item(task: str) -> ChecklistCategory:
    text = task.lower()
    for category, terms in CHECKLIST_CATEGORY_RULES:
        if _matches(text, terms):
            return category
    return ChecklistCategory.LONG_TERM


def estimate_checklist_hours(task: str) -> float:
    text = task.lower()
    for hours, terms in CHECKLIST_HOURS_RULES:
        if _matches(text, terms):
            return hours
    return 2.0


def prerequisites_for(task: str) -> list[str]:
    text = task.lower()
    return [item for item, terms in PREREQUISITE_RULES if _matches(text, terms)]


def validation_criteria_for(task: str) -> list[str]:
    text = task.lower()
    criteria: list[str] = []
    for items, terms in VALIDATION_RULES:
        if _matches(text, terms):
            criteria.extend(items)
    return criteria or ["Approved by the task owner"]


def prioritize(actions: Sequence[PlannedAction]) -> list[PlannedAction]:
    """Stable sort by priority, then impact, strongest first."""
    return sorted(
        actions,
        key=lambda a: (PRIORITY_RANK[a.priority], IMPACT_RANK[a.impact_level]),
        reverse=True,
    )


def timeline_bucket(priority: ActionPriority, urgency: UrgencyLevel) -> str:
    """Bucket chosen by the stronger of action priority and insight urgency."""
    if priority == ActionPriority.URGENT or urgency == UrgencyLevel.IMMEDIATE:
        return "immediate"
    if priority == ActionPriority.HIGH or urgency == UrgencyLevel.HIGH:
        return "short_term"
    if priority == ActionPriority.MEDIUM or urgency == UrgencyLevel.MEDIUM:
        return "medium_term"
    return "long_term"


def build_timeline(actions: Sequence[PlannedAction], urgency: UrgencyLevel) -> Timeline:
    """Place each action (deduplicated by id) in exactly one bucket."""
    buckets: dict[str, list[PlannedAction]] = {
        "immediate": [],
        "short_term": [],
        "medium_term": [],
        "long_term": [],
    }
    seen: set[str] = set()
    for action in actions:
        if action.id in seen:
            continue
        seen.add(action.id)
        buckets[timeline_bucket(action.priority, urgency)].append(action)
    return Timeline(**buckets)


def estimate_effort(actions: Sequence[PlannedAction]) -> EffortEstimate:
    total_hours = sum(action.estimated_hours for action in actions)
    days = math.ceil(total_hours / 8)
    weeks = math.ceil(days / 5)
    months = math.ceil(weeks / 4)

    if weeks <= 1:
        label = f"{days} day(s) ({total_hours:g}h)"
    elif weeks <= 4:
        label = f"{weeks} week(s) ({total_hours:g}h)"
    else:
        label = f"{months} month(s) ({total_hours:g}h)"

    return EffortEstimate(total_hours=total_hours, days=days, weeks=weeks, months=months, label=label)


def estimate_budget(
    total_hours: float,
    estimated_impact: float,
    urgency: UrgencyLevel,
    hourly_rate: float = 100.0,
) -> BudgetImpact:
    complexity = 1.5 if estimated_impact > 70 else 1.2
    urgency_multiplier = 1.3 if urgency == UrgencyLevel.IMMEDIATE else 1.0
    cost = total_hours * hourly_rate * complexity * urgency_multiplier

    for ceiling, band, label in BUDGET_BANDS:
        if cost < ceiling:
            return BudgetImpact(estimated_cost=round(cost, 2), band=band, label=label)
    return BudgetImpact(
        estimated_cost=round(cost, 2),
        band=BudgetBand.VERY_HIGH,
        label="Very high (> 50k EUR)",
    )


# =============================================================================
# Stage
# =============================================================================


class ActionPlanningStage:
    """
    Builds one action plan per personalized insight.

    Example:
        >>> stage = ActionPlanningStage(id_generator=SequentialIdGenerator())
        >>> [plan] = await stage.plan([personalized])
        >>> plan.action_plan.priority_actions[0].id
        'priority-0001'
    """

    def __init__(
        self,
        id_generator: IdGenerator | None = None,
        hourly_rate: float = 100.0,
        clock: Callable[[], date] | None = None,
    ) -> None:
        self.ids = id_generator or IdGenerator()
        self.hourly_rate = hourly_rate
        self._today = clock or (lambda: datetime.now(UTC).date())

    async def plan(self, insights: Sequence[PersonalizedInsight]) -> list[ActionableInsight]:
        """
        Derive an action plan for every insight, in input order.

        A per-insight error yields a minimal manual-review plan.
        """
        actionable: list[ActionableInsight] = []

        for personalized in insights:
            try:
                plan = self.build_plan(personalized)
            except Exception as e:
                logger.error(
                    "action_planning_failed",
                    url=personalized.document.url,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                plan = self.fallback_plan(personalized)
            actionable.append(ActionableInsight(personalized=personalized, action_plan=plan))

        logger.info(
            "action_planning_completed",
            total=len(actionable),
            actions=sum(a.action_plan.action_count for a in actionable),
        )
        return actionable

    def deadline(self, urgency: UrgencyLevel) -> date:
        return self._today() + timedelta(days=DEADLINE_DAYS[urgency])

    def build_plan(self, personalized: PersonalizedInsight) -> ActionPlan:
        context = personalized.user_context

        priority_actions = self.priority_actions(personalized)
        system_actions = {
            system.id: self.system_actions(personalized, system)
            for system in context.impacted_systems
        }
        checklist = self.checklist(personalized)
        risk_mitigation = self.risk_mitigation(personalized)

        every_action = [
            *priority_actions,
            *(action for actions in system_actions.values() for action in actions),
            *risk_mitigation.mitigation_actions,
        ]
        timeline = build_timeline(every_action, context.urgency_level)
        effort = estimate_effort(timeline.all_actions())

        return ActionPlan(
            priority_actions=priority_actions,
            system_actions=system_actions,
            compliance_checklist=checklist,
            timeline=timeline,
            estimated_effort=effort,
            budget_impact=estimate_budget(
                effort.total_hours,
                context.estimated_impact,
                context.urgency_level,
                self.hourly_rate,
            ),
            risk_mitigation=risk_mitigation,
        )

    def priority_actions(self, personalized: PersonalizedInsight) -> list[PlannedAction]:
        context = personalized.user_context
        urgency = context.urgency_level
        impact = action_impact_level(personalized)

        actions: list[PlannedAction] = []
        for recommendation in personalized.insight.synthesis.recommended_actions:
            description = recommendation.description
            actions.append(
                PlannedAction(
                    id=self.ids.new_id("priority"),
                    description=description,
                    priority=PRIORITY_FROM_URGENCY[urgency],
                    deadline=self.deadline(urgency),
                    category=categorize_action(description),
                    impact_level=impact,
                    estimated_hours=estimate_action_hours(description, urgency),
                    required_skills=required_skills(description),
                    dependencies=dependencies_for(description),
                )
            )

        for gap in context.maturity_gaps:
            actions.append(
                PlannedAction(
                    id=self.ids.new_id("maturity-gap"),
                    description=f"Close maturity gap: {gap}",
                    priority=ActionPriority.MEDIUM,
                    deadline=self.deadline(UrgencyLevel.MEDIUM),
                    category=ActionCategory.GOVERNANCE,
                    impact_level=ImpactLevel.MEDIUM,
                    estimated_hours=20.0,
                    required_skills=["AI governance", "Project management"],
                    dependencies=["Complete maturity assessment"],
                )
            )

        for gap in context.compliance_gaps:
            actions.append(
                PlannedAction(
                    id=self.ids.new_id("compliance-gap"),
                    description=f"Resolve compliance gap: {gap}",
                    priority=ActionPriority.HIGH,
                    deadline=self.deadline(UrgencyLevel.HIGH),
                    category=ActionCategory.COMPLIANCE,
                    impact_level=ImpactLevel.HIGH,
                    estimated_hours=15.0,
                    required_skills=["Regulatory compliance", "Audit"],
                    dependencies=["Detailed gap analysis"],
                )
            )

        return prioritize(actions)

    def system_actions(self, personalized: PersonalizedInsight, system: AISystem) -> list[PlannedAction]:
        context = personalized.user_context
        actions: list[PlannedAction] = []

        if system.risk_level in (RiskLevel.HIGH, RiskLevel.UNACCEPTABLE):
            actions.append(
                PlannedAction(
                    id=self.ids.new_id("system-review"),
                    description=f"Full review of {system.name} against the new requirements",
                    priority=ActionPriority.URGENT,
                    deadline=self.deadline(UrgencyLevel.IMMEDIATE),
                    system_id=system.id,
                    system_name=system.name,
                    category=ActionCategory.TECHNICAL,
                    impact_level=ImpactLevel.CRITICAL,
                    estimated_hours=40.0,
                    required_skills=["AI architecture", "Technical compliance"],
                    dependencies=["Detailed impact analysis"],
                )
            )

        if personalized.insight.classification.update_type == UpdateType.IMPLEMENTING_ACT:
            actions.append(
                PlannedAction(
                    id=self.ids.new_id("doc-update"),
                    description=f"Update the technical documentation of {system.name}",
                    priority=ActionPriority.HIGH,
                    deadline=self.deadline(UrgencyLevel.HIGH),
                    system_id=system.id,
                    system_name=system.name,
                    category=ActionCategory.DOCUMENTATION,
                    impact_level=ImpactLevel.MEDIUM,
                    estimated_hours=16.0,
                    required_skills=["Technical documentation", "Compliance"],
                    dependencies=["Requirements review"],
                )
            )

        if any(system.name in gap for gap in context.compliance_gaps):
            actions.append(
                PlannedAction(
                    id=self.ids.new_id("compliance-test"),
                    description=f"Compliance tests for {system.name}",
                    priority=ActionPriority.HIGH,
                    deadline=self.deadline(UrgencyLevel.HIGH),
                    system_id=system.id,
                    system_name=system.name,
                    category=ActionCategory.COMPLIANCE,
                    impact_level=ImpactLevel.HIGH,
                    estimated_hours=24.0,
                    required_skills=["Compliance testing", "Technical audit"],
                    dependencies=["Documentation updated"],
                )
            )

        return actions

    def checklist(self, personalized: PersonalizedInsight) -> list[PlannedChecklistItem]:
        context = personalized.user_context
        items: list[PlannedChecklistItem] = [
            self._enrich_checklist_item(item)
            for item in personalized.insight.synthesis.compliance_checklist
        ]

        for system in context.impacted_systems:
            items.append(
                PlannedChecklistItem(
                    id=self.ids.new_id("system-checklist"),
                    task=f"Verify that {system.name} complies with the new requirements",
                    required=True,
                    deadline=self.deadline(context.urgency_level),
                    system_id=system.id,
                    system_name=system.name,
                    category=ChecklistCategory.IMMEDIATE,
                    estimated_hours=8.0,
                    prerequisites=["Up-to-date system documentation"],
                    validation_criteria=["Compliance tests passed", "Internal audit approved"],
                )
            )

        return items

    def _enrich_checklist_item(self, item: ChecklistItem) -> PlannedChecklistItem:
        return PlannedChecklistItem(
            id=self.ids.new_id("checklist"),
            task=item.task,
            required=item.required,
            deadline=item.deadline,
            related_article=item.related_article,
            category=categorize_checklist_item(item.task),
            estimated_hours=estimate_checklist_hours(item.task),
            prerequisites=prerequisites_for(item.task),
            validation_criteria=validation_criteria_for(item.task),
        )

    def risk_mitigation(self, personalized: PersonalizedInsight) -> RiskMitigation:
        context = personalized.user_context

        risks = [f"Non-compliance risk: {gap}" for gap in context.compliance_gaps]
        risks.extend(f"Organizational risk: {gap}" for gap in context.maturity_gaps)
        if context.risk_amplification > 1.5:
            risks.append("High risk amplification from the organization profile")
        if any(s.risk_level == RiskLevel.UNACCEPTABLE for s in context.impacted_systems):
            risks.append("Critical risk on unacceptable-risk systems")

        monitoring_action = PlannedAction(
            id=self.ids.new_id("risk-mitigation"),
            description="Set up reinforced monitoring of critical systems",
            priority=ActionPriority.HIGH,
            deadline=self.deadline(UrgencyLevel.HIGH),
            category=ActionCategory.GOVERNANCE,
            impact_level=ImpactLevel.HIGH,
            estimated_hours=16.0,
            required_skills=["Monitoring", "Risk governance"],
            dependencies=["Critical systems identified"],
        )

        return RiskMitigation(
            identified_risks=risks,
            mitigation_actions=[monitoring_action],
            contingency_plans=list(CONTINGENCY_PLANS),
            monitoring_requirements=list(MONITORING_REQUIREMENTS),
        )

    def fallback_plan(self, personalized: PersonalizedInsight) -> ActionPlan:
        """Minimal plan: one manual-review action and one manual-review check."""
        context = personalized.user_context

        action = PlannedAction(
            id=self.ids.new_id("fallback"),
            description="Manual analysis required to determine the specific actions",
            priority=ActionPriority.MEDIUM,
            deadline=self.deadline(UrgencyLevel.MEDIUM),
            category=ActionCategory.COMPLIANCE,
            impact_level=ImpactLevel.MEDIUM,
            estimated_hours=8.0,
            required_skills=["Regulatory analysis"],
            dependencies=["Detailed review of the insight"],
        )
        timeline = build_timeline([action], context.urgency_level)
        effort = estimate_effort(timeline.all_actions())

        return ActionPlan(
            priority_actions=[action],
            system_actions={},
            compliance_checklist=[
                PlannedChecklistItem(
                    id=self.ids.new_id("fallback-checklist"),
                    task="Perform a manual analysis of the regulatory impact",
                    required=True,
                    category=ChecklistCategory.IMMEDIATE,
                    estimated_hours=4.0,
                    prerequisites=["Access to the regulatory documents"],
                    validation_criteria=["Analysis report approved"],
                )
            ],
            timeline=timeline,
            estimated_effort=effort,
            budget_impact=estimate_budget(
                effort.total_hours,
                context.estimated_impact,
                context.urgency_level,
                self.hourly_rate,
            ),
            risk_mitigation=RiskMitigation(
                identified_risks=["Incomplete analysis due to missing automation"],
                mitigation_actions=[action],
                contingency_plans=["External expert consultation"],
                monitoring_requirements=["Weekly follow-up"],
            ),
        )
