"""
Regulatory Monitoring Models
============================

Immutable records flowing through the monitoring pipeline.

Each stage wraps the record produced by the previous one without
touching it:

    RawDocument -> AnalyzedUpdate -> ClassifiedUpdate -> RegulatoryInsight
      -> PersonalizedInsight -> ActionableInsight

Every 0-100 score is clamped on construction rather than rejected.

Version: 0.1.0
"""

import math
from collections import Counter
from collections.abc import Iterable
from datetime import UTC, date, datetime
from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field


def clamp_score(value: Any) -> float:
    """Coerce to float and clamp into [0, 100]."""
    try:
        score = float(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"invalid score: {value!r}") from e
    if math.isnan(score):
        raise ValueError("score is NaN")
    return max(0.0, min(100.0, score))


Score = Annotated[float, BeforeValidator(clamp_score)]


class Record(BaseModel):
    """Base for pipeline records: frozen once built."""

    model_config = ConfigDict(frozen=True)


# =============================================================================
# Enumerations
# =============================================================================


class DocumentType(str, Enum):
    """Kind of regulatory document."""

    REGULATION = "regulation"
    DIRECTIVE = "directive"
    DECISION = "decision"
    GUIDANCE = "guidance"
    CONSULTATION = "consultation"
    FAQ = "faq"
    CASE_LAW = "case_law"


class ImpactLevel(str, Enum):
    """Coarse severity of a regulatory update."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class AnalysisMethod(str, Enum):
    """How an analysis was produced."""

    GENERATED = "generated"
    RULE_BASED = "rule_based"
    DEFAULT = "default"


class UpdateType(str, Enum):
    """Legal nature of an update."""

    AMENDMENT = "amendment"
    DELEGATED_ACT = "delegated_act"
    IMPLEMENTING_ACT = "implementing_act"
    GUIDANCE = "guidance"
    FAQ = "faq"
    ENFORCEMENT = "enforcement"


class Actor(str, Enum):
    """Operators named by the AI Act."""

    PROVIDERS = "providers"
    DEPLOYERS = "deployers"
    DISTRIBUTORS = "distributors"
    IMPORTERS = "importers"
    AUTHORITIES = "authorities"


class TemporalUrgency(str, Enum):
    """Compliance deadline bucket."""

    IMMEDIATE = "immediate"  # < 1 month
    THREE_MONTHS = "3_months"
    SIX_MONTHS = "6_months"
    ONE_YEAR = "1_year"
    FUTURE = "future"  # > 12 months


class RiskLevel(str, Enum):
    """AI Act risk tier of a system."""

    MINIMAL = "minimal"
    LIMITED = "limited"
    HIGH = "high"
    UNACCEPTABLE = "unacceptable"


class MaturityLevel(str, Enum):
    """Organizational AI governance maturity."""

    INITIAL = "initial"
    DEVELOPING = "developing"
    DEFINED = "defined"
    MANAGED = "managed"
    OPTIMIZING = "optimizing"


class RiskTolerance(str, Enum):
    """Organization risk tolerance derived from its inventory."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class UrgencyLevel(str, Enum):
    """Personalized urgency of an insight."""

    IMMEDIATE = "immediate"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ActionPriority(str, Enum):
    """Priority of an action."""

    URGENT = "urgent"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ActionStatus(str, Enum):
    """Lifecycle of an action."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class ActionCategory(str, Enum):
    """Work category of a planned action."""

    COMPLIANCE = "compliance"
    DOCUMENTATION = "documentation"
    TECHNICAL = "technical"
    GOVERNANCE = "governance"
    TRAINING = "training"


class ChecklistCategory(str, Enum):
    """Time horizon of a checklist item."""

    IMMEDIATE = "immediate"
    SHORT_TERM = "short_term"
    MEDIUM_TERM = "medium_term"
    LONG_TERM = "long_term"


class BudgetBand(str, Enum):
    """Qualitative budget band."""

    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    VERY_HIGH = "very_high"


HIGH_RISK_LEVELS = frozenset({RiskLevel.HIGH, RiskLevel.UNACCEPTABLE})


# =============================================================================
# Collection
# =============================================================================


class DocumentMetadata(Record):
    """Source-specific document metadata."""

    celex: str | None = None
    document_number: str | None = None
    authors: list[str] = Field(default_factory=list)
    keywords: list[str] = Field(default_factory=list)
    attachments: list[str] = Field(default_factory=list)
    extra: dict[str, Any] = Field(default_factory=dict)


class RawDocument(Record):
    """A document as returned by a source adapter. Identity is ``url``."""

    source_id: str
    source: str
    url: str = Field(..., min_length=1)
    title: str
    raw_content: str = ""
    published_date: date | None = None
    document_type: DocumentType = DocumentType.GUIDANCE
    language: str = "en"
    metadata: DocumentMetadata = Field(default_factory=DocumentMetadata)


class SourceStatus(Record):
    """Outcome of fetching one source."""

    success: bool
    count: int = 0
    error: str | None = None


class CollectionResult(Record):
    """Deduplicated documents plus per-source status."""

    documents: list[RawDocument] = Field(default_factory=list)
    source_status: dict[str, SourceStatus] = Field(default_factory=dict)


# =============================================================================
# Analysis
# =============================================================================


class Analysis(Record):
    """Relevance and impact assessment of one document."""

    relevance_score: Score
    ai_act_relevance: bool
    impact_level: ImpactLevel
    affected_stakeholders: list[str] = Field(default_factory=lambda: ["all"])
    key_topics: list[str] = Field(default_factory=list)
    deadlines: list[date] = Field(default_factory=list)
    action_required: bool = False
    confidence_score: Score
    reasoning: str | None = None
    method: AnalysisMethod


class AnalyzedUpdate(Record):
    """A document with its analysis."""

    document: RawDocument
    analysis: Analysis


# =============================================================================
# Classification & synthesis
# =============================================================================


class Classification(Record):
    """Legal classification of an update."""

    update_type: UpdateType
    impacted_domains: list[str] = Field(default_factory=lambda: ["General"])
    concerned_actors: list[Actor] = Field(default_factory=list)
    temporal_urgency: TemporalUrgency
    related_articles: list[str] = Field(default_factory=list)
    detects_contradiction: bool = False
    contradiction_details: str | None = None


class ExtractedEntities(Record):
    """Entities pulled out of the document text."""

    dates: list[date] = Field(default_factory=list)
    articles: list[str] = Field(default_factory=list)
    annexes: list[str] = Field(default_factory=list)
    organizations: list[str] = Field(default_factory=list)


class Enrichment(Record):
    """Cross-references attached during classification."""

    extracted_entities: ExtractedEntities = Field(default_factory=ExtractedEntities)
    linked_articles: list[str] = Field(default_factory=list)
    normative_changes: list[str] = Field(default_factory=list)


class ClassifiedUpdate(Record):
    """An analyzed update with classification and enrichment."""

    analyzed: AnalyzedUpdate
    classification: Classification
    enrichment: Enrichment = Field(default_factory=Enrichment)


class Action(Record):
    """Atomic unit of work."""

    id: str = Field(..., min_length=1)
    description: str
    priority: ActionPriority
    deadline: date | None = None
    assigned_to: str | None = None
    status: ActionStatus = ActionStatus.PENDING


class ChecklistItem(Record):
    """Verifiable compliance task."""

    id: str = Field(..., min_length=1)
    task: str
    required: bool = True
    deadline: date | None = None
    related_article: str | None = None
    completed: bool = False


class Synthesis(Record):
    """Human-readable insight content."""

    executive_summary: str
    key_points: list[str] = Field(default_factory=list)
    practical_implications: list[str] = Field(default_factory=list)
    recommended_actions: list[Action] = Field(default_factory=list)
    compliance_checklist: list[ChecklistItem] = Field(default_factory=list)
    estimated_impact_score: Score


class RegulatoryInsight(Record):
    """A classified update with its synthesis."""

    classified: ClassifiedUpdate
    synthesis: Synthesis

    @property
    def document(self) -> RawDocument:
        return self.classified.analyzed.document

    @property
    def analysis(self) -> Analysis:
        return self.classified.analyzed.analysis

    @property
    def classification(self) -> Classification:
        return self.classified.classification

    @property
    def enrichment(self) -> Enrichment:
        return self.classified.enrichment


# =============================================================================
# Organization
# =============================================================================


class AISystem(Record):
    """An AI system in an organization's inventory."""

    id: str
    name: str
    description: str | None = None
    sector: str | None = None
    risk_level: RiskLevel | None = None
    compliance_score: float | None = None

    @property
    def is_high_risk(self) -> bool:
        return self.risk_level in HIGH_RISK_LEVELS


class MaturityProfile(Record):
    """Latest maturity assessment outcome."""

    level: MaturityLevel = MaturityLevel.INITIAL


class ComplianceRecord(Record):
    """Compliance of one system with one article."""

    ai_system_id: str
    article_id: str
    compliant: bool


class SectorProfile(Record):
    """Aggregated sector and compliance posture."""

    primary_sector: str | None = None
    compliance_score: Score = 0.0


class OrganizationContext(Record):
    """Everything personalization needs to know about one organization."""

    org_id: str
    ai_systems: list[AISystem] = Field(default_factory=list)
    maturity_profile: MaturityProfile = Field(default_factory=MaturityProfile)
    compliance_records: list[ComplianceRecord] = Field(default_factory=list)
    risk_tolerance: RiskTolerance = RiskTolerance.LOW
    sector_profile: SectorProfile = Field(default_factory=SectorProfile)

    @property
    def maturity_level(self) -> MaturityLevel:
        return self.maturity_profile.level

    @property
    def compliance_score(self) -> float:
        return self.sector_profile.compliance_score

    def find_compliance_record(
        self,
        ai_system_id: str,
        article_id: str,
    ) -> ComplianceRecord | None:
        for record in self.compliance_records:
            if record.ai_system_id == ai_system_id and record.article_id == article_id:
                return record
        return None

    @classmethod
    def from_inventory(
        cls,
        org_id: str,
        ai_systems: Iterable[AISystem],
        maturity_level: MaturityLevel | str | None = None,
        compliance_records: Iterable[ComplianceRecord] = (),
    ) -> "OrganizationContext":
        """
        Derive the organization profile from its system inventory.

        - primary sector: most frequent declared sector (first seen wins ties)
        - risk tolerance: share of high/unacceptable systems,
          > 0.5 high, > 0.2 medium, else low
        - compliance score: mean of the positive system compliance scores

        Args:
            org_id: Organization identifier
            ai_systems: The organization's AI systems
            maturity_level: Latest assessed maturity (initial when unknown)
            compliance_records: Per-system, per-article compliance records

        Returns:
            OrganizationContext
        """
        systems = list(ai_systems)

        sectors = Counter(s.sector for s in systems if s.sector)
        primary_sector = sectors.most_common(1)[0][0] if sectors else None

        high_risk = sum(1 for s in systems if s.is_high_risk)
        ratio = high_risk / len(systems) if systems else 0.0
        if ratio > 0.5:
            tolerance = RiskTolerance.HIGH
        elif ratio > 0.2:
            tolerance = RiskTolerance.MEDIUM
        else:
            tolerance = RiskTolerance.LOW

        scores = [s.compliance_score for s in systems if s.compliance_score and s.compliance_score > 0]
        compliance_score = sum(scores) / len(scores) if scores else 0.0

        return cls(
            org_id=org_id,
            ai_systems=systems,
            maturity_profile=MaturityProfile(
                level=MaturityLevel(maturity_level or MaturityLevel.INITIAL)
            ),
            compliance_records=list(compliance_records),
            risk_tolerance=tolerance,
            sector_profile=SectorProfile(
                primary_sector=primary_sector,
                compliance_score=compliance_score,
            ),
        )


# =============================================================================
# Personalization
# =============================================================================


class UserContext(Record):
    """Organization-specific view of an insight."""

    impacted_systems: list[AISystem] = Field(default_factory=list)
    relevance_score: Score
    urgency_level: UrgencyLevel
    maturity_gaps: list[str] = Field(default_factory=list)
    compliance_gaps: list[str] = Field(default_factory=list)
    estimated_impact: Score
    risk_amplification: float = Field(default=1.0, ge=0)


class PersonalizedInsight(Record):
    """A regulatory insight personalized for one organization."""

    insight: RegulatoryInsight
    user_context: UserContext

    @property
    def document(self) -> RawDocument:
        return self.insight.document


# =============================================================================
# Action planning
# =============================================================================


class PlannedAction(Action):
    """Action with planning detail."""

    system_id: str | None = None
    system_name: str | None = None
    impact_level: ImpactLevel = ImpactLevel.MEDIUM
    estimated_hours: float = Field(default=0.0, ge=0)
    required_skills: list[str] = Field(default_factory=list)
    dependencies: list[str] = Field(default_factory=list)
    category: ActionCategory = ActionCategory.COMPLIANCE


class PlannedChecklistItem(ChecklistItem):
    """Checklist item with planning detail."""

    system_id: str | None = None
    system_name: str | None = None
    category: ChecklistCategory = ChecklistCategory.LONG_TERM
    estimated_hours: float = Field(default=0.0, ge=0)
    prerequisites: list[str] = Field(default_factory=list)
    validation_criteria: list[str] = Field(default_factory=list)


class Timeline(Record):
    """Actions partitioned by time horizon."""

    immediate: list[PlannedAction] = Field(default_factory=list)
    short_term: list[PlannedAction] = Field(default_factory=list)
    medium_term: list[PlannedAction] = Field(default_factory=list)
    long_term: list[PlannedAction] = Field(default_factory=list)

    def all_actions(self) -> list[PlannedAction]:
        return [*self.immediate, *self.short_term, *self.medium_term, *self.long_term]


class EffortEstimate(Record):
    """Effort of a plan in hours and calendar units."""

    total_hours: float = Field(..., ge=0)
    days: int = Field(..., ge=0)
    weeks: int = Field(..., ge=0)
    months: int = Field(..., ge=0)
    label: str


class BudgetImpact(Record):
    """Estimated cost of a plan."""

    estimated_cost: float = Field(..., ge=0)
    band: BudgetBand
    label: str


class RiskMitigation(Record):
    """Risks identified by a plan and how to contain them."""

    identified_risks: list[str] = Field(default_factory=list)
    mitigation_actions: list[PlannedAction] = Field(default_factory=list)
    contingency_plans: list[str] = Field(default_factory=list)
    monitoring_requirements: list[str] = Field(default_factory=list)


class ActionPlan(Record):
    """Concrete, timed plan derived from a personalized insight."""

    priority_actions: list[PlannedAction] = Field(default_factory=list)
    system_actions: dict[str, list[PlannedAction]] = Field(default_factory=dict)
    compliance_checklist: list[PlannedChecklistItem] = Field(default_factory=list)
    timeline: Timeline = Field(default_factory=Timeline)
    estimated_effort: EffortEstimate
    budget_impact: BudgetImpact
    risk_mitigation: RiskMitigation = Field(default_factory=RiskMitigation)

    @property
    def action_count(self) -> int:
        """Priority plus system actions."""
        return len(self.priority_actions) + sum(len(a) for a in self.system_actions.values())


class ActionableInsight(Record):
    """Final pipeline output."""

    personalized: PersonalizedInsight
    action_plan: ActionPlan

    @property
    def document(self) -> RawDocument:
        return self.personalized.document

    @property
    def insight(self) -> RegulatoryInsight:
        return self.personalized.insight

    @property
    def user_context(self) -> UserContext:
        return self.personalized.user_context


# =============================================================================
# Workflow
# =============================================================================


class RunRequest(BaseModel):
    """Parameters of one workflow invocation. Unset fields use settings."""

    days_back: int | None = Field(default=None, ge=1)
    sources: list[str] | None = None
    min_relevance_score: float | None = Field(default=None, ge=0, le=100)
    org_id: str | None = None


class PersonalizationMetrics(Record):
    """Summary of the personalized output."""

    average_relevance_score: float = 0.0
    high_urgency_count: int = 0
    total_actions_generated: int = 0
    average_actions_per_insight: float = 0.0


class MonitoringMetrics(Record):
    """Counts and timings of one workflow run."""

    run_id: str
    total_collected: int = 0
    total_analyzed: int = 0
    total_relevant: int = 0
    total_insights: int = 0
    total_personalized: int = 0
    total_actionable: int = 0
    source_status: dict[str, SourceStatus] = Field(default_factory=dict)
    persisted: int = 0
    persistence_failures: int = 0
    stage_durations_ms: dict[str, float] = Field(default_factory=dict)
    execution_time_ms: float = 0.0
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    personalization: PersonalizationMetrics = Field(default_factory=PersonalizationMetrics)


class WorkflowResult(Record):
    """Output of one workflow run."""

    insights: list[ActionableInsight] = Field(default_factory=list)
    metrics: MonitoringMetrics
