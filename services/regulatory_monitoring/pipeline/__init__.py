"""
Monitoring Pipeline Stages
==========================

Stages run in order, each consuming the previous stage's output:

1. CollectionStage - fetch and deduplicate documents
2. AnalysisStage - relevance and impact scoring
3. ClassificationSynthesisStage - legal classification and insight text
4. PersonalizationStage - organization-specific view
5. ActionPlanningStage - concrete, timed action plans

Version: 0.1.0
"""

from services.regulatory_monitoring.pipeline.action_planning import ActionPlanningStage
from services.regulatory_monitoring.pipeline.analysis import AnalysisStage
from services.regulatory_monitoring.pipeline.classification import (
    ClassificationSynthesisStage,
)
from services.regulatory_monitoring.pipeline.collection import CollectionStage
from services.regulatory_monitoring.pipeline.personalization import PersonalizationStage


__all__ = [
    "CollectionStage",
    "AnalysisStage",
    "ClassificationSynthesisStage",
    "PersonalizationStage",
    "ActionPlanningStage",
]
