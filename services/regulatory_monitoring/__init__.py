"""
Regulatory Monitoring Service
=============================

Turns newly published EU AI Act regulatory documents into actionable,
organization-specific compliance insights.

Features:
- Multi-source collection with per-source failure isolation
- Relevance and impact scoring (generated, keyword fallback)
- Legal classification and insight synthesis
- Personalization against an organization's AI-system inventory
- Timed action plans with effort and budget estimates

Version: 0.1.0
"""

from services.regulatory_monitoring.exceptions import (
    MonitoringError,
    PipelineUnavailableError,
)
from services.regulatory_monitoring.ids import IdGenerator, SequentialIdGenerator
from services.regulatory_monitoring.organization import (
    InMemoryOrganizationDirectory,
    OrganizationLLMSettings,
    SettingsGenerationResolver,
)
from services.regulatory_monitoring.sources import (
    FetchParams,
    SourceAdapter,
    StaticSourceAdapter,
)
from services.regulatory_monitoring.store import (
    InMemoryInsightStore,
    InsightStore,
    InsightSummary,
)
from services.regulatory_monitoring.workflow import RegulatoryMonitoringWorkflow


__version__ = "0.1.0"

__all__ = [
    # Workflow
    "RegulatoryMonitoringWorkflow",
    # Collaborators
    "SourceAdapter",
    "StaticSourceAdapter",
    "FetchParams",
    "InsightStore",
    "InsightSummary",
    "InMemoryInsightStore",
    "InMemoryOrganizationDirectory",
    "OrganizationLLMSettings",
    "SettingsGenerationResolver",
    # Ids
    "IdGenerator",
    "SequentialIdGenerator",
    # Errors
    "MonitoringError",
    "PipelineUnavailableError",
]
