"""
Monitoring Errors
=================

Exception hierarchy for the regulatory monitoring pipeline.

Per-item and per-source failures never surface as exceptions; they are
replaced by fallback objects inside each stage. Only batch-level
conditions reach the caller.

Version: 0.1.0
"""


class MonitoringError(Exception):
    """Base error for the regulatory monitoring service."""


class PipelineUnavailableError(MonitoringError):
    """A collaborator the workflow cannot run without is missing."""
