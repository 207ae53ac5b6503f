"""
Regwatch Services
=================

Services of the Regwatch regulatory intelligence platform.

Services:
- regulatory_monitoring: collect -> analyze -> classify/synthesize ->
  personalize -> plan actions pipeline for EU AI Act updates
"""

__all__ = [
    "regulatory_monitoring",
]
