"""
Regwatch Test Suite
===================

Test organization:
- tests/unit/                               - Shared library and model tests
- tests/services/regulatory_monitoring/     - Pipeline stage and workflow tests

Run tests:
    pytest                                  # All tests
    pytest tests/unit                       # Unit tests only
    pytest -k workflow                      # Workflow tests only
"""
