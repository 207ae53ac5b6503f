"""
Identifier Generation
=====================

Single source of ids for actions and checklist items.

Version: 0.1.0
"""

import itertools
import uuid


class IdGenerator:
    """Random, collision-resistant ids of the form ``<prefix>-<hex>``."""

    def new_id(self, prefix: str) -> str:
        return f"{prefix}-{uuid.uuid4().hex}"


class SequentialIdGenerator(IdGenerator):
    """
    Deterministic ids for tests and reproducible runs.

    Example:
        >>> ids = SequentialIdGenerator()
        >>> ids.new_id("action")
        'action-0001'
        >>> ids.new_id("check")
        'check-0002'
    """

    def __init__(self, start: int = 1) -> None:
        self._counter = itertools.count(start)

    def new_id(self, prefix: str) -> str:
        return f"{prefix}-{next(self._counter):04d}"
