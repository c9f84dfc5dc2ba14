"""Assignment error taxonomy.

Validation errors (`InvalidCapacity`, `NoJudgesAvailable`, `JudgeNotFound`)
are raised before any write. Items that do not fit under capacity are not an
error; they are reported in the run summary.
"""
from __future__ import annotations

from typing import Any, Iterable

from judging_node.entities.assignment import Placement


class AssignmentError(Exception):
    pass


class InvalidCapacity(AssignmentError, ValueError):
    def __init__(self, value: Any):
        self.value = value
        super().__init__(f"capacity must be a positive integer, got {value!r}")


class NoJudgesAvailable(AssignmentError):
    def __init__(self) -> None:
        super().__init__("No judges available")


class JudgeNotFound(AssignmentError, LookupError):
    def __init__(self, judge_id: str):
        self.judge_id = judge_id
        super().__init__(f"Judge not found: {judge_id}")


class AssignmentInProgress(AssignmentError):
    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"another assignment operation is in progress ({operation} rejected)")


class TransientGatewayError(AssignmentError):
    """A store write failed in a way that may succeed when retried."""


class PartialPlacementFailure(AssignmentError):
    """Some placements could not be written after bounded retries.

    `applied` stays applied. A placement whose judge-set write failed keeps its
    `assigned_judge`, so it is not picked up again as unassigned; the next run
    re-indexes it before planning, and `reconcile` repairs it on demand.
    `unplaced` carries the items that did not fit under capacity.
    """

    def __init__(
        self,
        unresolved: Iterable[str],
        applied: Iterable[Placement] = (),
        unplaced: Iterable[str] = (),
    ):
        self.unresolved = list(unresolved)
        self.applied = list(applied)
        self.unplaced = list(unplaced)
        super().__init__(
            f"{len(self.unresolved)} placement(s) unresolved after retries: {', '.join(self.unresolved)}"
        )
