from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum


class AssignmentRunStatus(StrEnum):
    RUNNING = "running"
    COMPLETED = "completed"
    PARTIAL = "partial"
    FAILED = "failed"


@dataclass(frozen=True)
class Placement:
    item_id: str
    judge_id: str


@dataclass(frozen=True)
class AssignmentPlan:
    placements: tuple[Placement, ...] = ()
    unplaced: tuple[str, ...] = ()


@dataclass
class AssignmentSummary:
    capacity: int
    placements: list[Placement] = field(default_factory=list)
    unplaced_ids: list[str] = field(default_factory=list)
    per_judge_final_load: dict[str, int] = field(default_factory=dict)   # ordered like the judges input
    run_id: str | None = None

    @property
    def placed_count(self) -> int:
        return len(self.placements)


@dataclass
class ReassignmentResult:
    item_id: str
    judge_id: str
    previous_judges: list[str] = field(default_factory=list)
    work_item_updated: bool = False
    assigned_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def previous_judge(self) -> str | None:
        return self.previous_judges[0] if self.previous_judges else None

    @property
    def holder_changed(self) -> bool:
        return bool(self.previous_judges)


@dataclass
class ReconciliationReport:
    added: dict[str, list[str]] = field(default_factory=dict)
    removed: dict[str, list[str]] = field(default_factory=dict)
    orphaned_items: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.added or self.removed)


@dataclass
class AssignmentRun:
    """Ledger entry for one bulk assignment run."""
    id: str
    capacity: int
    status: AssignmentRunStatus = AssignmentRunStatus.RUNNING
    placed_count: int = 0
    unplaced_count: int = 0
    error: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class JudgeOverview:
    judge_id: str
    current_load: int
    assigned_items_count: int


@dataclass
class AssignmentOverview:
    judges: list[JudgeOverview] = field(default_factory=list)
    unassigned: list = field(default_factory=list)                 # list[WorkItem], oldest first

    @property
    def total_unassigned(self) -> int:
        return len(self.unassigned)

    @property
    def total_assigned(self) -> int:
        return sum(j.current_load for j in self.judges)
