from __future__ import annotations

import threading
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Dict, Iterable, Iterator, Optional

from judging_node.entities.assignment import AssignmentRun, AssignmentRunStatus, Placement
from judging_node.entities.judging import Judge, JudgeLoad, WorkItem
from judging_node.services.interfaces.assignment_gateway import AssignmentGateway
from judging_node.services.interfaces.run_repository import AssignmentRunRepository


class InMemoryAssignmentGateway(AssignmentGateway):
    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        # In-memory storage, insertion order is provisioning order
        self._judges: Dict[str, Judge] = {}
        self._items: Dict[str, WorkItem] = {}
        self._lock = threading.Lock()

    def list_judges(self) -> list[JudgeLoad]:
        counts: Dict[str, int] = {}
        for item in self._items.values():
            if item.assigned_judge:
                counts[item.assigned_judge] = counts.get(item.assigned_judge, 0) + 1
        judges = sorted(self._judges.values(), key=lambda j: j.created_at)
        return [JudgeLoad(judge_id=j.id, current_load=counts.get(j.id, 0)) for j in judges]

    def list_unassigned_work_items(self) -> list[WorkItem]:
        return [item for item in self.list_work_items() if not item.assigned_judge]

    def list_work_items(self) -> list[WorkItem]:
        return sorted(self._items.values(), key=lambda i: i.submitted_at)

    def get_judge(self, judge_id: str) -> Optional[Judge]:
        return self._judges.get(self.canonical_judge_id(judge_id))

    def get_work_item(self, item_id: str) -> Optional[WorkItem]:
        return self._items.get(self.canonical_item_id(item_id))

    def list_judge_sets(self) -> dict[str, set[str]]:
        return {judge_id: set(judge.assigned_items) for judge_id, judge in self._judges.items()}

    def apply_placements(self, placements: Iterable[Placement]) -> list[Placement]:
        failed = []
        for placement in placements:
            item = self._items.get(placement.item_id)
            if item is None:
                failed.append(placement)
                continue
            item.assigned_judge = placement.judge_id
        return failed

    def add_to_judge_set(self, judge_id: str, item_ids: Iterable[str]) -> None:
        judge = self._judges.get(judge_id)
        if judge is not None:
            judge.assigned_items.update(item_ids)

    def remove_from_judge_set(self, judge_id: str, item_ids: Iterable[str]) -> None:
        judge = self._judges.get(judge_id)
        if judge is not None:
            judge.assigned_items.difference_update(item_ids)

    def find_judges_holding(self, item_id: str) -> list[str]:
        return [judge_id for judge_id, judge in self._judges.items() if item_id in judge.assigned_items]

    def set_work_item_judge(self, item_id: str, judge_id: str) -> bool:
        item = self._items.get(item_id)
        if item is None:
            return False
        item.assigned_judge = judge_id
        return True

    def add_judge(self, judge_id: str, created_at: datetime | None = None) -> Judge:
        canonical = self.canonical_judge_id(judge_id)
        if canonical is None:
            raise ValueError("judge id must not be empty")
        judge = self._judges.get(canonical)
        if judge is None:
            judge = Judge(id=canonical, created_at=created_at or datetime.now(timezone.utc))
            self._judges[canonical] = judge
        return judge

    def add_work_item(
        self, item_id: str, team_name: str = "", submitted_at: datetime | None = None,
        assigned_judge: str | None = None,
    ) -> WorkItem:
        item = WorkItem(
            id=self.canonical_item_id(item_id),
            team_name=team_name,
            submitted_at=submitted_at or datetime.now(timezone.utc),
            assigned_judge=self.canonical_judge_id(assigned_judge),
        )
        self._items[item.id] = item
        return item

    @contextmanager
    def run_lock(self) -> Iterator[bool]:
        acquired = self._lock.acquire(blocking=False)
        try:
            yield acquired
        finally:
            if acquired:
                self._lock.release()

    def clear(self):
        """Clear all judges and work items (only for testing)."""
        self._judges.clear()
        self._items.clear()


class InMemoryAssignmentRunRepository(AssignmentRunRepository):
    def __init__(self):
        self._storage: Dict[str, AssignmentRun] = {}

    def create(self, capacity: int) -> AssignmentRun:
        run = AssignmentRun(id=str(uuid.uuid4()), capacity=capacity)
        self._storage[run.id] = run
        return run

    def get(self, run_id: str) -> Optional[AssignmentRun]:
        return self._storage.get(run_id)

    def find(self, status: Optional[str] = None, limit: int = 100) -> list[AssignmentRun]:
        runs = sorted(self._storage.values(), key=lambda r: r.created_at, reverse=True)
        if status is not None:
            runs = [r for r in runs if r.status == status]
        return runs[:limit]

    def finish(
        self, run_id: str, status: str, placed_count: int = 0,
        unplaced_count: int = 0, error: Optional[str] = None,
    ) -> None:
        run = self._storage.get(run_id)
        if run is None:
            return
        run.status = AssignmentRunStatus(status)
        run.placed_count = placed_count
        run.unplaced_count = unplaced_count
        run.error = error
        run.updated_at = datetime.now(timezone.utc)
