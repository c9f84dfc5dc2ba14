"""Assignment coordinator: snapshot judges + unassigned work → plan → apply."""
from __future__ import annotations

import logging
import re
import threading
import time
from collections import defaultdict
from contextlib import contextmanager
from typing import Any, Callable, Iterator, TypeVar

from judging_node.config.runtime import RuntimeSettings
from judging_node.entities.assignment import (
    AssignmentOverview,
    AssignmentPlan,
    AssignmentRunStatus,
    AssignmentSummary,
    JudgeOverview,
    Placement,
    ReassignmentResult,
    ReconciliationReport,
)
from judging_node.services.engine import plan_assignments
from judging_node.services.errors import (
    AssignmentInProgress,
    InvalidCapacity,
    JudgeNotFound,
    NoJudgesAvailable,
    PartialPlacementFailure,
    TransientGatewayError,
)
from judging_node.services.interfaces.assignment_gateway import AssignmentGateway
from judging_node.services.interfaces.run_repository import AssignmentRunRepository

T = TypeVar("T")

# Sync endpoints run in a thread pool; one writer per process at a time.
_PROCESS_LOCK = threading.Lock()

_INTEGRAL_TEXT = re.compile(r"\+?([0-9]+)(?:\.0+)?")


def parse_capacity(value: Any) -> int:
    """Coerce a request capacity to a positive int.

    Numbers and numeric strings follow the same rule: the value must be
    integral, so `4`, `4.0`, `"4"` and `"4.0"` are all 4. Strings are ASCII
    decimal digits with an optional `.0` tail; `"4_000"`, `"1e3"` and
    `"2.5"` are rejected.
    """
    if value is None or isinstance(value, bool):
        raise InvalidCapacity(value)
    if isinstance(value, int):
        capacity = value
    elif isinstance(value, float):
        if not value.is_integer():
            raise InvalidCapacity(value)
        capacity = int(value)
    elif isinstance(value, str):
        match = _INTEGRAL_TEXT.fullmatch(value.strip())
        if match is None:
            raise InvalidCapacity(value)
        capacity = int(match.group(1))
    else:
        raise InvalidCapacity(value)

    if capacity <= 0:
        raise InvalidCapacity(value)
    return capacity


class AssignmentCoordinator:
    def __init__(
        self,
        gateway: AssignmentGateway,
        run_repository: AssignmentRunRepository | None = None,
        retry_attempts: int = 3,
        retry_backoff_seconds: float = 0.2,
        lock: threading.Lock | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.gateway = gateway
        self.run_repository = run_repository
        self.retry_attempts = max(1, retry_attempts)
        self.retry_backoff_seconds = retry_backoff_seconds
        self._lock = lock or _PROCESS_LOCK
        self._sleep = sleep
        self.logger = logging.getLogger(__name__)

    @classmethod
    def from_settings(
        cls,
        gateway: AssignmentGateway,
        settings: RuntimeSettings,
        run_repository: AssignmentRunRepository | None = None,
    ) -> "AssignmentCoordinator":
        return cls(
            gateway=gateway,
            run_repository=run_repository,
            retry_attempts=settings.placement_retry_attempts,
            retry_backoff_seconds=settings.placement_retry_backoff_seconds,
        )

    # ── bulk run ──

    def run_assignment(self, capacity: Any) -> AssignmentSummary:
        capacity = parse_capacity(capacity)

        with self._serialized("run"):
            judges = self.gateway.list_judges()
            items = self.gateway.list_unassigned_work_items()
            if not judges:
                raise NoJudgesAvailable()

            run_id = self._start_run(capacity)
            self.logger.info(
                "assignment run=%s started (judges=%d, unassigned=%d, capacity=%d)",
                run_id, len(judges), len(items), capacity,
            )

            plan = AssignmentPlan()
            try:
                self._reindex_assigned()
                plan = plan_assignments(judges, [item.id for item in items], capacity)
                applied = self._apply_plan(plan)
            except PartialPlacementFailure as exc:
                self._finish_run(
                    run_id, AssignmentRunStatus.PARTIAL,
                    placed_count=len(exc.applied), unplaced_count=len(plan.unplaced), error=str(exc),
                )
                raise
            except Exception as exc:
                self.gateway.rollback()
                self._finish_run(run_id, AssignmentRunStatus.FAILED, error=str(exc))
                raise

            final_load = {judge.judge_id: judge.current_load for judge in judges}
            for placement in applied:
                final_load[placement.judge_id] += 1

            self._finish_run(
                run_id, AssignmentRunStatus.COMPLETED,
                placed_count=len(applied), unplaced_count=len(plan.unplaced),
            )
            self.logger.info(
                "assignment run=%s completed placed=%d unplaced=%d",
                run_id, len(applied), len(plan.unplaced),
            )
            return AssignmentSummary(
                capacity=capacity,
                placements=applied,
                unplaced_ids=list(plan.unplaced),
                per_judge_final_load=final_load,
                run_id=run_id,
            )

    def _apply_plan(self, plan: AssignmentPlan) -> list[Placement]:
        # 1. work item → judge (source of truth)
        pending = list(plan.placements)
        applied: list[Placement] = []
        attempt = 0
        while pending and attempt < self.retry_attempts:
            attempt += 1
            try:
                failed = set(self.gateway.apply_placements(pending))
            except TransientGatewayError as exc:
                self.logger.warning("apply_placements failed (attempt %d/%d): %s", attempt, self.retry_attempts, exc)
                failed = set(pending)

            applied.extend(p for p in pending if p not in failed)
            pending = [p for p in pending if p in failed]
            if pending:
                self.gateway.rollback()
                if attempt < self.retry_attempts:
                    self.logger.warning(
                        "%d placement(s) not written (attempt %d/%d), retrying",
                        len(pending), attempt, self.retry_attempts,
                    )
                    self._backoff(attempt)

        # 2. judge → item set, only for what actually landed
        unresolved = [p.item_id for p in pending]
        unresolved.extend(self._index_placements(applied))

        if unresolved:
            self.logger.error(
                "placement incomplete: %d applied, %d unresolved (%s)",
                len(applied), len(unresolved), ", ".join(unresolved),
            )
            raise PartialPlacementFailure(unresolved, applied, plan.unplaced)
        return applied

    def _reindex_assigned(self) -> dict[str, list[str]]:
        """Add assigned work items missing from their judge's set.

        Covers placements from an earlier run whose set write never landed;
        those items are no longer unassigned, so planning would skip them.
        """
        sets = self.gateway.list_judge_sets()
        missing: dict[str, list[str]] = {}
        for item in self.gateway.list_work_items():
            judge_id = item.assigned_judge
            if judge_id in sets and item.id not in sets[judge_id]:
                missing.setdefault(judge_id, []).append(item.id)

        for judge_id, item_ids in missing.items():
            self._with_retry(f"add_to_judge_set({judge_id})", self.gateway.add_to_judge_set, judge_id, item_ids)
        if missing:
            self.logger.warning("re-indexed assigned items before planning: %s", missing)
        return missing

    def _index_placements(self, placements: list[Placement]) -> list[str]:
        by_judge: dict[str, list[str]] = {}
        for placement in placements:
            by_judge.setdefault(placement.judge_id, []).append(placement.item_id)

        unresolved: list[str] = []
        for judge_id, item_ids in by_judge.items():
            try:
                self._with_retry(f"add_to_judge_set({judge_id})", self.gateway.add_to_judge_set, judge_id, item_ids)
            except TransientGatewayError:
                unresolved.extend(item_ids)
        return unresolved

    # ── single-item override ──

    def reassign(self, item_id: str, judge_id: str) -> ReassignmentResult:
        item_id = self.gateway.canonical_item_id(item_id)
        canonical_judge = self.gateway.canonical_judge_id(judge_id)
        if canonical_judge is None:
            raise JudgeNotFound(str(judge_id))

        with self._serialized("reassign"):
            if self.gateway.get_judge(canonical_judge) is None:
                raise JudgeNotFound(canonical_judge)

            previous = [h for h in self.gateway.find_judges_holding(item_id) if h != canonical_judge]
            for holder in previous:
                self._with_retry(
                    f"remove_from_judge_set({holder})", self.gateway.remove_from_judge_set, holder, [item_id],
                )
            self._with_retry(
                f"add_to_judge_set({canonical_judge})", self.gateway.add_to_judge_set, canonical_judge, [item_id],
            )
            updated = self._with_retry(
                f"set_work_item_judge({item_id})", self.gateway.set_work_item_judge, item_id, canonical_judge,
            )

        self.logger.info(
            "reassigned item=%s to judge=%s (previous=%s, work_item_updated=%s)",
            item_id, canonical_judge, previous or "-", updated,
        )
        return ReassignmentResult(
            item_id=item_id,
            judge_id=canonical_judge,
            previous_judges=previous,
            work_item_updated=bool(updated),
        )

    # ── repair ──

    def reconcile(self) -> ReconciliationReport:
        """Rebuild judge item sets from the work items' assigned judge."""
        report = ReconciliationReport()
        with self._serialized("reconcile"):
            sets = self.gateway.list_judge_sets()
            items = self.gateway.list_work_items()
            owner = {item.id: item.assigned_judge for item in items}

            expected: dict[str, set[str]] = defaultdict(set)
            for item in items:
                if item.assigned_judge is None:
                    continue
                if item.assigned_judge not in sets:
                    report.orphaned_items.append(item.id)
                    continue
                expected[item.assigned_judge].add(item.id)

            for judge_id, current in sets.items():
                # ids without a work item record are manual assignments; leave them
                stale = sorted(i for i in current if i in owner and owner[i] != judge_id)
                missing = sorted(expected.get(judge_id, set()) - current)
                if stale:
                    self._with_retry(
                        f"remove_from_judge_set({judge_id})", self.gateway.remove_from_judge_set, judge_id, stale,
                    )
                    report.removed[judge_id] = stale
                if missing:
                    self._with_retry(
                        f"add_to_judge_set({judge_id})", self.gateway.add_to_judge_set, judge_id, missing,
                    )
                    report.added[judge_id] = missing

        if report.changed or report.orphaned_items:
            self.logger.warning(
                "reconcile repaired judges: added=%s removed=%s orphaned=%s",
                report.added, report.removed, report.orphaned_items,
            )
        else:
            self.logger.info("reconcile found judge sets consistent")
        return report

    # ── read side ──

    def overview(self) -> AssignmentOverview:
        judges = self.gateway.list_judges()
        sets = self.gateway.list_judge_sets()
        return AssignmentOverview(
            judges=[
                JudgeOverview(
                    judge_id=judge.judge_id,
                    current_load=judge.current_load,
                    assigned_items_count=len(sets.get(judge.judge_id, ())),
                )
                for judge in judges
            ],
            unassigned=self.gateway.list_unassigned_work_items(),
        )

    # ── helpers ──

    @contextmanager
    def _serialized(self, operation: str) -> Iterator[None]:
        if not self._lock.acquire(blocking=False):
            raise AssignmentInProgress(operation)
        try:
            with self.gateway.run_lock() as acquired:
                if not acquired:
                    raise AssignmentInProgress(operation)
                yield
        finally:
            self._lock.release()

    def _with_retry(self, description: str, fn: Callable[..., T], *args: Any) -> T:
        attempt = 0
        while True:
            attempt += 1
            try:
                return fn(*args)
            except TransientGatewayError as exc:
                self.gateway.rollback()
                if attempt >= self.retry_attempts:
                    self.logger.error("%s failed after %d attempt(s): %s", description, attempt, exc)
                    raise
                self.logger.warning("%s failed (attempt %d/%d): %s", description, attempt, self.retry_attempts, exc)
                self._backoff(attempt)

    def _backoff(self, attempt: int) -> None:
        if self.retry_backoff_seconds > 0:
            self._sleep(self.retry_backoff_seconds * attempt)

    def _start_run(self, capacity: int) -> str | None:
        if self.run_repository is None:
            return None
        return self.run_repository.create(capacity).id

    def _finish_run(
        self, run_id: str | None, status: AssignmentRunStatus,
        placed_count: int = 0, unplaced_count: int = 0, error: str | None = None,
    ) -> None:
        if self.run_repository is None or run_id is None:
            return
        self.run_repository.finish(
            run_id, status, placed_count=placed_count, unplaced_count=unplaced_count, error=error,
        )
