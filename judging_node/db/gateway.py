from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterable, Iterator

from sqlalchemy import func, or_
from sqlalchemy.exc import OperationalError
from sqlmodel import Session, delete, select

from judging_node.db.advisory_lock import advisory_lock
from judging_node.db.tables import JudgeAssignedItemRow, JudgeRow, WorkItemRow
from judging_node.entities.assignment import Placement
from judging_node.entities.judging import Judge, JudgeLoad, WorkItem
from judging_node.services.errors import TransientGatewayError
from judging_node.services.interfaces.assignment_gateway import AssignmentGateway

logger = logging.getLogger(__name__)

# lost connections, serialization failures and lock timeouts all surface as OperationalError
_TRANSIENT_ERRORS = (OperationalError,)


def _unassigned():
    return or_(WorkItemRow.assigned_judge.is_(None), WorkItemRow.assigned_judge == "")


class DBAssignmentGateway(AssignmentGateway):
    def __init__(self, session: Session, lock_key: int = 724001, **kwargs):
        super().__init__(**kwargs)
        self._session = session
        self._lock_key = lock_key

    def rollback(self) -> None:
        self._session.rollback()

    @contextmanager
    def run_lock(self) -> Iterator[bool]:
        with advisory_lock(self._session.get_bind(), self._lock_key) as acquired:
            yield acquired

    # ── reads ──

    def list_judges(self) -> list[JudgeLoad]:
        counts = dict(
            self._session.exec(
                select(WorkItemRow.assigned_judge, func.count())
                .where(~_unassigned())
                .group_by(WorkItemRow.assigned_judge)
            ).all()
        )
        rows = self._session.exec(
            select(JudgeRow).order_by(JudgeRow.created_at.asc(), JudgeRow.id.asc())
        ).all()
        return [JudgeLoad(judge_id=row.id, current_load=counts.get(row.id, 0)) for row in rows]

    def list_unassigned_work_items(self) -> list[WorkItem]:
        stmt = (
            select(WorkItemRow)
            .where(_unassigned())
            .order_by(WorkItemRow.submitted_at.asc(), WorkItemRow.id.asc())
        )
        return [self._item_to_domain(row) for row in self._session.exec(stmt).all()]

    def list_work_items(self) -> list[WorkItem]:
        stmt = select(WorkItemRow).order_by(WorkItemRow.submitted_at.asc(), WorkItemRow.id.asc())
        return [self._item_to_domain(row) for row in self._session.exec(stmt).all()]

    def get_judge(self, judge_id: str) -> Judge | None:
        canonical = self.canonical_judge_id(judge_id)
        row = self._session.get(JudgeRow, canonical) if canonical else None
        if row is None:
            return None
        item_ids = self._session.exec(
            select(JudgeAssignedItemRow.item_id).where(JudgeAssignedItemRow.judge_id == row.id)
        ).all()
        return Judge(id=row.id, assigned_items=set(item_ids), created_at=row.created_at)

    def list_judge_sets(self) -> dict[str, set[str]]:
        sets: dict[str, set[str]] = {
            judge_id: set() for judge_id in self._session.exec(select(JudgeRow.id)).all()
        }
        for row in self._session.exec(select(JudgeAssignedItemRow)).all():
            sets.setdefault(row.judge_id, set()).add(row.item_id)
        return sets

    def find_judges_holding(self, item_id: str) -> list[str]:
        stmt = (
            select(JudgeAssignedItemRow.judge_id)
            .where(JudgeAssignedItemRow.item_id == item_id)
            .order_by(JudgeAssignedItemRow.judge_id.asc())
        )
        return list(self._session.exec(stmt).all())

    # ── writes ──

    def apply_placements(self, placements: Iterable[Placement]) -> list[Placement]:
        failed: list[Placement] = []
        for placement in placements:
            try:
                row = self._session.get(WorkItemRow, placement.item_id)
                if row is None:
                    logger.warning("work item %s vanished before placement", placement.item_id)
                    failed.append(placement)
                    continue
                row.assigned_judge = placement.judge_id
                row.updated_at = datetime.now(timezone.utc)
                self._session.commit()
            except _TRANSIENT_ERRORS as exc:
                self._session.rollback()
                logger.warning("placement %s -> %s failed: %s", placement.item_id, placement.judge_id, exc)
                failed.append(placement)
        return failed

    def add_to_judge_set(self, judge_id: str, item_ids: Iterable[str]) -> None:
        try:
            existing = set(
                self._session.exec(
                    select(JudgeAssignedItemRow.item_id).where(JudgeAssignedItemRow.judge_id == judge_id)
                ).all()
            )
            for item_id in dict.fromkeys(item_ids):
                if item_id in existing:
                    continue
                self._session.add(JudgeAssignedItemRow(judge_id=judge_id, item_id=item_id))
            self._touch_judge(judge_id)
            self._session.commit()
        except _TRANSIENT_ERRORS as exc:
            self._session.rollback()
            raise TransientGatewayError(str(exc)) from exc

    def remove_from_judge_set(self, judge_id: str, item_ids: Iterable[str]) -> None:
        ids = list(item_ids)
        if not ids:
            return
        try:
            self._session.exec(
                delete(JudgeAssignedItemRow)
                .where(JudgeAssignedItemRow.judge_id == judge_id)
                .where(JudgeAssignedItemRow.item_id.in_(ids))
            )
            self._touch_judge(judge_id)
            self._session.commit()
        except _TRANSIENT_ERRORS as exc:
            self._session.rollback()
            raise TransientGatewayError(str(exc)) from exc

    def set_work_item_judge(self, item_id: str, judge_id: str) -> bool:
        try:
            row = self._session.get(WorkItemRow, item_id)
            if row is None:
                return False
            row.assigned_judge = judge_id
            row.updated_at = datetime.now(timezone.utc)
            self._session.commit()
            return True
        except _TRANSIENT_ERRORS as exc:
            self._session.rollback()
            raise TransientGatewayError(str(exc)) from exc

    # ── ingestion ──

    def add_judge(self, judge_id: str, created_at: datetime | None = None) -> Judge:
        canonical = self.canonical_judge_id(judge_id)
        if canonical is None:
            raise ValueError("judge id must not be empty")
        row = self._session.get(JudgeRow, canonical)
        if row is None:
            row = JudgeRow(id=canonical, created_at=created_at or datetime.now(timezone.utc))
            self._session.add(row)
            self._session.commit()
        return Judge(id=row.id, created_at=row.created_at)

    def add_work_item(
        self, item_id: str, team_name: str = "", submitted_at: datetime | None = None,
        assigned_judge: str | None = None,
    ) -> WorkItem:
        row = WorkItemRow(
            id=self.canonical_item_id(item_id),
            team_name=team_name,
            submitted_at=submitted_at or datetime.now(timezone.utc),
            assigned_judge=self.canonical_judge_id(assigned_judge),
        )
        existing = self._session.get(WorkItemRow, row.id)
        if existing is None:
            self._session.add(row)
        else:
            existing.team_name = row.team_name
            existing.submitted_at = row.submitted_at
            existing.assigned_judge = row.assigned_judge
            existing.updated_at = datetime.now(timezone.utc)
        self._session.commit()
        return self._item_to_domain(existing or row)

    def _touch_judge(self, judge_id: str) -> None:
        row = self._session.get(JudgeRow, judge_id)
        if row is not None:
            row.updated_at = datetime.now(timezone.utc)

    @staticmethod
    def _item_to_domain(row: WorkItemRow) -> WorkItem:
        return WorkItem(
            id=row.id,
            team_name=row.team_name,
            submitted_at=row.submitted_at,
            assigned_judge=row.assigned_judge or None,
        )
