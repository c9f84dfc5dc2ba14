"""Repository for the assignment run ledger."""
from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlmodel import Session, select

from judging_node.db.tables.runs import AssignmentRunRow
from judging_node.entities.assignment import AssignmentRun, AssignmentRunStatus
from judging_node.services.interfaces.run_repository import AssignmentRunRepository


class DBAssignmentRunRepository(AssignmentRunRepository):
    def __init__(self, session: Session):
        self._session = session

    def create(self, capacity: int) -> AssignmentRun:
        row = AssignmentRunRow(
            id=str(uuid.uuid4()),
            capacity=capacity,
            status=AssignmentRunStatus.RUNNING,
        )
        self._session.add(row)
        self._session.commit()
        self._session.refresh(row)
        return self._row_to_domain(row)

    def get(self, run_id: str) -> AssignmentRun | None:
        row = self._session.get(AssignmentRunRow, run_id)
        return self._row_to_domain(row) if row else None

    def find(self, status: str | None = None, limit: int = 100) -> list[AssignmentRun]:
        stmt = select(AssignmentRunRow).order_by(AssignmentRunRow.created_at.desc())
        if status is not None:
            stmt = stmt.where(AssignmentRunRow.status == status)
        stmt = stmt.limit(max(1, int(limit)))
        return [self._row_to_domain(row) for row in self._session.exec(stmt).all()]

    def finish(
        self, run_id: str, status: str, placed_count: int = 0,
        unplaced_count: int = 0, error: str | None = None,
    ) -> None:
        row = self._session.get(AssignmentRunRow, run_id)
        if row is None:
            return
        row.status = str(status)
        row.placed_count = placed_count
        row.unplaced_count = unplaced_count
        row.error = error
        row.updated_at = datetime.now(timezone.utc)
        self._session.commit()

    def rollback(self) -> None:
        self._session.rollback()

    @staticmethod
    def _row_to_domain(row: AssignmentRunRow) -> AssignmentRun:
        return AssignmentRun(
            id=row.id,
            capacity=row.capacity,
            status=AssignmentRunStatus(row.status),
            placed_count=row.placed_count,
            unplaced_count=row.unplaced_count,
            error=row.error,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )
