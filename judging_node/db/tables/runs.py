"""Assignment run ledger table."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlmodel import Field, SQLModel


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AssignmentRunRow(SQLModel, table=True):
    __tablename__ = "assignment_runs"

    id: str = Field(primary_key=True)

    capacity: int
    placed_count: int = Field(default=0)
    unplaced_count: int = Field(default=0)

    status: str = Field(default="running", index=True)
    error: Optional[str] = Field(default=None)

    created_at: datetime = Field(default_factory=utc_now, index=True)
    updated_at: datetime = Field(default_factory=utc_now, index=True)
