"""Judge directory, work items, and the judge → item inverse index."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlmodel import Field, SQLModel


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class JudgeRow(SQLModel, table=True):
    __tablename__ = "judges"

    id: str = Field(primary_key=True)

    created_at: datetime = Field(default_factory=utc_now, index=True)
    updated_at: datetime = Field(default_factory=utc_now, index=True)


class JudgeAssignedItemRow(SQLModel, table=True):
    __tablename__ = "judge_assigned_items"

    # composite key gives set semantics: re-adding a pair is a no-op
    judge_id: str = Field(primary_key=True, foreign_key="judges.id")
    item_id: str = Field(primary_key=True, index=True)

    added_at: datetime = Field(default_factory=utc_now)


class WorkItemRow(SQLModel, table=True):
    __tablename__ = "work_items"

    id: str = Field(primary_key=True)
    team_name: str = Field(default="")
    assigned_judge: Optional[str] = Field(default=None, index=True)

    submitted_at: datetime = Field(default_factory=utc_now, index=True)
    updated_at: datetime = Field(default_factory=utc_now)
