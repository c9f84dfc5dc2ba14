from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone


@dataclass
class Judge:
    id: str
    assigned_items: set[str] = field(default_factory=set)       # inverse index of WorkItem.assigned_judge
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class WorkItem:
    """A submission awaiting evaluation. `assigned_judge` is the source of truth."""
    id: str
    team_name: str = ""
    submitted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    assigned_judge: str | None = None


@dataclass(frozen=True)
class JudgeLoad:
    judge_id: str
    current_load: int
