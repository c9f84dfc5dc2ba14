from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime
from typing import Iterable, Iterator

from judging_node.entities.assignment import Placement
from judging_node.entities.judging import Judge, JudgeLoad, WorkItem
from judging_node.services.identity import (
    DEFAULT_ITEM_PREFIX,
    DEFAULT_ITEM_WIDTH,
    normalize_judge_id,
    normalize_work_item_id,
)


class AssignmentGateway(ABC):
    """Judge directory and work-item store as seen by the assignment core.

    Identities are canonicalized here, once, on the way in.
    """

    def __init__(self, item_id_prefix: str = DEFAULT_ITEM_PREFIX, item_id_width: int = DEFAULT_ITEM_WIDTH):
        self.item_id_prefix = item_id_prefix
        self.item_id_width = item_id_width

    def canonical_item_id(self, raw: str) -> str:
        return normalize_work_item_id(raw, prefix=self.item_id_prefix, width=self.item_id_width)

    def canonical_judge_id(self, raw: str | None) -> str | None:
        return normalize_judge_id(raw)

    @abstractmethod
    def list_judges(self) -> list[JudgeLoad]:
        """Judges in provisioning order with load counted from work items."""

    @abstractmethod
    def list_unassigned_work_items(self) -> list[WorkItem]:
        """Work items with no judge, oldest submission first."""

    @abstractmethod
    def list_work_items(self) -> list[WorkItem]:
        pass

    @abstractmethod
    def get_judge(self, judge_id: str) -> Judge | None:
        pass

    @abstractmethod
    def list_judge_sets(self) -> dict[str, set[str]]:
        pass

    @abstractmethod
    def apply_placements(self, placements: Iterable[Placement]) -> list[Placement]:
        """Point each work item at its judge. Returns the placements that failed."""

    @abstractmethod
    def add_to_judge_set(self, judge_id: str, item_ids: Iterable[str]) -> None:
        pass

    @abstractmethod
    def remove_from_judge_set(self, judge_id: str, item_ids: Iterable[str]) -> None:
        pass

    @abstractmethod
    def find_judges_holding(self, item_id: str) -> list[str]:
        pass

    def find_judge_holding(self, item_id: str) -> str | None:
        holders = self.find_judges_holding(item_id)
        return holders[0] if holders else None

    @abstractmethod
    def set_work_item_judge(self, item_id: str, judge_id: str) -> bool:
        """Returns False when no work item with that id exists."""

    @abstractmethod
    def add_judge(self, judge_id: str, created_at: datetime | None = None) -> Judge:
        pass

    @abstractmethod
    def add_work_item(
        self, item_id: str, team_name: str = "", submitted_at: datetime | None = None,
        assigned_judge: str | None = None,
    ) -> WorkItem:
        pass

    @contextmanager
    def run_lock(self) -> Iterator[bool]:
        yield True

    def rollback(self) -> None:
        pass
