from abc import ABC, abstractmethod
from typing import Optional

from judging_node.entities.assignment import AssignmentRun


class AssignmentRunRepository(ABC):

    @abstractmethod
    def create(self, capacity: int) -> AssignmentRun:
        pass

    @abstractmethod
    def get(self, run_id: str) -> Optional[AssignmentRun]:
        pass

    @abstractmethod
    def find(self, status: Optional[str] = None, limit: int = 100) -> list[AssignmentRun]:
        pass

    @abstractmethod
    def finish(
        self, run_id: str, status: str, placed_count: int = 0,
        unplaced_count: int = 0, error: Optional[str] = None,
    ) -> None:
        pass

    def rollback(self) -> None:
        pass
