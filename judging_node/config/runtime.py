from __future__ import annotations

from dataclasses import dataclass
import os


@dataclass(frozen=True)
class RuntimeSettings:
    placement_retry_attempts: int
    placement_retry_backoff_seconds: float
    assignment_lock_key: int
    work_item_id_prefix: str
    work_item_id_width: int

    @classmethod
    def from_env(cls) -> "RuntimeSettings":
        return cls(
            placement_retry_attempts=max(1, int(os.getenv("PLACEMENT_RETRY_ATTEMPTS", "3"))),
            placement_retry_backoff_seconds=float(os.getenv("PLACEMENT_RETRY_BACKOFF_SECONDS", "0.2")),
            assignment_lock_key=int(os.getenv("ASSIGNMENT_LOCK_KEY", "724001")),
            work_item_id_prefix=os.getenv("WORK_ITEM_ID_PREFIX", "IGC"),
            work_item_id_width=int(os.getenv("WORK_ITEM_ID_WIDTH", "3")),
        )
