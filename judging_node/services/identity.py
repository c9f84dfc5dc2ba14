"""Canonical identities for work items and judges.

Team ids arrive in several conventions (``IGC001``, ``PCCOEIGC001``,
``igc1``). They are reduced to one canonical form when data enters the
gateway so the engine and coordinator only ever compare canonical ids.
"""
from __future__ import annotations

import re

DEFAULT_ITEM_PREFIX = "IGC"
DEFAULT_ITEM_WIDTH = 3

_NON_DIGITS = re.compile(r"\D")


def normalize_work_item_id(
    raw: str, prefix: str = DEFAULT_ITEM_PREFIX, width: int = DEFAULT_ITEM_WIDTH,
) -> str:
    value = str(raw).strip().upper()
    if not value:
        raise ValueError("work item id must not be empty")
    digits = _NON_DIGITS.sub("", value)
    if not digits:
        return value
    return f"{prefix}{int(digits):0{width}d}"


def normalize_judge_id(raw: str | None) -> str | None:
    if raw is None:
        return None
    value = str(raw).strip().lower()
    return value or None
