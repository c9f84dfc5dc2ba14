"""Greedy least-loaded placement under a per-judge capacity cap.

For each item, in the order given, the judge with the lowest effective load
(existing load plus placements made earlier in the same plan) below
``capacity`` receives it. Ties go to the judge listed first, which keeps
plans reproducible for the same inputs. Items that find no judge below
capacity are returned as unplaced.

O(items x judges); both are small.
"""
from __future__ import annotations

from typing import Sequence

from judging_node.entities.assignment import AssignmentPlan, Placement
from judging_node.entities.judging import JudgeLoad


def plan_assignments(
    judges: Sequence[JudgeLoad], items: Sequence[str], capacity: int,
) -> AssignmentPlan:
    seen: set[str] = set()
    for judge in judges:
        if judge.judge_id in seen:
            raise ValueError(f"duplicate judge identity: {judge.judge_id}")
        seen.add(judge.judge_id)

    effective = [judge.current_load for judge in judges]
    placements: list[Placement] = []
    unplaced: list[str] = []

    for item_id in items:
        chosen = _least_loaded(effective, capacity)
        if chosen is None:
            unplaced.append(item_id)
            continue
        placements.append(Placement(item_id=item_id, judge_id=judges[chosen].judge_id))
        effective[chosen] += 1

    return AssignmentPlan(placements=tuple(placements), unplaced=tuple(unplaced))


def _least_loaded(loads: list[int], capacity: int) -> int | None:
    best: int | None = None
    for index, load in enumerate(loads):
        if load >= capacity:
            continue
        # strict comparison keeps the earliest judge on ties
        if best is None or load < loads[best]:
            best = index
    return best
