from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class AssignmentRunRequest(BaseModel):
    """Bulk run trigger. `capacity` is validated by the coordinator, not here,
    so a missing or non-numeric value is reported as a 400 rather than a 422."""

    capacity: Any = Field(default=None, validation_alias=AliasChoices("capacity", "CAP"))

    model_config = ConfigDict(extra="allow")


class ReassignRequest(BaseModel):
    item_id: str | None = Field(default=None, validation_alias=AliasChoices("itemId", "teamId", "item_id"))
    judge_id: str | None = Field(default=None, validation_alias=AliasChoices("judgeId", "judgeEmail", "judge_id"))

    model_config = ConfigDict(extra="allow")


# ---------------------------------------------------------------------------
# Responses: camelCase keys match the admin dashboard
# ---------------------------------------------------------------------------


class PlacementEnvelope(BaseModel):
    teamId: str
    judge: str


class JudgeLoadEnvelope(BaseModel):
    judge: str
    count: int


class AssignmentRunResponse(BaseModel):
    success: bool = True
    runId: str | None = None
    placedCount: int
    placements: list[PlacementEnvelope]
    skipped: list[str]
    perJudgeFinalLoad: list[JudgeLoadEnvelope]
    capacity: int


class ReassignmentEnvelope(BaseModel):
    teamId: str
    judgeEmail: str
    assignedAt: datetime
    previousJudges: list[str]
    holderChanged: bool
    videoUpdated: bool


class ReassignResponse(BaseModel):
    success: bool = True
    assignment: ReassignmentEnvelope


class ReconcileResponse(BaseModel):
    success: bool = True
    changed: bool
    added: dict[str, list[str]]
    removed: dict[str, list[str]]
    orphanedItems: list[str]


class JudgeSummaryEnvelope(BaseModel):
    id: str
    currentVideoAssignments: int
    currentAssignments: int


class UnassignedItemEnvelope(BaseModel):
    teamId: str
    teamName: str
    submittedAt: datetime


class AssignmentOverviewResponse(BaseModel):
    success: bool = True
    judges: list[JudgeSummaryEnvelope]
    teams: list[UnassignedItemEnvelope]
    totals: dict[str, int]


class AssignmentRunEnvelope(BaseModel):
    id: str
    status: str
    capacity: int
    placed_count: int
    unplaced_count: int
    error: str | None = None
    created_at: datetime
    updated_at: datetime
