from judging_node.schemas.payload_contracts import (
    AssignmentOverviewResponse,
    AssignmentRunEnvelope,
    AssignmentRunRequest,
    AssignmentRunResponse,
    JudgeLoadEnvelope,
    JudgeSummaryEnvelope,
    PlacementEnvelope,
    ReassignmentEnvelope,
    ReassignRequest,
    ReassignResponse,
    ReconcileResponse,
    UnassignedItemEnvelope,
)

__all__ = [
    "AssignmentRunRequest",
    "AssignmentRunResponse",
    "PlacementEnvelope",
    "JudgeLoadEnvelope",
    "ReassignRequest",
    "ReassignResponse",
    "ReassignmentEnvelope",
    "ReconcileResponse",
    "AssignmentOverviewResponse",
    "JudgeSummaryEnvelope",
    "UnassignedItemEnvelope",
    "AssignmentRunEnvelope",
]
