"""Administrative HTTP surface for judge assignment."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Annotated, Any, Generator, Iterator

import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Query, status
from fastapi.middleware.cors import CORSMiddleware
from sqlmodel import Session

from judging_node.config.runtime import RuntimeSettings
from judging_node.db import DBAssignmentGateway, DBAssignmentRunRepository, create_session
from judging_node.entities.assignment import AssignmentRun
from judging_node.middleware.auth import configure_auth
from judging_node.schemas import (
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
from judging_node.services.coordinator import AssignmentCoordinator
from judging_node.services.errors import (
    AssignmentInProgress,
    InvalidCapacity,
    JudgeNotFound,
    NoJudgesAvailable,
    PartialPlacementFailure,
    TransientGatewayError,
)
from judging_node.services.interfaces.assignment_gateway import AssignmentGateway
from judging_node.services.interfaces.run_repository import AssignmentRunRepository

logger = logging.getLogger(__name__)

app = FastAPI(title="Judging Node Assignment Worker")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

SETTINGS = RuntimeSettings.from_env()

configure_auth(app)


def configure_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        force=True,
    )


def get_db_session() -> Generator[Session, Any, None]:
    with create_session() as session:
        yield session


def get_assignment_gateway(
    session_db: Annotated[Session, Depends(get_db_session)]
) -> AssignmentGateway:
    return DBAssignmentGateway(
        session_db,
        lock_key=SETTINGS.assignment_lock_key,
        item_id_prefix=SETTINGS.work_item_id_prefix,
        item_id_width=SETTINGS.work_item_id_width,
    )


def get_run_repository(
    session_db: Annotated[Session, Depends(get_db_session)]
) -> AssignmentRunRepository:
    return DBAssignmentRunRepository(session_db)


def get_coordinator(
    gateway: Annotated[AssignmentGateway, Depends(get_assignment_gateway)],
    run_repository: Annotated[AssignmentRunRepository, Depends(get_run_repository)],
) -> AssignmentCoordinator:
    return AssignmentCoordinator.from_settings(gateway, SETTINGS, run_repository=run_repository)


@contextmanager
def _http_errors() -> Iterator[None]:
    try:
        yield
    except (InvalidCapacity, NoJudgesAvailable) as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except JudgeNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except AssignmentInProgress as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except PartialPlacementFailure as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={
                "error": str(exc),
                "unresolved": exc.unresolved,
                "applied": [{"teamId": p.item_id, "judge": p.judge_id} for p in exc.applied],
                "skipped": exc.unplaced,
            },
        ) from exc
    except TransientGatewayError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc


@app.get("/healthz")
def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/assignments/run")
def run_assignments(
    coordinator: Annotated[AssignmentCoordinator, Depends(get_coordinator)],
    body: AssignmentRunRequest | None = None,
) -> AssignmentRunResponse:
    """Distribute every unassigned submission across judges up to `capacity` each."""
    with _http_errors():
        summary = coordinator.run_assignment(body.capacity if body else None)

    return AssignmentRunResponse(
        runId=summary.run_id,
        placedCount=summary.placed_count,
        placements=[PlacementEnvelope(teamId=p.item_id, judge=p.judge_id) for p in summary.placements],
        skipped=summary.unplaced_ids,
        perJudgeFinalLoad=[
            JudgeLoadEnvelope(judge=judge_id, count=count)
            for judge_id, count in summary.per_judge_final_load.items()
        ],
        capacity=summary.capacity,
    )


@app.post("/assignments/reassign")
def reassign_item(
    coordinator: Annotated[AssignmentCoordinator, Depends(get_coordinator)],
    body: ReassignRequest | None = None,
) -> ReassignResponse:
    """Move one submission to a judge, regardless of that judge's load."""
    item_id = (body.item_id or "").strip() if body else ""
    judge_id = (body.judge_id or "").strip() if body else ""
    if not item_id or not judge_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="itemId and judgeId are required",
        )

    with _http_errors():
        result = coordinator.reassign(item_id, judge_id)

    return ReassignResponse(
        assignment=ReassignmentEnvelope(
            teamId=result.item_id,
            judgeEmail=result.judge_id,
            assignedAt=result.assigned_at,
            previousJudges=result.previous_judges,
            holderChanged=result.holder_changed,
            videoUpdated=result.work_item_updated,
        )
    )


@app.post("/assignments/reconcile")
def reconcile_assignments(
    coordinator: Annotated[AssignmentCoordinator, Depends(get_coordinator)],
) -> ReconcileResponse:
    """Rebuild judge item sets from the submissions' assigned judge."""
    with _http_errors():
        report = coordinator.reconcile()

    return ReconcileResponse(
        changed=report.changed,
        added=report.added,
        removed=report.removed,
        orphanedItems=report.orphaned_items,
    )


@app.get("/assignments/overview")
def get_assignment_overview(
    coordinator: Annotated[AssignmentCoordinator, Depends(get_coordinator)],
) -> AssignmentOverviewResponse:
    overview = coordinator.overview()
    return AssignmentOverviewResponse(
        judges=[
            JudgeSummaryEnvelope(
                id=judge.judge_id,
                currentVideoAssignments=judge.current_load,
                currentAssignments=judge.assigned_items_count,
            )
            for judge in overview.judges
        ],
        teams=[
            UnassignedItemEnvelope(teamId=item.id, teamName=item.team_name, submittedAt=item.submitted_at)
            for item in overview.unassigned
        ],
        totals={
            "totalUnassignedVideos": overview.total_unassigned,
            "totalAssignedVideos": overview.total_assigned,
        },
    )


@app.get("/assignments/history")
def list_assignment_runs(
    run_repository: Annotated[AssignmentRunRepository, Depends(get_run_repository)],
    run_status: Annotated[str | None, Query(alias="status")] = None,
    limit: Annotated[int, Query(ge=1, le=500)] = 100,
) -> list[AssignmentRunEnvelope]:
    return [_run_to_envelope(run) for run in run_repository.find(status=run_status, limit=limit)]


@app.get("/assignments/history/{run_id}")
def get_assignment_run(
    run_id: str,
    run_repository: Annotated[AssignmentRunRepository, Depends(get_run_repository)],
) -> AssignmentRunEnvelope:
    run = run_repository.get(run_id)
    if run is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Assignment run not found")
    return _run_to_envelope(run)


def _run_to_envelope(run: AssignmentRun) -> AssignmentRunEnvelope:
    return AssignmentRunEnvelope(
        id=run.id,
        status=str(run.status),
        capacity=run.capacity,
        placed_count=run.placed_count,
        unplaced_count=run.unplaced_count,
        error=run.error,
        created_at=run.created_at,
        updated_at=run.updated_at,
    )


if __name__ == "__main__":
    configure_logging()
    logger.info("judging node assignment worker bootstrap")
    uvicorn.run(app, host="0.0.0.0", port=8000)
