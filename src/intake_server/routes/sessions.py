"""Session management endpoints — start, read back, list.

Session identity is an opaque key.  Clients may supply their own (to
resume after a reload) or let the server generate one.
"""

from fastapi import APIRouter, Depends, Query

from intake_engine.models.session import (
    SessionData,
    SessionRecord,
    SessionStart,
    SessionStats,
    WireModel,
)
from intake_engine.pipeline import IntakePipeline

from intake_server.config import DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT, ServerSettings
from intake_server.dependencies import get_pipeline, get_settings

router = APIRouter(tags=["sessions"])


# ------------------------------------------------------------------
# Request / response models
# ------------------------------------------------------------------

class StartSessionRequest(WireModel):
    """Body for POST /sessions."""
    session_id: str | None = None
    intake_type: str | None = None


class SessionPage(WireModel):
    """One page of sessions, most recent first."""
    items: list[SessionRecord]
    total: int
    limit: int
    offset: int


# ------------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------------

@router.post("/sessions", status_code=201)
async def start_session(
    body: StartSessionRequest,
    pipeline: IntakePipeline = Depends(get_pipeline),
    settings: ServerSettings = Depends(get_settings),
) -> SessionStart:
    """Open a session (or resume an existing one with the same key).

    Returns the session binding, the intake overview, and the question
    index to resume from.  Raises 404 for an unknown intake type.
    """
    return await pipeline.start_session(
        session_id=body.session_id,
        intake_type=body.intake_type or settings.default_intake_type,
    )


@router.get("/sessions/stats")
async def session_stats(
    pipeline: IntakePipeline = Depends(get_pipeline),
    intake_type: str | None = Query(None, alias="intakeType"),
) -> SessionStats:
    """Total, completed and in-progress session counts for the dashboard.

    Declared before ``/sessions/{session_id}`` so "stats" is not read as an id.
    """
    return await pipeline.get_stats(intake_type)


@router.get("/sessions/{session_id}")
async def get_session(
    session_id: str,
    pipeline: IntakePipeline = Depends(get_pipeline),
) -> SessionData:
    """Progress, completion and contact record of one session."""
    return await pipeline.get_session_data(session_id)


@router.get("/sessions")
async def list_sessions(
    pipeline: IntakePipeline = Depends(get_pipeline),
    limit: int = Query(DEFAULT_PAGE_LIMIT, ge=1, le=MAX_PAGE_LIMIT),
    offset: int = Query(0, ge=0),
    intake_type: str | None = Query(None, alias="intakeType"),
) -> SessionPage:
    """List sessions for operators, most recent first."""
    items, total = await pipeline.list_sessions(
        limit=limit, offset=offset, intake_type=intake_type,
    )
    return SessionPage(items=items, total=total, limit=limit, offset=offset)
