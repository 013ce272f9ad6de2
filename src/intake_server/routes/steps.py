"""Step endpoints — read the current step and submit answers.

A submission names the question index it answers.  The engine accepts it
only when that index is the session's next one, so a stale or repeated
request gets 409 instead of overwriting progress.
"""

from typing import Any

from fastapi import APIRouter, Depends

from intake_engine.errors import ValidationError
from intake_engine.models.session import CurrentStep, StepResponse, WireModel
from intake_engine.pipeline import IntakePipeline

from intake_server.dependencies import get_pipeline

router = APIRouter(tags=["steps"])


# ------------------------------------------------------------------
# Request models
# ------------------------------------------------------------------

class StepRequest(WireModel):
    """Body for POST /sessions/{session_id}/step.

    ``session_id`` is optional in the body; when present it must match
    the URL.  ``escape_text`` accompanies a "something else" selection.
    """
    session_id: str | None = None
    question_index: int
    current_answer: Any
    escape_text: str | None = None


# ------------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------------

@router.get("/sessions/{session_id}/step")
async def get_current_step(
    session_id: str,
    pipeline: IntakePipeline = Depends(get_pipeline),
) -> CurrentStep:
    """Where the session stands: the next question, or complete."""
    return await pipeline.current_step(session_id)


@router.post("/sessions/{session_id}/step")
async def submit_answer(
    session_id: str,
    body: StepRequest,
    pipeline: IntakePipeline = Depends(get_pipeline),
) -> StepResponse:
    """Submit the answer for ``questionIndex`` and advance the session.

    Returns the reflection plus either the next question or
    ``isComplete: true``.
    """
    if body.session_id is not None and body.session_id != session_id:
        raise ValidationError("sessionId in the body does not match the URL")
    step = await pipeline.submit_answer(
        session_id,
        body.question_index,
        body.current_answer,
        body.escape_text,
    )
    return StepResponse.from_step(step)
