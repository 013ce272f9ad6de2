"""End-of-intake endpoints — completion synthesis and contact capture."""

from fastapi import APIRouter, Depends

from intake_engine.models.session import CompletionOutput, ContactInfo, WireModel
from intake_engine.pipeline import IntakePipeline

from intake_server.dependencies import get_pipeline

router = APIRouter(tags=["completion"])


class ContactRequest(WireModel):
    """Body for POST /sessions/{session_id}/contact.  One field is enough."""
    email: str | None = None
    phone: str | None = None


@router.post("/sessions/{session_id}/completion")
async def complete(
    session_id: str,
    pipeline: IntakePipeline = Depends(get_pipeline),
) -> CompletionOutput:
    """Synthesize the completion on first call; later calls return the stored copy.

    Raises 409 while questions remain unanswered and 400 for a session
    with no answers at all.
    """
    return await pipeline.complete(session_id)


@router.post("/sessions/{session_id}/contact", status_code=201)
async def save_contact(
    session_id: str,
    body: ContactRequest,
    pipeline: IntakePipeline = Depends(get_pipeline),
) -> ContactInfo:
    """Store the contact details left at the end of the intake."""
    return await pipeline.save_contact(session_id, email=body.email, phone=body.phone)
