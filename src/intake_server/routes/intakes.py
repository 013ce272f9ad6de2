"""Intake metadata endpoints — what a client needs before starting."""

from fastapi import APIRouter, Depends

from intake_engine.models.session import IntakeOverview
from intake_engine.pipeline import IntakePipeline

from intake_server.dependencies import get_pipeline

router = APIRouter(tags=["intakes"])


@router.get("/intakes")
async def list_intakes(
    pipeline: IntakePipeline = Depends(get_pipeline),
) -> list[IntakeOverview]:
    """All registered intakes with their client-safe questions."""
    return pipeline.list_intakes()


@router.get("/intakes/{intake_type}")
async def get_intake(
    intake_type: str,
    pipeline: IntakePipeline = Depends(get_pipeline),
) -> IntakeOverview:
    """One intake's overview.  Raises 404 for unknown intake types."""
    return pipeline.get_overview(intake_type)
