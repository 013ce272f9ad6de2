"""Route registration — mounts all routers under ``/api/v1``."""

from fastapi import FastAPI

from intake_server.routes.completion import router as completion_router
from intake_server.routes.intakes import router as intakes_router
from intake_server.routes.sessions import router as sessions_router
from intake_server.routes.steps import router as steps_router

API_PREFIX = "/api/v1"


def register_routes(app: FastAPI) -> None:
    """Include all sub-routers under the versioned API prefix."""
    app.include_router(intakes_router, prefix=API_PREFIX)
    app.include_router(sessions_router, prefix=API_PREFIX)
    app.include_router(steps_router, prefix=API_PREFIX)
    app.include_router(completion_router, prefix=API_PREFIX)
