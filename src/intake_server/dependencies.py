"""FastAPI dependency injection — provides the pipeline and settings.

Both are stashed on ``app.state`` when the app is built.  The SQL store
opens its own transaction per call, so routes never see a database session.
"""

from fastapi import Request

from intake_engine.pipeline import IntakePipeline

from intake_server.config import ServerSettings


def get_pipeline(request: Request) -> IntakePipeline:
    """Return the pipeline singleton from ``app.state``."""
    return request.app.state.pipeline


def get_settings(request: Request) -> ServerSettings:
    """Return the settings the app was created with."""
    return request.app.state.settings
