"""Application factory and CLI entry point.

``create_app()`` builds the FastAPI application with:
  - Lifespan handler that loads intakes and initialises the pipeline once
  - CORS middleware
  - Global exception handlers (IntakeError → 422/409/404/502/400)
  - All API routes mounted under ``/api/v1``
  - A ``/health`` endpoint for readiness probes

The ``cli()`` function is the ``intake-server`` console-script entry point.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import anthropic
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from intake_db.engine import dispose_engine, get_session_factory, ping
from intake_db.store import SqlTranscriptStore
from intake_engine.errors import IntakeError
from intake_engine.llm import AnthropicGenerator
from intake_engine.pipeline import IntakePipeline
from intake_engine.registry import QuestionRegistry

from intake_server.config import ServerSettings, load_settings
from intake_server.errors import generic_error_handler, intake_error_handler
from intake_server.routes import register_routes

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Lifespan: runs once at startup/shutdown
# ------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Initialise shared resources at startup, tear down on shutdown.

    Startup (skipped when a pipeline was injected into ``create_app``):
      1. Load intake YAML into a ``QuestionRegistry``; an invalid
         definition raises ``ConfigurationError`` and aborts startup
      2. Build the SQL store and the Anthropic generators
      3. Stash the ``IntakePipeline`` on ``app.state``

    Shutdown:
      1. Dispose the database engine's connection pool
    """
    if getattr(app.state, "pipeline", None) is not None:
        yield
        return

    settings: ServerSettings = app.state.settings

    # --- Load intakes ---
    registry = QuestionRegistry(intake_dir=settings.intake_dir)
    registry.load()

    # --- Collaborators ---
    store = SqlTranscriptStore(get_session_factory())
    client = anthropic.AsyncAnthropic(api_key=settings.anthropic_api_key)
    reflection_generator = AnthropicGenerator(settings.reflection_model, client=client)
    completion_generator = AnthropicGenerator(settings.completion_model, client=client)

    app.state.pipeline = IntakePipeline(
        registry,
        store,
        reflection_generator,
        completion_generator=completion_generator,
        generation_timeout=settings.generation_timeout,
    )
    app.state.check_database = True
    logger.info(
        "Pipeline ready (reflection=%s, completion=%s)",
        settings.reflection_model, settings.completion_model,
    )

    yield

    # --- Shutdown ---
    await client.close()
    await dispose_engine()
    logger.info("Database engine disposed")


# ------------------------------------------------------------------
# Factory
# ------------------------------------------------------------------

def create_app(
    settings: ServerSettings | None = None,
    pipeline: IntakePipeline | None = None,
) -> FastAPI:
    """Build and return the configured FastAPI application.

    Args:
        pipeline: pre-built pipeline; when given, the lifespan handler
            does not touch the database or the model provider.
    """
    if settings is None:
        settings = load_settings()

    # --- Configure logging ---
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    app = FastAPI(
        title="Intake API Server",
        description="REST API for the guided intake engine",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.pipeline = pipeline
    app.state.check_database = False

    # --- CORS ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # --- Exception handlers ---
    app.add_exception_handler(IntakeError, intake_error_handler)
    app.add_exception_handler(Exception, generic_error_handler)

    # --- Health check (outside /api/v1 prefix) ---
    @app.get("/health")
    async def health() -> dict:
        """Readiness probe — intakes loaded and, in production, DB reachable."""
        pipeline: IntakePipeline | None = app.state.pipeline
        if pipeline is None:
            return {"status": "starting"}
        intakes = pipeline.registry.intake_types()
        if app.state.check_database:
            try:
                await ping()
            except Exception as exc:
                logger.error("Health check failed: %s", exc)
                return {"status": "error", "detail": "database unreachable"}
        return {"status": "ok", "intakes": intakes}

    # --- Mount all API routes ---
    register_routes(app)

    return app


# ------------------------------------------------------------------
# Module-level ASGI export (for uvicorn intake_server.app:app)
# ------------------------------------------------------------------
app = create_app()


# ------------------------------------------------------------------
# CLI entry point
# ------------------------------------------------------------------

def cli() -> None:
    """Console-script entry point: ``intake-server``."""
    import uvicorn

    settings = load_settings()
    uvicorn.run(
        "intake_server.app:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        reload=False,
    )
