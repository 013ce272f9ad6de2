"""Server configuration — reads settings from environment variables.

All settings have sensible defaults for local development.  In production
the values are typically overridden via env vars or a ``.env`` file.
"""

import os
from dataclasses import dataclass, field

from intake_engine.constants import (
    COMPLETION_MODEL,
    DEFAULT_INTAKE_TYPE,
    GENERATION_TIMEOUT_SECONDS,
    REFLECTION_MODEL,
)

# Module-level so FastAPI Query() defaults can reference them
DEFAULT_PAGE_LIMIT = int(os.getenv("DEFAULT_PAGE_LIMIT", "20"))
MAX_PAGE_LIMIT = int(os.getenv("MAX_PAGE_LIMIT", "100"))


@dataclass(frozen=True)
class ServerSettings:
    """Immutable server configuration read from environment at startup."""

    # Network
    host: str = "0.0.0.0"
    port: int = 8080

    # CORS: comma-separated origins, or "*" for wide-open dev mode
    cors_origins: list[str] = field(default_factory=lambda: ["*"])

    # Intake directory (None → the intakes bundled with intake_engine)
    intake_dir: str | None = None
    default_intake_type: str = DEFAULT_INTAKE_TYPE

    # Logging
    log_level: str = "INFO"

    # Generation
    anthropic_api_key: str | None = None
    reflection_model: str = REFLECTION_MODEL
    completion_model: str = COMPLETION_MODEL
    generation_timeout: float = GENERATION_TIMEOUT_SECONDS


def load_settings() -> ServerSettings:
    """Build settings from environment variables."""
    raw_origins = os.getenv("SERVER_CORS_ORIGINS", "*")
    origins = [o.strip() for o in raw_origins.split(",") if o.strip()]

    return ServerSettings(
        host=os.getenv("SERVER_HOST", "0.0.0.0"),
        port=int(os.getenv("SERVER_PORT", "8080")),
        cors_origins=origins,
        intake_dir=os.getenv("SERVER_INTAKE_DIR") or None,
        default_intake_type=DEFAULT_INTAKE_TYPE,
        log_level=os.getenv("SERVER_LOG_LEVEL", "INFO").upper(),
        anthropic_api_key=os.getenv("ANTHROPIC_API_KEY") or None,
        reflection_model=REFLECTION_MODEL,
        completion_model=COMPLETION_MODEL,
        generation_timeout=GENERATION_TIMEOUT_SECONDS,
    )
