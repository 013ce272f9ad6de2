"""intake_db — PostgreSQL persistence layer for intake sessions.

Provides the ORM models, async engine factory, repository, and the
``SqlTranscriptStore`` implementation of the engine's ``TranscriptStore``
interface.  Consumed by the FastAPI server.
"""

from intake_db.engine import dispose_engine, get_engine, get_session_factory, ping
from intake_db.models.session import IntakeProgressEntry, IntakeSession
from intake_db.repository import IntakeRepository
from intake_db.store import SqlTranscriptStore

__all__ = [
    "IntakeProgressEntry",
    "IntakeSession",
    "IntakeRepository",
    "SqlTranscriptStore",
    "dispose_engine",
    "get_engine",
    "get_session_factory",
    "ping",
]
