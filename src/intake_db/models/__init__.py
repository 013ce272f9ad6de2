"""ORM models for intake_db."""

from intake_db.models.base import Base
from intake_db.models.session import IntakeProgressEntry, IntakeSession

__all__ = ["Base", "IntakeProgressEntry", "IntakeSession"]
