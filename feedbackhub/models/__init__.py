"""Database models and session management.

This package contains all SQLAlchemy ORM models and database utilities.
"""

from feedbackhub.models.database import Base, engine, SessionLocal, get_db, init_db
from feedbackhub.models.form import FormRecord
from feedbackhub.models.response import ResponseRow

__all__ = [
    "Base",
    "engine",
    "SessionLocal",
    "get_db",
    "init_db",
    "FormRecord",
    "ResponseRow",
]
