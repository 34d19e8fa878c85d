"""Database setup and session management using SQLAlchemy 2.0.

This module configures the database engine, session factory, and base class
for all ORM models using modern SQLAlchemy 2.0 patterns.
"""

from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from feedbackhub.config import get_settings


class Base(DeclarativeBase):
    """Base class for all ORM models.

    Uses SQLAlchemy 2.0's DeclarativeBase for modern type-safe models.
    All models should inherit from this class.
    """
    pass


settings = get_settings()

engine_kwargs = {
    "pool_pre_ping": True,  # Verify connections before using
    "echo": False,
}

# SQLite doesn't support pool_size/max_overflow, and its connections must be
# shareable across FastAPI's worker threads
if settings.database_url.startswith("sqlite"):
    engine_kwargs["connect_args"] = {"check_same_thread": False}
else:
    engine_kwargs["pool_size"] = settings.database_pool_size
    engine_kwargs["max_overflow"] = settings.database_max_overflow

engine = create_engine(settings.database_url, **engine_kwargs)

if settings.database_url.startswith("sqlite"):
    # SQLite only enforces ON DELETE CASCADE with foreign keys switched on
    @event.listens_for(engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,  # Prevent lazy loading after commit
)


def init_db() -> None:
    """Create all tables that do not exist yet."""
    # Import models so they register with Base.metadata
    from feedbackhub.models import form, response  # noqa: F401

    Base.metadata.create_all(bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Dependency function for FastAPI to provide database sessions.

    Yields:
        Session: SQLAlchemy database session

    Note:
        The session is automatically closed after the request completes,
        even if an exception occurs.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
