"""Pytest configuration and shared fixtures.

This module provides fixtures and configuration used across all tests.
"""

import os
from pathlib import Path
from types import SimpleNamespace
from typing import Generator

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Set required environment variables for tests BEFORE importing app modules
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test_secret_key_for_testing_only")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("FORMS_DIR", str(Path(__file__).resolve().parent.parent / "forms"))
os.environ.pop("OPENAI_API_KEY", None)

from feedbackhub.models.database import Base, get_db
from feedbackhub.schemas.form import FieldSchema, FormSchema


@pytest.fixture(scope="function")
def db_engine():
    """Create a test database engine with SQLite in-memory database.

    Yields:
        Engine: SQLAlchemy engine for testing

    Note:
        StaticPool keeps a single connection so the in-memory database is
        shared by every session, including those used by TestClient threads.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        echo=False,  # Set to True for SQL debugging
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Enable foreign key support for SQLite
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    # Import models so they register with Base.metadata
    from feedbackhub.models import form, response  # noqa: F401

    Base.metadata.create_all(engine)

    yield engine

    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine):
    return sessionmaker(
        bind=db_engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )


@pytest.fixture(scope="function")
def db_session(session_factory) -> Generator[Session, None, None]:
    """Create a test database session.

    Note:
        Session is rolled back after each test to ensure isolation.
    """
    session = session_factory()

    yield session

    session.rollback()
    session.close()


@pytest.fixture
def satisfaction_form() -> FormSchema:
    """Required 5-star rating q1 and optional free-text q2."""
    return FormSchema(
        id="form_satisfaction",
        title="Satisfaction",
        fields=[
            FieldSchema(id="q1", text="Overall satisfaction", type="rating",
                        required=True, max_rating=5),
            FieldSchema(id="q2", text="Anything else?", type="textarea"),
        ],
        created_by="user_1",
    )


@pytest.fixture
def features_form() -> FormSchema:
    """Required checkbox group q5."""
    return FormSchema(
        id="form_features",
        title="Features",
        fields=[
            FieldSchema(
                id="q5",
                text="Which features do you use?",
                type="checkbox",
                required=True,
                options=[
                    {"label": "Dashboard", "value": "dashboard"},
                    {"label": "Reporting", "value": "reporting"},
                    {"label": "Integration", "value": "integration"},
                ],
            ),
        ],
        created_by="user_1",
    )


class FakeCompletions:
    """Stands in for ``OpenAI().chat.completions``.

    Replies are returned in order; an exception instance in the list is
    raised instead of returned.
    """

    def __init__(self, replies):
        self.replies = list(replies)
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content=reply))]
        )


@pytest.fixture
def fake_openai():
    """Factory building a fake OpenAI client from a list of replies."""
    def build(*replies):
        completions = FakeCompletions(replies)
        return SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return build


@pytest.fixture
def client(session_factory):
    """TestClient with the database dependency bound to the test engine."""
    from fastapi.testclient import TestClient

    from feedbackhub.main import app

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(client) -> dict:
    token = client.app.state.auth_service.issue_token("user_1")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def other_auth_headers(client) -> dict:
    token = client.app.state.auth_service.issue_token("user_2")
    return {"Authorization": f"Bearer {token}"}
