"""Persistence for forms and responses.

Repositories wrap a SQLAlchemy session and speak in pydantic schemas. The
ResponseFeed is the live query over responses: subscribers registered for a
form id receive that form's full response list each time a new response is
stored.
"""

import threading
from collections import defaultdict
from typing import Callable, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from feedbackhub.models.form import FormRecord
from feedbackhub.models.response import ResponseRow
from feedbackhub.schemas.form import FormSchema, ResponseRecord
from feedbackhub.logging_config import get_logger

logger = get_logger(__name__)

ResponseListener = Callable[[list[ResponseRecord]], None]


class PersistenceError(Exception):
    """Raised when the database cannot complete a write."""
    pass


class FormNotFoundError(Exception):
    """Raised when a form does not exist or is not visible to the caller."""
    pass


class ResponseFeed:
    """In-process publish/subscribe channel for new responses."""

    def __init__(self):
        self._lock = threading.Lock()
        self._listeners: dict[str, list[ResponseListener]] = defaultdict(list)

    def subscribe(self, form_id: str, listener: ResponseListener) -> Callable[[], None]:
        """Register a listener for a form's responses.

        Args:
            form_id: Form to watch
            listener: Called with the full response list on every new response

        Returns:
            Function that removes the listener
        """
        with self._lock:
            self._listeners[form_id].append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners.get(form_id, []):
                    self._listeners[form_id].remove(listener)

        return unsubscribe

    def has_listeners(self, form_id: str) -> bool:
        with self._lock:
            return bool(self._listeners.get(form_id))

    def publish(self, form_id: str, responses: list[ResponseRecord]) -> None:
        """Push a form's current responses to its listeners.

        A failing listener is logged and does not stop delivery to the others.
        """
        with self._lock:
            listeners = list(self._listeners.get(form_id, []))
        for listener in listeners:
            try:
                listener(responses)
            except Exception:
                logger.exception(
                    "Response listener failed",
                    extra={"form_id": form_id},
                )


class FormRepository:
    """Create, read, list and delete forms."""

    def __init__(self, db: Session):
        self.db = db

    def create_form(self, form: FormSchema) -> FormSchema:
        """Store a new form.

        Raises:
            PersistenceError: If the write fails
        """
        try:
            self.db.add(FormRecord.from_schema(form))
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to save form: {e}", extra={"form_id": form.id})
            raise PersistenceError(f"Could not save form '{form.id}'") from e

        logger.info(f"Created form '{form.title}'", extra={"form_id": form.id})
        return form

    def get_form(self, form_id: str) -> FormSchema:
        """Load a form by id.

        Raises:
            FormNotFoundError: If no such form exists
        """
        record = self.db.get(FormRecord, form_id)
        if record is None:
            raise FormNotFoundError(f"Form '{form_id}' not found")
        return record.to_schema()

    def get_owned_form(self, form_id: str, owner_id: str) -> FormSchema:
        """Load a form that belongs to owner_id.

        Forms owned by someone else are reported as missing.

        Raises:
            FormNotFoundError: If no such form exists for this owner
        """
        form = self.get_form(form_id)
        if form.created_by != owner_id:
            logger.warning(
                f"User {owner_id} requested a form they do not own",
                extra={"form_id": form_id},
            )
            raise FormNotFoundError(f"Form '{form_id}' not found")
        return form

    def list_forms(self, owner_id: str) -> list[FormSchema]:
        """List an owner's forms, newest first."""
        records = self.db.execute(
            select(FormRecord)
            .where(FormRecord.created_by == owner_id)
            .order_by(FormRecord.created_at.desc())
        ).scalars().all()
        return [record.to_schema() for record in records]

    def delete_form(self, form_id: str, owner_id: str) -> None:
        """Delete an owned form together with its responses.

        Raises:
            FormNotFoundError: If no such form exists for this owner
            PersistenceError: If the delete fails
        """
        self.get_owned_form(form_id, owner_id)
        record = self.db.get(FormRecord, form_id)
        try:
            self.db.delete(record)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to delete form: {e}", extra={"form_id": form_id})
            raise PersistenceError(f"Could not delete form '{form_id}'") from e

        logger.info("Deleted form", extra={"form_id": form_id})


class ResponseRepository:
    """Create and list responses; notifies the feed on every new response."""

    def __init__(self, db: Session, feed: Optional[ResponseFeed] = None):
        self.db = db
        self.feed = feed

    def create_response(self, record: ResponseRecord) -> ResponseRecord:
        """Store a submitted response.

        Raises:
            PersistenceError: If the write fails
        """
        try:
            self.db.add(ResponseRow.from_record(record))
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(
                f"Failed to save response: {e}",
                extra={"form_id": record.form_id},
            )
            raise PersistenceError("Could not save response") from e

        if self.feed is not None and self.feed.has_listeners(record.form_id):
            self.feed.publish(record.form_id, self.list_responses(record.form_id))
        return record

    def list_responses(self, form_id: str) -> list[ResponseRecord]:
        """All responses for a form, oldest first."""
        rows = self.db.execute(
            select(ResponseRow)
            .where(ResponseRow.form_id == form_id)
            .order_by(ResponseRow.submitted_at, ResponseRow.id)
        ).scalars().all()
        return [row.to_record() for row in rows]
