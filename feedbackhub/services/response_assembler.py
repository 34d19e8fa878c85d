"""Response assembly and submission.

This module turns a FormSession's value store into a ResponseRecord and hands
it to the response store. Submission is all-or-nothing: any failing field
blocks it and nothing is written.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional, Protocol

from feedbackhub.schemas.form import ResponseRecord
from feedbackhub.services.form_renderer import FormSession
from feedbackhub.services.repository import PersistenceError
from feedbackhub.logging_config import get_logger

logger = get_logger(__name__)


class SubmissionRejected(Exception):
    """Raised when the value store fails validation.

    Attributes:
        errors: Field id to error message for every failing field
    """

    def __init__(self, errors: dict[str, str]):
        super().__init__(f"Submission blocked by {len(errors)} invalid field(s)")
        self.errors = errors


class ResponseWriter(Protocol):
    """Anything that can persist a response record."""

    def create_response(self, record: ResponseRecord) -> ResponseRecord:
        ...


class ResponseAssembler:
    """Validates a session's values and persists them as a response."""

    def __init__(self, writer: ResponseWriter):
        """Initialize assembler.

        Args:
            writer: Response store used to persist accepted submissions
        """
        self.writer = writer

    def assemble(self, session: FormSession, user_id: Optional[str] = None) -> ResponseRecord:
        """Validate the store and build a response record without saving it.

        Args:
            session: Form session holding the respondent's values
            user_id: Respondent user id; dropped for anonymous forms

        Returns:
            ResponseRecord whose answers are the store values, keyed by field id

        Raises:
            SubmissionRejected: If any field fails validation
        """
        errors = session.validate()
        if errors:
            logger.info(
                f"Submission blocked, invalid fields: {list(errors)}",
                extra={"form_id": session.form.id},
            )
            raise SubmissionRejected(errors)

        return ResponseRecord(
            id=uuid.uuid4().hex,
            form_id=session.form.id,
            answers=session.store.snapshot(),
            user_id=None if session.form.is_anonymous else user_id,
            timestamp=datetime.now(timezone.utc),
        )

    def submit(self, session: FormSession, user_id: Optional[str] = None) -> ResponseRecord:
        """Validate, persist and clear the session's values.

        On success the store is reset to its initial values. When validation
        fails or the writer raises, the store is left exactly as it was so
        the respondent can correct or retry.

        Args:
            session: Form session holding the respondent's values
            user_id: Respondent user id; dropped for anonymous forms

        Returns:
            The persisted ResponseRecord

        Raises:
            OperationInProgress: If this session is already submitting
            SubmissionRejected: If any field fails validation
            PersistenceError: If the writer fails
        """
        with session.in_flight.hold("submit"):
            record = self.assemble(session, user_id=user_id)
            try:
                saved = self.writer.create_response(record)
            except PersistenceError:
                logger.error(
                    "Response could not be saved; values kept for retry",
                    extra={"form_id": session.form.id},
                )
                raise

            session.reset()
            logger.info(
                "Response submitted",
                extra={"form_id": session.form.id, "response_id": saved.id},
            )
            return saved