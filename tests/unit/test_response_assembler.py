"""Unit tests for response assembly and submission.

Uses an in-memory writer so persistence outcomes can be controlled.
"""

import pytest

from feedbackhub.schemas.form import ResponseRecord
from feedbackhub.services.form_renderer import FormSession
from feedbackhub.services.guards import OperationInProgress
from feedbackhub.services.repository import PersistenceError
from feedbackhub.services.response_assembler import ResponseAssembler, SubmissionRejected


class MemoryWriter:
    """Response writer collecting records; can be told to fail."""

    def __init__(self, fail=False):
        self.fail = fail
        self.records: list[ResponseRecord] = []

    def create_response(self, record: ResponseRecord) -> ResponseRecord:
        if self.fail:
            raise PersistenceError("database unavailable")
        self.records.append(record)
        return record


class TestAssemble:

    def test_answers_keyed_by_field_ids(self, satisfaction_form):
        session = FormSession(satisfaction_form)
        session.set_value("q1", 4)
        record = ResponseAssembler(MemoryWriter()).assemble(session, user_id="user_9")
        assert set(record.answers) == {"q1", "q2"}
        assert record.answers == {"q1": 4, "q2": ""}
        assert record.form_id == satisfaction_form.id
        assert record.user_id == "user_9"

    def test_anonymous_form_drops_user(self, satisfaction_form):
        form = satisfaction_form.model_copy(update={"is_anonymous": True})
        session = FormSession(form)
        session.set_value("q1", 5)
        record = ResponseAssembler(MemoryWriter()).assemble(session, user_id="user_9")
        assert record.user_id is None

    def test_invalid_store_rejected(self, satisfaction_form):
        session = FormSession(satisfaction_form)
        with pytest.raises(SubmissionRejected) as exc_info:
            ResponseAssembler(MemoryWriter()).assemble(session)
        assert exc_info.value.errors == {"q1": "Overall satisfaction is required."}


class TestSubmit:

    def test_rating_and_feedback_scenario(self, satisfaction_form):
        """Submitting with no rating is blocked; rating 4 then succeeds."""
        writer = MemoryWriter()
        assembler = ResponseAssembler(writer)
        session = FormSession(satisfaction_form)

        with pytest.raises(SubmissionRejected) as exc_info:
            assembler.submit(session)
        assert "q1" in exc_info.value.errors
        assert writer.records == []

        session.widget("q1").click(4)
        record = assembler.submit(session)
        assert record.answers == {"q1": 4, "q2": ""}
        assert writer.records == [record]
        assert session.store.snapshot() == {"q1": 0, "q2": ""}

    def test_checkbox_scenario(self, features_form):
        """An empty required checkbox blocks; toggling one option succeeds."""
        writer = MemoryWriter()
        assembler = ResponseAssembler(writer)
        session = FormSession(features_form)

        with pytest.raises(SubmissionRejected) as exc_info:
            assembler.submit(session)
        assert exc_info.value.errors["q5"] == (
            "Please select at least one option for Which features do you use?."
        )

        session.widget("q5").toggle("dashboard")
        record = assembler.submit(session)
        assert record.answers == {"q5": ["dashboard"]}
        assert session.store.get("q5") == []

    def test_rejected_submit_leaves_store_untouched(self, satisfaction_form):
        writer = MemoryWriter()
        session = FormSession(satisfaction_form)
        session.set_value("q2", "Slow checkout")
        before = session.store.snapshot()

        with pytest.raises(SubmissionRejected):
            ResponseAssembler(writer).submit(session)

        assert session.store.snapshot() == before
        assert writer.records == []

    def test_persistence_failure_keeps_values(self, satisfaction_form):
        session = FormSession(satisfaction_form)
        session.set_value("q1", 3)
        session.set_value("q2", "Good")

        with pytest.raises(PersistenceError):
            ResponseAssembler(MemoryWriter(fail=True)).submit(session)

        assert session.store.snapshot() == {"q1": 3, "q2": "Good"}
        assert not session.in_flight.is_held("submit")

    def test_retry_after_persistence_failure(self, satisfaction_form):
        session = FormSession(satisfaction_form)
        session.set_value("q1", 3)
        writer = MemoryWriter(fail=True)
        assembler = ResponseAssembler(writer)

        with pytest.raises(PersistenceError):
            assembler.submit(session)
        writer.fail = False
        record = assembler.submit(session)
        assert record.answers["q1"] == 3

    def test_concurrent_submit_refused(self, satisfaction_form):
        session = FormSession(satisfaction_form)
        session.set_value("q1", 5)
        writer = MemoryWriter()

        with session.in_flight.hold("submit"):
            with pytest.raises(OperationInProgress):
                ResponseAssembler(writer).submit(session)
        assert writer.records == []
        assert session.store.get("q1") == 5

    def test_each_submission_gets_new_id(self, satisfaction_form):
        assembler = ResponseAssembler(MemoryWriter())
        session = FormSession(satisfaction_form)
        ids = set()
        for _ in range(3):
            session.set_value("q1", 5)
            ids.add(assembler.submit(session).id)
        assert len(ids) == 3
