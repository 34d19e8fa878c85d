"""Unit tests for log formatters."""

import json
import logging

from feedbackhub.logging_config import DevelopmentFormatter, JSONFormatter


def make_record(**extra):
    record = logging.LogRecord(
        name="feedbackhub.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=10,
        msg="Response submitted",
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:

    def test_includes_context_fields(self):
        payload = json.loads(JSONFormatter().format(make_record(form_id="f1", response_id="r1")))
        assert payload["message"] == "Response submitted"
        assert payload["level"] == "INFO"
        assert payload["form_id"] == "f1"
        assert payload["response_id"] == "r1"

    def test_omits_reserved_attributes(self):
        payload = json.loads(JSONFormatter().format(make_record()))
        assert "msg" not in payload
        assert "args" not in payload


class TestDevelopmentFormatter:

    def test_context_inline(self):
        output = DevelopmentFormatter().format(make_record(form_id="f1"))
        assert "Response submitted" in output
        assert "[form_id=f1]" in output

    def test_no_context(self):
        assert "[" not in DevelopmentFormatter().format(make_record()).split("-", 1)[1]
