"""Unit tests for in-flight guards."""

import pytest

from feedbackhub.services.guards import InFlightGuard, OperationInProgress


class TestInFlightGuard:

    def test_hold_marks_key(self):
        guard = InFlightGuard()
        with guard.hold("summary"):
            assert guard.is_held("summary")
        assert not guard.is_held("summary")

    def test_second_hold_refused(self):
        guard = InFlightGuard()
        with guard.hold("form_1"):
            with pytest.raises(OperationInProgress):
                with guard.hold("form_1"):
                    pass

    def test_keys_are_independent(self):
        guard = InFlightGuard()
        with guard.hold("form_1"):
            with guard.hold("form_2"):
                assert guard.is_held("form_1") and guard.is_held("form_2")

    def test_released_after_error(self):
        guard = InFlightGuard()
        with pytest.raises(RuntimeError):
            with guard.hold("form_1"):
                raise RuntimeError("boom")
        assert not guard.is_held("form_1")
