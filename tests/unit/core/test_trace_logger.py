# tests/unit/core/test_trace_logger.py
# Target: sqltutor/core/trace_logger.py
# No wall clock: every timestamp below is supplied by the test.

import pytest

from sqltutor.core.trace_logger import (
    DecisionEvent,
    DecisionTraceLogger,
    LoggingError,
)


def _logger_with_events() -> DecisionTraceLogger:
    logger = DecisionTraceLogger()
    logger.log_event("error", {"problem_id": "p-1", "error_subtype_id": "undefined column"}, 100, "a1")
    logger.log_event("hint_view", {"problem_id": "p-1", "hint_level": 1}, 101)
    logger.log_event("execution", {"problem_id": "p-2", "successful": True}, 200, "b1")
    return logger


class TestLogEvent:
    def test_returns_supplied_id(self):
        logger = DecisionTraceLogger()
        assert logger.log_event("error", {}, 1, event_id="attempt-1") == "attempt-1"

    def test_generated_id_uses_counter(self):
        logger = DecisionTraceLogger()
        assert logger.log_event("error", {}, 1) == "EVT-0000000000000001"
        assert logger.log_event("error", {}, 2) == "EVT-0000000000000002"

    def test_unknown_event_type_raises(self):
        with pytest.raises(LoggingError):
            DecisionTraceLogger().log_event("page_view", {}, 1)

    @pytest.mark.parametrize("timestamp", [None, 1.5, True, "1"])
    def test_timestamp_must_be_int(self, timestamp):
        with pytest.raises(LoggingError):
            DecisionTraceLogger().log_event("error", {}, timestamp)

    def test_empty_event_id_raises(self):
        with pytest.raises(LoggingError):
            DecisionTraceLogger().log_event("error", {}, 1, event_id="")

    def test_non_finite_floats_replaced_not_dropped(self):
        logger = DecisionTraceLogger()
        logger.log_event("error", {"a": float("nan"), "b": float("inf")}, 1)
        event = logger.events()[0]
        assert event.data == {"a": "NaN_DETECTED", "b": "Inf_DETECTED"}

    def test_event_get(self):
        logger = _logger_with_events()
        event = logger.events()[0]
        assert event.get("error_subtype_id") == "undefined column"
        assert event.get("missing", "d") == "d"


class TestLogDecision:
    def test_decision_fields_and_extra_are_logged(self):
        logger = DecisionTraceLogger()
        logger.log_decision(
            DecisionEvent(
                event_type="explanation_view",
                problem_id="p-1",
                rule_fired="escalation-threshold-met",
                sql_engage_subtype="undefined column",
                policy_version="v1",
                extra={"error_subtype_id": "undefined column"},
            ),
            500,
            event_id="explain-1",
        )
        event = logger.events()[0]
        assert event.id == "explain-1"
        assert event.type == "explanation_view"
        assert event.data["rule_fired"] == "escalation-threshold-met"
        assert event.data["error_subtype_id"] == "undefined column"
        assert event.data["sql_engage_row_id"] is None

    def test_none_decision_raises(self):
        with pytest.raises(LoggingError):
            DecisionTraceLogger().log_decision(None, 1)


class TestTraceDigest:
    def test_identical_traces_have_identical_digest(self):
        assert _logger_with_events().trace_digest() == _logger_with_events().trace_digest()

    def test_payload_change_changes_digest(self):
        other = DecisionTraceLogger()
        other.log_event("error", {"problem_id": "p-1", "error_subtype_id": "undefined table"}, 100, "a1")
        assert other.trace_digest() != _logger_with_events().trace_digest()

    def test_key_order_does_not_matter(self):
        a = DecisionTraceLogger()
        b = DecisionTraceLogger()
        a.log_event("error", {"x": 1, "y": 2}, 1, "e")
        b.log_event("error", {"y": 2, "x": 1}, 1, "e")
        assert a.events()[0].hash == b.events()[0].hash

    def test_event_count(self):
        assert _logger_with_events().event_count() == 3
