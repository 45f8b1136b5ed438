# tests/unit/policy/test_policy_engine.py
# Target: sqltutor/policy/engine.py

import pytest

from sqltutor.core.exceptions import ConfigurationError
from sqltutor.core.trace_logger import DecisionTraceLogger
from sqltutor.policy.engine import (
    AutoEscalation,
    DecisionContext,
    analyze_context,
    auto_escalation_state,
    select_decision,
    serialize_thresholds,
    thresholds_for,
)

_NO_AUTO = AutoEscalation(should_escalate=False, hint_count=0)


def _ctx(errors=1, retries=0, time_ms=0, hint_level=0) -> DecisionContext:
    return DecisionContext(
        error_count=errors,
        retry_count=retries,
        time_spent_ms=time_ms,
        current_hint_level=hint_level,
        recent_errors=(),
    )


def _error(logger, ts, event_id, subtype="undefined column"):
    logger.log_event("error", {"problem_id": "p", "error_subtype_id": subtype}, ts, event_id)


def _hint(logger, ts):
    logger.log_event("hint_view", {"problem_id": "p"}, ts)


# =============================================================================
# SECTION 1 -- thresholds
# =============================================================================

class TestThresholds:
    def test_known_strategy(self):
        assert thresholds_for("adaptive-medium") == {"escalate": 3, "aggregate": 6}

    def test_unknown_strategy(self):
        with pytest.raises(ConfigurationError) as info:
            thresholds_for("adaptive-extreme")
        assert info.value.failure_type_id == "CONTRACT_VIOLATION"

    def test_infinite_serialized_as_string(self):
        assert serialize_thresholds(thresholds_for("hint-only")) == {
            "escalate": "Infinity",
            "aggregate": "Infinity",
        }

    def test_finite_kept(self):
        assert serialize_thresholds(thresholds_for("adaptive-high")) == {"escalate": 2, "aggregate": 4}


# =============================================================================
# SECTION 2 -- analyze_context
# =============================================================================

class TestAnalyzeContext:
    def test_empty(self):
        ctx = analyze_context([], 1000)
        assert ctx == _ctx(errors=0)

    def test_counts(self):
        logger = DecisionTraceLogger()
        _error(logger, 1000, "a1")
        _hint(logger, 1001)
        logger.log_event("execution", {"problem_id": "p", "successful": True}, 5000, "a2")
        ctx = analyze_context(logger.events(), 5000)
        assert ctx.error_count == 1
        assert ctx.retry_count == 1
        assert ctx.time_spent_ms == 4000
        assert ctx.current_hint_level == 1
        assert ctx.recent_errors == ("undefined column",)

    def test_hint_level_capped(self):
        logger = DecisionTraceLogger()
        _error(logger, 0, "a1")
        for ts in range(1, 6):
            _hint(logger, ts)
        assert analyze_context(logger.events(), 10).current_hint_level == 3

    def test_recent_errors_window(self):
        logger = DecisionTraceLogger()
        for i in range(7):
            _error(logger, i, f"a{i}", subtype=f"s{i}")
        assert analyze_context(logger.events(), 7).recent_errors == ("s2", "s3", "s4", "s5", "s6")


# =============================================================================
# SECTION 3 -- auto escalation
# =============================================================================

def _three_hints_then_error() -> DecisionTraceLogger:
    logger = DecisionTraceLogger()
    _error(logger, 0, "e1")
    _hint(logger, 1)
    _error(logger, 10, "e2")
    _hint(logger, 11)
    _error(logger, 20, "e3")
    _hint(logger, 21)
    _error(logger, 30, "e4")
    return logger


class TestAutoEscalation:
    def test_below_threshold(self):
        logger = DecisionTraceLogger()
        _error(logger, 0, "e1")
        _hint(logger, 1)
        state = auto_escalation_state(logger.events())
        assert state == AutoEscalation(should_escalate=False, hint_count=1)

    def test_failed_run_after_threshold_hint(self):
        state = auto_escalation_state(_three_hints_then_error().events())
        assert state.should_escalate
        assert state.hint_count == 3
        assert state.trigger_error_id == "e4"

    def test_explanation_since_failure_suppresses(self):
        logger = _three_hints_then_error()
        logger.log_event("explanation_view", {"problem_id": "p"}, 31)
        state = auto_escalation_state(logger.events())
        assert not state.should_escalate
        assert state.trigger_error_id == "e4"

    def test_no_error_after_threshold_hint(self):
        logger = DecisionTraceLogger()
        _error(logger, 0, "e1")
        for ts in (1, 2, 3):
            _hint(logger, ts)
        assert not auto_escalation_state(logger.events()).should_escalate


# =============================================================================
# SECTION 4 -- select_decision
# =============================================================================

class TestSelectDecision:
    medium = thresholds_for("adaptive-medium")

    def test_no_errors(self):
        decision = select_decision(_ctx(errors=0), self.medium, _NO_AUTO)
        assert decision.decision == "show_hint"
        assert decision.rule_fired == "no-errors-show-hint"
        assert decision.reasoning == "No errors detected, showing basic hint"

    def test_progressive_hint(self):
        decision = select_decision(_ctx(errors=1, hint_level=1), self.medium, _NO_AUTO)
        assert decision.rule_fired == "progressive-hint"
        assert decision.reasoning == "Below escalation threshold (3), showing level 2 hint"

    def test_progressive_hint_reasoning_for_hint_only(self):
        decision = select_decision(_ctx(errors=1), thresholds_for("hint-only"), _NO_AUTO)
        assert decision.reasoning == "Below escalation threshold (Infinity), showing level 1 hint"

    def test_escalation_needs_errors_and_retries(self):
        decision = select_decision(_ctx(errors=3, retries=2), self.medium, _NO_AUTO)
        assert decision.decision == "show_explanation"
        assert decision.rule_fired == "escalation-threshold-met"
        assert decision.reasoning == (
            "Error count (3) and retries (2) exceed escalation threshold (3)"
        )

    def test_escalation_not_met_with_one_retry(self):
        decision = select_decision(_ctx(errors=3, retries=1), self.medium, _NO_AUTO)
        assert decision.rule_fired == "progressive-hint"

    def test_aggregation_by_error_count(self):
        decision = select_decision(_ctx(errors=6, retries=1), self.medium, _NO_AUTO)
        assert decision.decision == "add_to_textbook"
        assert decision.rule_fired == "aggregation-threshold-met"

    def test_aggregation_by_time(self):
        decision = select_decision(_ctx(errors=1, time_ms=600_001), self.medium, _NO_AUTO)
        assert decision.rule_fired == "aggregation-threshold-met"
        assert decision.reasoning == (
            "High error count (1) or extended time (600s) suggests need for comprehensive notes"
        )

    def test_auto_escalation_wins_over_thresholds(self):
        auto = AutoEscalation(should_escalate=True, hint_count=3, trigger_error_id="e4")
        decision = select_decision(_ctx(errors=1), self.medium, auto)
        assert decision.rule_fired == "auto-escalation-after-hints"
        assert decision.reasoning == "Auto-escalation triggered after 3 hints and another failed run"

    def test_hint_only_never_escalates(self):
        auto = AutoEscalation(should_escalate=True, hint_count=3, trigger_error_id="e4")
        decision = select_decision(_ctx(errors=50, retries=50), thresholds_for("hint-only"), auto)
        assert decision.decision == "show_hint"
