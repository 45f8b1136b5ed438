# =============================================================================
# sqltutor -- ADAPTIVE DECISION POLICY
# File:   sqltutor/policy/engine.py
# =============================================================================
#
# Rule-based selection between hint, explanation and textbook-note
# interventions. The policy reads only the interaction events of one
# learner on one problem; it never consults the hint text, so the decision
# trace is the same whether hint text came from the deterministic ladder
# or from a generative model.
#
# RULES (first match wins)
# ------------------------
#   no-errors-show-hint          -- no error seen yet
#   auto-escalation-after-hints  -- threshold hints viewed, then another
#                                   failed run with no explanation since
#   escalation-threshold-met     -- errors >= escalate and retries >= 2
#   aggregation-threshold-met    -- errors >= aggregate or time > limit
#   progressive-hint             -- otherwise
#
# The policy engine is a digested input of the replay checksum gate.
# =============================================================================

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from sqltutor.core.exceptions import ConfigurationError
from sqltutor.core.trace_logger import Event
from sqltutor.utils.constants import (
    AGGREGATION_TIME_LIMIT_MS,
    AUTO_ESCALATION_HINT_THRESHOLD,
    MAX_HINT_LEVEL,
    RECENT_ERROR_WINDOW,
    STRATEGY_THRESHOLDS,
)


@dataclass(frozen=True)
class DecisionContext:
    error_count:        int
    retry_count:        int
    time_spent_ms:      int
    current_hint_level: int
    recent_errors:      Tuple[str, ...]


@dataclass(frozen=True)
class AutoEscalation:
    should_escalate:  bool
    hint_count:       int
    trigger_error_id: Optional[str] = None


@dataclass(frozen=True)
class PolicyDecision:
    decision:   str    # show_hint | show_explanation | add_to_textbook
    rule_fired: str
    reasoning:  str


def thresholds_for(strategy: str) -> Dict[str, float]:
    try:
        return STRATEGY_THRESHOLDS[strategy]
    except KeyError:
        raise ConfigurationError(
            f"Unknown strategy '{strategy}'. Known: {sorted(STRATEGY_THRESHOLDS)}",
            failure_type_id="CONTRACT_VIOLATION",
            context=strategy,
        ) from None


def serialize_thresholds(thresholds: Dict[str, float]) -> Dict[str, object]:
    """JSON-safe thresholds: infinite values become the string "Infinity"."""
    return {
        key: (value if math.isfinite(value) else "Infinity")
        for key, value in (("escalate", thresholds["escalate"]), ("aggregate", thresholds["aggregate"]))
    }


def analyze_context(events: Sequence[Event], now_ms: int) -> DecisionContext:
    """Summarize one learner/problem event sequence at now_ms."""
    errors = [e for e in events if e.type == "error"]
    attempts = [e for e in events if e.type in ("execution", "error")]
    hint_views = [e for e in events if e.type == "hint_view"]
    recent = tuple(
        e.get("error_subtype_id") for e in errors[-RECENT_ERROR_WINDOW:]
        if e.get("error_subtype_id")
    )
    time_spent = now_ms - events[0].timestamp if events else 0

    return DecisionContext(
        error_count=len(errors),
        retry_count=max(0, len(attempts) - 1),
        time_spent_ms=time_spent,
        current_hint_level=min(len(hint_views), MAX_HINT_LEVEL),
        recent_errors=recent,
    )


def auto_escalation_state(
    events:         Sequence[Event],
    hint_threshold: int = AUTO_ESCALATION_HINT_THRESHOLD,
) -> AutoEscalation:
    """
    Escalate when, after the threshold-th hint view, the latest interaction
    is a failed run and no explanation has been shown since that failure.
    """
    ordered: List[Event] = sorted(events, key=lambda e: e.timestamp)
    hint_views = [e for e in ordered if e.type == "hint_view"]

    if len(hint_views) < hint_threshold:
        return AutoEscalation(should_escalate=False, hint_count=len(hint_views))

    threshold_hint = hint_views[hint_threshold - 1]
    errors_after = [
        e for e in ordered
        if e.type == "error" and e.timestamp > threshold_hint.timestamp
    ]
    latest_error = errors_after[-1] if errors_after else None
    latest = ordered[-1] if ordered else None

    if latest_error is None or latest is None or latest.id != latest_error.id:
        return AutoEscalation(
            should_escalate=False,
            hint_count=len(hint_views),
            trigger_error_id=latest_error.id if latest_error else None,
        )

    explained = any(
        e.type == "explanation_view" and e.timestamp >= latest_error.timestamp
        for e in ordered
    )
    return AutoEscalation(
        should_escalate=not explained,
        hint_count=len(hint_views),
        trigger_error_id=latest_error.id,
    )


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def select_decision(
    context:        DecisionContext,
    thresholds:     Dict[str, float],
    auto_escalation: AutoEscalation,
) -> PolicyDecision:
    escalate = thresholds["escalate"]
    aggregate = thresholds["aggregate"]

    if context.error_count == 0:
        return PolicyDecision(
            "show_hint",
            "no-errors-show-hint",
            "No errors detected, showing basic hint",
        )

    if math.isfinite(escalate) and auto_escalation.should_escalate:
        return PolicyDecision(
            "show_explanation",
            "auto-escalation-after-hints",
            f"Auto-escalation triggered after {auto_escalation.hint_count} hints "
            "and another failed run",
        )

    if context.error_count >= escalate and context.retry_count >= 2:
        return PolicyDecision(
            "show_explanation",
            "escalation-threshold-met",
            f"Error count ({context.error_count}) and retries ({context.retry_count}) "
            f"exceed escalation threshold ({_format_threshold(escalate)})",
        )

    if context.error_count >= aggregate or context.time_spent_ms > AGGREGATION_TIME_LIMIT_MS:
        return PolicyDecision(
            "add_to_textbook",
            "aggregation-threshold-met",
            f"High error count ({context.error_count}) or extended time "
            f"({_round_half_up(context.time_spent_ms / 1000)}s) suggests need for comprehensive notes",
        )

    return PolicyDecision(
        "show_hint",
        "progressive-hint",
        f"Below escalation threshold ({_format_threshold(escalate)}), "
        f"showing level {context.current_hint_level + 1} hint",
    )


def _format_threshold(value: float) -> str:
    if not math.isfinite(value):
        return "Infinity"
    return str(int(value)) if float(value).is_integer() else str(value)
