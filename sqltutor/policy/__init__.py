from .engine import (
    AutoEscalation,
    DecisionContext,
    PolicyDecision,
    analyze_context,
    auto_escalation_state,
    select_decision,
    serialize_thresholds,
    thresholds_for,
)
from .hint_text import HintTextProvider, deterministic_hint_text

__all__ = [
    "AutoEscalation",
    "DecisionContext",
    "PolicyDecision",
    "analyze_context",
    "auto_escalation_state",
    "select_decision",
    "serialize_thresholds",
    "thresholds_for",
    "HintTextProvider",
    "deterministic_hint_text",
]
