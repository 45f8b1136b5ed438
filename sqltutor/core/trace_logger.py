# sqltutor/core/trace_logger.py
# Decision Trace Logger
#
# Scope: Event-sourced recording of learner interactions and policy
# decisions. Zero tolerance for lost events. No file IO. No global mutable
# state. All timestamps are caller-supplied integer milliseconds. All hashes
# are deterministic.
#
# Canonical import:
#   from sqltutor.core.trace_logger import DecisionTraceLogger, DecisionEvent, Event
#
# Prohibited: time.time(), datetime.now(), uuid, random, file IO

# ===========================================================================
# SECTION 1 -- IMPORTS
# ===========================================================================

import hashlib
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from sqltutor.core.integrity_layer import canonical_json

# ===========================================================================
# SECTION 2 -- CONSTANTS
# ===========================================================================

# Logged in place of non-finite floats. The event is never dropped.
_NAN_SENTINEL: str = "NaN_DETECTED"
_INF_SENTINEL: str = "Inf_DETECTED"

_HASH_SEP: str = "|"

EVENT_TYPES = frozenset({
    "execution",
    "error",
    "hint_view",
    "explanation_view",
    "textbook_note",
})

# ===========================================================================
# SECTION 3 -- DATACLASSES: Event, DecisionEvent
# ===========================================================================

@dataclass(frozen=True)
class Event:
    """
    Immutable record of a single interaction event.

    Fields
    ------
    id        : Caller-supplied id (e.g. the fixture attempt id) or a
                counter-derived "EVT-<16 digits>" id.
    type      : One of EVENT_TYPES.
    timestamp : Caller-supplied integer milliseconds. Never generated here.
    data      : Sanitized payload (problem_id, error_subtype_id, hint_level,
                sql_engage_subtype, sql_engage_row_id, ...).
    hash      : SHA-256 over (id, type, timestamp, canonical data).
    """
    id: str
    type: str
    timestamp: int
    data: Dict[str, Any]
    hash: str

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)


@dataclass(frozen=True)
class DecisionEvent:
    """
    One policy decision as it enters the decision trace.

    sql_engage_row_id is the Deterministic Row Selector output; it is what
    makes the trace reproducible across live and replay modes.
    """
    event_type: str
    problem_id: str
    rule_fired: str
    hint_level: Optional[int] = None
    sql_engage_subtype: Optional[str] = None
    sql_engage_row_id: Optional[str] = None
    policy_version: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_data(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "problem_id": self.problem_id,
            "rule_fired": self.rule_fired,
            "hint_level": self.hint_level,
            "sql_engage_subtype": self.sql_engage_subtype,
            "sql_engage_row_id": self.sql_engage_row_id,
            "policy_version": self.policy_version,
        }
        data.update(self.extra)
        return data


# ===========================================================================
# SECTION 4 -- INTERNAL HELPERS
# ===========================================================================

def _sanitize_numeric(value: Any) -> Any:
    """Replace float NaN / Inf with sentinel strings. Never raises."""
    if isinstance(value, float):
        if math.isnan(value):
            return _NAN_SENTINEL
        if math.isinf(value):
            return _INF_SENTINEL
    return value


def _sanitize_data(data: Dict[str, Any]) -> Dict[str, Any]:
    return {k: _sanitize_numeric(v) for k, v in data.items()}


def _compute_hash(event_id: str, event_type: str, timestamp: int, data: Dict[str, Any]) -> str:
    """
    SHA-256 over: event_id SEP event_type SEP timestamp SEP canonical_json(data).

    canonical_json sorts keys, so dict insertion order never matters.
    """
    preimage = (
        event_id
        + _HASH_SEP
        + event_type
        + _HASH_SEP
        + str(timestamp)
        + _HASH_SEP
        + canonical_json(data)
    )
    return hashlib.sha256(preimage.encode("utf-8")).hexdigest()


def _make_event_id(counter: int) -> str:
    return "EVT-{:016d}".format(counter)


# ===========================================================================
# SECTION 5 -- DecisionTraceLogger
# ===========================================================================

class DecisionTraceLogger:
    """
    Event-sourced interaction log with deterministic per-event hashes.

    Each instance is independent; the replay harness creates one per
    learner trace and policy. Events are kept in insertion order, which is
    the order the policy engine observes them.

    log_event() raises LoggingError instead of silently discarding an
    event.
    """

    def __init__(self) -> None:
        self._store: List[Event] = []
        self._counter: int = 0

    def log_event(
        self,
        event_type: str,
        data: Dict[str, Any],
        timestamp: int,
        event_id: Optional[str] = None,
    ) -> str:
        """
        Record one event. Return its id.

        Raises
        ------
        LoggingError : event_type unknown, timestamp missing / not an int,
                       or event_id empty.
        """
        if event_type not in EVENT_TYPES:
            raise LoggingError(
                "event_type must be one of {}; got: {!r}".format(sorted(EVENT_TYPES), event_type)
            )
        if timestamp is None:
            raise LoggingError("timestamp must be caller-supplied; None is not permitted")
        if isinstance(timestamp, bool) or not isinstance(timestamp, int):
            raise LoggingError(
                "timestamp must be integer milliseconds; got: {}".format(type(timestamp))
            )
        if event_id is not None and not event_id:
            raise LoggingError("event_id must be a non-empty string when supplied")

        self._counter += 1
        resolved_id = event_id if event_id is not None else _make_event_id(self._counter)
        sanitized = _sanitize_data(data)
        event = Event(
            id=resolved_id,
            type=event_type,
            timestamp=timestamp,
            data=sanitized,
            hash=_compute_hash(resolved_id, event_type, timestamp, sanitized),
        )
        self._store.append(event)
        return resolved_id

    def log_decision(self, decision: DecisionEvent, timestamp: int, event_id: Optional[str] = None) -> str:
        """Record a DecisionEvent. Return its id."""
        if decision is None:
            raise LoggingError("decision must not be None")
        return self.log_event(decision.event_type, decision.to_data(), timestamp, event_id)

    def events(self) -> List[Event]:
        """Snapshot of all events in insertion order."""
        return list(self._store)

    def event_count(self) -> int:
        return len(self._store)

    def trace_digest(self) -> str:
        """
        SHA-256 over the ordered event hashes. Two traces with identical
        events in identical order have identical digests.
        """
        hasher = hashlib.sha256()
        for event in self._store:
            hasher.update(event.hash.encode("ascii"))
            hasher.update(b"\n")
        return hasher.hexdigest()


# ===========================================================================
# SECTION 6 -- EXCEPTIONS
# ===========================================================================

class LoggingError(Exception):
    """
    Raised by DecisionTraceLogger when an invariant is violated.

    Never silently swallowed: a lost event would make the decision trace
    irreproducible.
    """
