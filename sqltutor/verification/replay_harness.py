# sqltutor/verification/replay_harness.py
# Replay Harness -- deterministic replay of learner attempt traces.
#
# Standard invocation:
#   python -m sqltutor.verification.replay_harness \
#       [--fixture sqltutor/data/toy_replay_fixture.json] \
#       [--dataset sqltutor/data/sql_engage_dataset.csv] \
#       [--output dist/replay/toy-replay-output.json]
#
# Every fixture trace is replayed through every policy in REPLAY_POLICIES.
# Decisions are taken at attempt boundaries only; synthetic hint_view and
# explanation_view events are logged so the next decision sees them.
#
# POLICY-ONLY CHECKSUM
#   sha256(canonical_json(policy_results)) with every "hint_text" removed.
#   Hint text may come from any HintTextProvider (replay mode uses the
#   deterministic ladder); the checksum and the decision trace must not
#   depend on it.
#
# EXIT CODES:
#   0  -- output written.
#   non-zero -- FAILURE_TYPES code of the TutorError raised.
#
# No wall clock, no randomness: all timestamps are
# base_timestamp_ms + offset_ms from the fixture.

import argparse
import copy
import json
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from sqltutor.core.canonicalizer import canonicalize, require_fallback
from sqltutor.core.dataset_index import SubtypeIndex, load_dataset
from sqltutor.core.exceptions import IntegrityViolationError, TutorError
from sqltutor.core.integrity_layer import canonical_json, pretty_json, sha256_hex
from sqltutor.core.row_selector import deterministic_id, select_anchor_row
from sqltutor.core.trace_logger import DecisionEvent, DecisionTraceLogger
from sqltutor.policy.engine import (
    analyze_context,
    auto_escalation_state,
    select_decision,
    serialize_thresholds,
    thresholds_for,
)
from sqltutor.policy.hint_text import HintTextProvider, deterministic_hint_text
from sqltutor.utils.constants import (
    MAX_HINT_LEVEL,
    REPLAY_POLICIES,
    SQL_ENGAGE_POLICY_VERSION,
)
from sqltutor.utils.paths import (
    REPLAY_FIXTURE_PATH,
    REPLAY_OUTPUT_PATH,
    SQL_ENGAGE_CSV_PATH,
    display_path,
)
from sqltutor.verification.data_models.failure_record import exit_code_for
from sqltutor.verification.harness_version import (
    REPLAY_HARNESS_VERSION,
    REPLAY_POLICY_SEMANTICS_VERSION,
)

OUTCOMES = ("error", "success")

INTENTIONAL_DIVERGENCES = (
    {
        "id": "replay-001-note-write-is-not-mutating",
        "description": (
            "Replay logs deterministic note_id recommendations for add_to_textbook "
            "decisions but does not mutate textbook state."
        ),
    },
    {
        "id": "replay-002-attempt-boundary-evaluation",
        "description": (
            "Replay computes decisions only at attempt boundaries from fixture traces, "
            "then emits synthetic hint/explanation events for deterministic context updates."
        ),
    },
)


# =============================================================================
# SECTION 1 -- PATHS AND FIXTURE
# =============================================================================

@dataclass(frozen=True)
class ReplayPaths:
    fixture_path: Path
    dataset_path: Path
    output_path:  Path

    @classmethod
    def default(cls) -> "ReplayPaths":
        return cls(
            fixture_path=REPLAY_FIXTURE_PATH,
            dataset_path=SQL_ENGAGE_CSV_PATH,
            output_path=REPLAY_OUTPUT_PATH,
        )


@dataclass(frozen=True)
class Attempt:
    attempt_id:    str
    offset_ms:     int
    outcome:       str
    error_subtype: str = ""


@dataclass(frozen=True)
class LearnerTrace:
    learner_id: str
    problem_id: str
    attempts:   Tuple[Attempt, ...]

    @property
    def hint_seed(self) -> str:
        return f"{self.learner_id}:{self.problem_id}"


@dataclass(frozen=True)
class ReplayFixture:
    fixture_id:        str
    base_timestamp_ms: int
    learners:          Tuple[LearnerTrace, ...]

    @property
    def attempt_count(self) -> int:
        return sum(len(trace.attempts) for trace in self.learners)


@dataclass(frozen=True)
class ReplayPolicy:
    id:             str
    strategy:       str
    policy_version: str


def _corrupt(detail: str, location: str) -> IntegrityViolationError:
    return IntegrityViolationError(
        f"replay fixture {location}: {detail}",
        failure_type_id="DATA_CORRUPTION",
        context=location,
    )


def _require(mapping: Dict[str, Any], key: str, kind: type, location: str) -> Any:
    value = mapping.get(key) if isinstance(mapping, dict) else None
    if isinstance(value, bool) or not isinstance(value, kind):
        raise _corrupt(f"'{key}' must be {kind.__name__}, got {value!r}", location)
    return value


def _optional_str(mapping: Dict[str, Any], key: str, location: str) -> str:
    value = mapping.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise _corrupt(f"'{key}' must be str or null, got {value!r}", location)
    return value


def parse_fixture(raw: Dict[str, Any]) -> ReplayFixture:
    """
    Build a ReplayFixture from its JSON form (camelCase keys).

    Raises IntegrityViolationError (DATA_CORRUPTION) naming the first
    malformed field.
    """
    learners: List[LearnerTrace] = []
    for l_idx, learner in enumerate(_require(raw, "learners", list, "root")):
        l_loc = f"learners[{l_idx}]"
        attempts: List[Attempt] = []
        for a_idx, attempt in enumerate(_require(learner, "attempts", list, l_loc)):
            a_loc = f"{l_loc}.attempts[{a_idx}]"
            outcome = _require(attempt, "outcome", str, a_loc)
            if outcome not in OUTCOMES:
                raise _corrupt(f"outcome must be one of {OUTCOMES}, got {outcome!r}", a_loc)
            attempts.append(Attempt(
                attempt_id=_require(attempt, "attemptId", str, a_loc),
                offset_ms=_require(attempt, "offsetMs", int, a_loc),
                outcome=outcome,
                error_subtype=_optional_str(attempt, "errorSubtype", a_loc),
            ))
        learners.append(LearnerTrace(
            learner_id=_require(learner, "learnerId", str, l_loc),
            problem_id=_require(learner, "problemId", str, l_loc),
            attempts=tuple(attempts),
        ))

    return ReplayFixture(
        fixture_id=_require(raw, "fixtureId", str, "root"),
        base_timestamp_ms=_require(raw, "baseTimestampMs", int, "root"),
        learners=tuple(learners),
    )


def load_fixture(path: Path) -> ReplayFixture:
    path = Path(path)
    with open(path, "r", encoding="utf-8") as fh:
        try:
            raw = json.load(fh)
        except json.JSONDecodeError as exc:
            raise _corrupt(f"not valid JSON ({exc})", str(path)) from exc
    return parse_fixture(raw)


def default_policies() -> Tuple[ReplayPolicy, ...]:
    return tuple(ReplayPolicy(**policy) for policy in REPLAY_POLICIES)


# =============================================================================
# SECTION 2 -- REPLAY
# =============================================================================

@dataclass
class PolicyReplay:
    """Result of replaying one policy: the JSON result and one trace per learner trace."""
    result: Dict[str, Any]
    traces: List[Tuple[str, DecisionTraceLogger]]


def _intervention(
    policy:    ReplayPolicy,
    trace:     LearnerTrace,
    attempt:   Attempt,
    timestamp: int,
    sql_engage_policy_version: str,
) -> Dict[str, Any]:
    return {
        "event_id": attempt.attempt_id,
        "learner_id": trace.learner_id,
        "problem_id": trace.problem_id,
        "timestamp": timestamp,
        "policy_id": policy.id,
        "strategy": policy.strategy,
        "policy_version": policy.policy_version,
        "knowledge_policy_version": sql_engage_policy_version,
    }


def _context_inputs(context, error_subtype: Optional[str]) -> Dict[str, Any]:
    return {
        "retry_count": context.retry_count,
        "hint_count": context.current_hint_level,
        "time_spent_ms": context.time_spent_ms,
        "error_subtype": error_subtype,
    }


def replay_policy(
    policy:        ReplayPolicy,
    fixture:       ReplayFixture,
    index:         SubtypeIndex,
    hint_provider: HintTextProvider = deterministic_hint_text,
    sql_engage_policy_version: str = SQL_ENGAGE_POLICY_VERSION,
) -> PolicyReplay:
    """Replay every fixture trace through one policy."""
    thresholds = thresholds_for(policy.strategy)
    canonical_set = index.canonical_set()
    interventions: List[Dict[str, Any]] = []
    traces: List[Tuple[str, DecisionTraceLogger]] = []
    summary = {
        "total_events": 0,
        "hint_shown": 0,
        "escalations": 0,
        "notes_recommended": 0,
        "successful_attempts": 0,
    }

    for trace in fixture.learners:
        logger = DecisionTraceLogger()
        traces.append((trace.hint_seed, logger))

        for attempt in trace.attempts:
            summary["total_events"] += 1
            timestamp = fixture.base_timestamp_ms + attempt.offset_ms
            record = _intervention(policy, trace, attempt, timestamp, sql_engage_policy_version)

            if attempt.outcome == "success":
                logger.log_event(
                    "execution",
                    {"problem_id": trace.problem_id, "successful": True},
                    timestamp,
                    event_id=attempt.attempt_id,
                )
                context = analyze_context(logger.events(), timestamp)
                summary["successful_attempts"] += 1
                record.update({
                    "rule_fired": "terminal.success",
                    "reasoning": "Execution succeeded; no intervention emitted.",
                    "inputs": _context_inputs(context, None),
                    "outputs": {
                        "action": "no_intervention",
                        "hint_level": None,
                        "hint_text": None,
                        "sql_engage_subtype": None,
                        "sql_engage_row_id": None,
                        "explanation_id": None,
                        "note_id": None,
                    },
                })
                interventions.append(record)
                continue

            subtype = canonicalize(attempt.error_subtype, canonical_set)
            logger.log_event(
                "error",
                {"problem_id": trace.problem_id, "error_subtype_id": subtype},
                timestamp,
                event_id=attempt.attempt_id,
            )

            events = logger.events()
            context = analyze_context(events, timestamp)
            selection = select_decision(context, thresholds, auto_escalation_state(events))

            hint_level = hint_text = row_id = explanation_id = note_id = None
            decision_seed = (
                f"{policy.id}|{trace.learner_id}|{trace.problem_id}|{attempt.attempt_id}|{subtype}"
            )

            if selection.decision == "show_hint":
                hint_level = min(context.current_hint_level + 1, MAX_HINT_LEVEL)
                row = select_anchor_row(index, subtype, trace.hint_seed)
                hint_text = hint_provider(subtype, hint_level, row)
                row_id = row.row_id if row is not None else None
                summary["hint_shown"] += 1
                logger.log_decision(
                    DecisionEvent(
                        event_type="hint_view",
                        problem_id=trace.problem_id,
                        rule_fired=selection.rule_fired,
                        hint_level=hint_level,
                        sql_engage_subtype=subtype,
                        sql_engage_row_id=row_id,
                        policy_version=sql_engage_policy_version,
                    ),
                    timestamp + 1,
                    event_id=f"hint-{policy.id}-{attempt.attempt_id}",
                )
            elif selection.decision == "show_explanation":
                explanation_id = deterministic_id("explain", decision_seed)
                summary["escalations"] += 1
                logger.log_decision(
                    DecisionEvent(
                        event_type="explanation_view",
                        problem_id=trace.problem_id,
                        rule_fired=selection.rule_fired,
                        sql_engage_subtype=subtype,
                        policy_version=sql_engage_policy_version,
                        extra={"error_subtype_id": subtype},
                    ),
                    timestamp + 1,
                    event_id=f"explain-{policy.id}-{attempt.attempt_id}",
                )
            elif selection.decision == "add_to_textbook":
                note_id = deterministic_id("note", decision_seed)
                summary["notes_recommended"] += 1

            record.update({
                "thresholds": serialize_thresholds(thresholds),
                "rule_fired": selection.rule_fired,
                "reasoning": selection.reasoning,
                "inputs": _context_inputs(context, subtype),
                "outputs": {
                    "action": selection.decision,
                    "hint_level": hint_level,
                    "hint_text": hint_text,
                    "sql_engage_subtype": subtype,
                    "sql_engage_row_id": row_id,
                    "explanation_id": explanation_id,
                    "note_id": note_id,
                },
            })
            interventions.append(record)

    return PolicyReplay(
        result={
            "policy_id": policy.id,
            "strategy": policy.strategy,
            "policy_version": policy.policy_version,
            "decisions": interventions,
            "summary": summary,
        },
        traces=traces,
    )


# =============================================================================
# SECTION 3 -- POLICY-ONLY CHECKSUM AND OUTPUT
# =============================================================================

def strip_hint_text(value: Any) -> Any:
    """Deep copy of value with every "hint_text" key removed."""
    if isinstance(value, dict):
        return {k: strip_hint_text(v) for k, v in value.items() if k != "hint_text"}
    if isinstance(value, list):
        return [strip_hint_text(v) for v in value]
    return copy.deepcopy(value)


def policy_only_checksum(policy_results: List[Dict[str, Any]]) -> str:
    return sha256_hex(canonical_json(strip_hint_text(policy_results)))


def build_replay_output(
    fixture:       ReplayFixture,
    index:         SubtypeIndex,
    hint_provider: HintTextProvider = deterministic_hint_text,
    policies:      Optional[Tuple[ReplayPolicy, ...]] = None,
) -> Dict[str, Any]:
    """Replay all policies and assemble the exported document."""
    policies = policies if policies is not None else default_policies()
    replays = [replay_policy(policy, fixture, index, hint_provider) for policy in policies]
    results = [replay.result for replay in replays]
    return {
        "fixture_id": fixture.fixture_id,
        "replay_harness_version": REPLAY_HARNESS_VERSION,
        "replay_policy_semantics_version": REPLAY_POLICY_SEMANTICS_VERSION,
        "semantic_alignment": {
            "aligned_with": {
                "decision_layer": "sqltutor/policy/engine.py",
                "hint_selection": "sqltutor/core/row_selector.py#select_anchor_row",
                "sql_engage_policy_stamp": "sqltutor/utils/constants.py#SQL_ENGAGE_POLICY_VERSION",
            },
            "intentional_divergences": [dict(d) for d in INTENTIONAL_DIVERGENCES],
        },
        "sql_engage_policy_version": SQL_ENGAGE_POLICY_VERSION,
        "input_trace_count": fixture.attempt_count,
        "policy_results": results,
        "decision_traces": [
            {
                "policy_id": policy.id,
                "trace_seed": seed,
                "event_count": logger.event_count(),
                "trace_digest_sha256": logger.trace_digest(),
            }
            for policy, replay in zip(policies, replays)
            for seed, logger in replay.traces
        ],
        "policy_only_checksum_sha256": policy_only_checksum(results),
    }


def run_replay(paths: ReplayPaths, hint_provider: HintTextProvider = deterministic_hint_text) -> Tuple[Dict[str, Any], str]:
    """
    Load inputs, replay, and write the output file.

    Returns (output document, sha256 of the written bytes).
    """
    index = load_dataset(paths.dataset_path)
    require_fallback(index)
    fixture = load_fixture(paths.fixture_path)

    output = build_replay_output(fixture, index, hint_provider)
    text = pretty_json(output)
    output_path = Path(paths.output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", encoding="utf-8", newline="\n") as fh:
        fh.write(text)
    return output, sha256_hex(text)


# =============================================================================
# SECTION 4 -- CLI
# =============================================================================

def _parse_args(argv: Optional[List[str]]) -> argparse.Namespace:
    defaults = ReplayPaths.default()
    parser = argparse.ArgumentParser(
        description="Replay fixture learner traces through the tutoring policies.",
        prog="python -m sqltutor.verification.replay_harness",
    )
    parser.add_argument("--fixture", default=str(defaults.fixture_path))
    parser.add_argument("--dataset", default=str(defaults.dataset_path))
    parser.add_argument("--output", default=str(defaults.output_path))
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    paths = ReplayPaths(
        fixture_path=Path(args.fixture),
        dataset_path=Path(args.dataset),
        output_path=Path(args.output),
    )
    try:
        output, file_sha = run_replay(paths)
    except TutorError as exc:
        print(f"REPLAY HARNESS FAILED: {exc}", file=sys.stderr)
        return exit_code_for(exc.failure_type_id)

    print(f"Replay export written: {display_path(paths.output_path)}")
    print(f"Replay export sha256: {file_sha}")
    print(f"Policy-only checksum: {output['policy_only_checksum_sha256']}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
