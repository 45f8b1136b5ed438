# sqltutor/verification/data_models/failure_record.py
# FailureRecord data class and failure type registry.

from dataclasses import dataclass


# ---------------------------------------------------------------------------
# FAILURE TYPE REGISTRY
# ---------------------------------------------------------------------------
# Exit code mapping:
#   Code 1 -- drift, idempotency and artifact invariant violations
#   Code 2 -- configuration and missing-input failures
#   Code 3 -- DATA_CORRUPTION, CONTRACT_VIOLATION
#   Code 4 -- harness / subprocess internal errors

FAILURE_TYPES = {
    # Exit Code 1
    "DRIFT_DETECTED":             1,
    "IDEMPOTENCY_BREACH":         1,
    "LOGGED_DIGEST_MISMATCH":     1,
    "LADDER_INVARIANT_VIOLATION": 1,
    "DUPLICATE_CHALLENGE_KEY":    1,
    "VERSION_MISMATCH":           1,
    "SELECTION_MISSING":          1,
    "CONCEPT_MAP_INCOMPLETE":     1,
    # Exit Code 2
    "CONFIGURATION_ERROR":        2,
    "DATASET_EMPTY":              2,
    "FALLBACK_SUBTYPE_MISSING":   2,
    "BASELINE_MISSING":           2,
    "INTEGRITY_FAILURE":          2,
    # Exit Code 3
    "DATA_CORRUPTION":            3,
    "CONTRACT_VIOLATION":         3,
    # Exit Code 4
    "HARNESS_INTERNAL_ERROR":     4,
    "REPLAY_HARNESS_TIMEOUT":     4,
}

UNKNOWN_FAILURE_EXIT_CODE: int = 4


def exit_code_for(failure_type_id: str) -> int:
    """Registry exit code; unknown types map to 4."""
    return FAILURE_TYPES.get(failure_type_id, UNKNOWN_FAILURE_EXIT_CODE)


def failure_type_of(message: str) -> str:
    """
    Parse the failure type from a "FAILURE_TYPE_ID: detail" message.

    Returns HARNESS_INTERNAL_ERROR when the message carries no known prefix.
    """
    for known_type in FAILURE_TYPES:
        if message.startswith(known_type + ":") or message.startswith(known_type + " "):
            return known_type
    return "HARNESS_INTERNAL_ERROR"


@dataclass
class FailureRecord:
    """
    Failure record written to disk by the FailureHandler on any hard failure.

    All fields are mandatory. Written as JSON to the runs directory.
    The record is write-once.

    Fields:
      failure_type_id -- Key from FAILURE_TYPES registry.
      exit_code       -- Integer exit code (1-4).
      tool            -- Tool that failed, e.g. "checksum_gate".
      location        -- Offending record / field, e.g. "challenge_map[2].hint_levels[1]".
                         Empty if not applicable.
      detected_at_iso -- UTC ISO-8601 timestamp of failure detection.
      run_id          -- Run identifier for this invocation.
      harness_version -- HARNESS_VERSION at time of failure.
      detail          -- Human-readable failure description.
    """
    failure_type_id: str
    exit_code:       int
    tool:            str
    location:        str
    detected_at_iso: str
    run_id:          str
    harness_version: str
    detail:          str

    def to_dict(self) -> dict:
        return {
            "failure_type_id": self.failure_type_id,
            "exit_code":       self.exit_code,
            "tool":            self.tool,
            "location":        self.location,
            "detected_at_iso": self.detected_at_iso,
            "run_id":          self.run_id,
            "harness_version": self.harness_version,
            "detail":          self.detail,
        }
