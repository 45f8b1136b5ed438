# =============================================================================
# sqltutor -- EXCEPTION HIERARCHY
# File:   sqltutor/core/exceptions.py
# =============================================================================
#
# SCOPE
# -----
# Exception hierarchy shared by the dataset index, the ladder converter and
# the verification tools. All exceptions are pure value objects: no side
# effects, no I/O, no console output.
#
# EXCEPTION HIERARCHY
# -------------------
#   TutorError(RuntimeError)                  -- base; never raised directly
#     ConfigurationError(TutorError)          -- missing column / fallback / baseline
#     IntegrityViolationError(TutorError)     -- broken artifact invariant
#     DriftDetectedError(TutorError)          -- output changed, inputs did not
#     HarnessError(TutorError)                -- tool subprocess failed / timed out
#
# MESSAGE CONTRACT
# ----------------
# Every message starts with "<FAILURE_TYPE_ID>: " so that FailureHandler can
# route it to an exit code (see sqltutor/verification/data_models/failure_record.py).
# The remainder always names the offending record (subtype, row, challenge
# key, digest values). Identical inputs produce an identical message.
#
# =============================================================================

from __future__ import annotations

from typing import Any, Optional


class TutorError(RuntimeError):
    """
    Base class for all sqltutor failures.

    Never raised directly. Use a concrete subclass.

    Attributes:
        failure_type_id: Registry key, e.g. "FALLBACK_SUBTYPE_MISSING".
                         Always the first word of the message.
        detail:          Human-readable description without the prefix.
        context:         Identifying context of the offending record, or
                         None if the failure is not record-local.
    """

    default_failure_type: str = "HARNESS_INTERNAL_ERROR"

    def __init__(
        self,
        detail:          str,
        failure_type_id: str = "",
        context:         Any = None,
    ) -> None:
        if not isinstance(detail, str) or not detail:
            raise ValueError("TutorError: detail must be a non-empty string")
        failure_type_id = failure_type_id or self.default_failure_type
        super().__init__(failure_type_id + ": " + detail)
        self.failure_type_id: str = failure_type_id
        self.detail:          str = detail
        self.context:         Any = context

    def __repr__(self) -> str:
        return (
            self.__class__.__name__
            + "(failure_type_id=" + repr(self.failure_type_id)
            + ", detail=" + repr(self.detail)
            + ", context=" + repr(self.context)
            + ")"
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TutorError):
            return NotImplemented
        return (
            type(self) is type(other)
            and self.failure_type_id == other.failure_type_id
            and self.detail == other.detail
            and self.context == other.context
        )

    __hash__ = RuntimeError.__hash__


class ConfigurationError(TutorError):
    """
    Static configuration or required input is unusable.

    Covers a dataset without the required columns or rows, a fallback
    subtype absent from the dataset, and a missing digest baseline.
    Never retried. The message carries a remediation hint where one exists.
    """

    default_failure_type = "CONFIGURATION_ERROR"


class IntegrityViolationError(TutorError):
    """
    A produced artifact breaks a structural invariant, or a tool's
    self-reported digest disagrees with the bytes on disk.

    context is the offending location, e.g. "challenge_map[3].hint_levels[1]".
    """

    default_failure_type = "LADDER_INVARIANT_VIOLATION"


class DriftDetectedError(TutorError):
    """
    Policy output changed although every recorded input digest matched.

    Raised by the checksum gate CLI on a FAIL verdict. context names the
    drifted field; the message carries the expected and actual checksums.
    """

    default_failure_type = "DRIFT_DETECTED"


class HarnessError(TutorError):
    """
    A tool subprocess (converter, replay harness) failed or timed out.

    exit_code is the subprocess exit code, or None for a timeout. The
    checksum gate propagates it verbatim; the idempotency verifier reports
    it as HARNESS_INTERNAL_ERROR with the captured output.
    """

    default_failure_type = "HARNESS_INTERNAL_ERROR"

    def __init__(
        self,
        detail:          str,
        failure_type_id: str = "",
        context:         Any = None,
        exit_code:       Optional[int] = None,
    ) -> None:
        super().__init__(detail, failure_type_id, context)
        self.exit_code: Optional[int] = exit_code
