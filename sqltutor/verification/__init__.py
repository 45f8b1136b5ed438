# sqltutor/verification/__init__.py
# Verification tools: ladder idempotency, replay harness, checksum gate.
#
# ENTRY POINTS:
#   python -m sqltutor.verification.idempotency_verifier
#   python -m sqltutor.verification.replay_harness
#   python -m sqltutor.verification.checksum_gate [--update]
#   python -m sqltutor.verification.index_check
#
# Only leaf components are imported here; the entry-point modules are
# imported on demand so that "python -m" runs them exactly once.

from .harness_version import (
    CONVERTER_POLICY_VERSION,
    POLICY_SEMANTICS_VERSION,
    REPLAY_HARNESS_VERSION,
    REPLAY_POLICY_SEMANTICS_VERSION,
    BASELINE_SCHEMA_VERSION,
    HARNESS_VERSION,
)
from .artifact_validator import ArtifactValidator
from .digest_comparator import compare_input_digests
from .failure_handler import FailureHandler

__all__ = [
    # Version constants
    "CONVERTER_POLICY_VERSION",
    "POLICY_SEMANTICS_VERSION",
    "REPLAY_HARNESS_VERSION",
    "REPLAY_POLICY_SEMANTICS_VERSION",
    "BASELINE_SCHEMA_VERSION",
    "HARNESS_VERSION",
    # Components
    "ArtifactValidator",
    "compare_input_digests",
    "FailureHandler",
]
