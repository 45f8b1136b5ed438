# sqltutor/verification/harness_version.py
# Version stamps. Single authoritative definition.
# Referenced by the ladder converter, the artifact validator, the replay
# harness, the checksum gate and failure_handler.py.
#
# Each stamp is bumped independently:
#   CONVERTER_POLICY_VERSION        -- the ladder transformation changed
#   POLICY_SEMANTICS_VERSION        -- the meaning of hint level order changed
#   REPLAY_HARNESS_VERSION          -- replay output format changed
#   REPLAY_POLICY_SEMANTICS_VERSION -- replayed decision semantics changed
# SQL_ENGAGE_POLICY_VERSION lives in sqltutor/utils/constants.py next to
# the selection rules it versions.

CONVERTER_POLICY_VERSION: str = "hintwise-converter-v1"
POLICY_SEMANTICS_VERSION: str = "hintwise-level-order-v1"

REPLAY_HARNESS_VERSION:          str = "toy-replay-harness-v2"
REPLAY_POLICY_SEMANTICS_VERSION: str = "orchestrator-aligned-v1"

# Digest baseline file format.
BASELINE_SCHEMA_VERSION: int = 1

# Stamped into every FailureRecord.
HARNESS_VERSION: str = "1.0.0"
