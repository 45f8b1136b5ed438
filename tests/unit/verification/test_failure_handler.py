# tests/unit/verification/test_failure_handler.py
# Target: sqltutor/verification/failure_handler.py,
#         sqltutor/verification/data_models/failure_record.py

import json

import pytest

from sqltutor.core.exceptions import IntegrityViolationError
from sqltutor.verification.data_models.failure_record import (
    FAILURE_TYPES,
    exit_code_for,
    failure_type_of,
)
from sqltutor.verification.failure_handler import FailureHandler, make_run_id
from sqltutor.verification.harness_version import HARNESS_VERSION


class _ExitRecorder:
    def __init__(self):
        self.codes = []

    def __call__(self, code):
        self.codes.append(code)


@pytest.fixture
def recorder():
    return _ExitRecorder()


class TestRegistry:
    @pytest.mark.parametrize("failure_type, code", [
        ("DRIFT_DETECTED", 1),
        ("IDEMPOTENCY_BREACH", 1),
        ("BASELINE_MISSING", 2),
        ("FALLBACK_SUBTYPE_MISSING", 2),
        ("DATA_CORRUPTION", 3),
        ("REPLAY_HARNESS_TIMEOUT", 4),
    ])
    def test_exit_codes(self, failure_type, code):
        assert exit_code_for(failure_type) == code

    def test_unknown_maps_to_four(self):
        assert exit_code_for("NOT_A_TYPE") == 4

    def test_codes_in_range(self):
        assert set(FAILURE_TYPES.values()) == {1, 2, 3, 4}

    def test_failure_type_of_prefix(self):
        assert failure_type_of("DATA_CORRUPTION: bad bytes") == "DATA_CORRUPTION"
        assert failure_type_of("something broke") == "HARNESS_INTERNAL_ERROR"


class TestFailureHandler:
    def test_writes_record_and_exits(self, tmp_path, recorder, capsys):
        fh = FailureHandler(tmp_path / "runs", "RUN-test-1", "replay-gate", exit_fn=recorder)
        fh.handle("DRIFT_DETECTED", "checksum changed", location="policy_only_checksum_sha256")

        assert recorder.codes == [1]
        record = json.loads((tmp_path / "runs" / "RUN-test-1_FAIL.json").read_text(encoding="utf-8"))
        assert record["failure_type_id"] == "DRIFT_DETECTED"
        assert record["exit_code"] == 1
        assert record["tool"] == "replay-gate"
        assert record["location"] == "policy_only_checksum_sha256"
        assert record["harness_version"] == HARNESS_VERSION
        assert "REPLAY-GATE RESULT: FAIL" in capsys.readouterr().err

    def test_from_tutor_error_uses_context(self, tmp_path, recorder):
        fh = FailureHandler(tmp_path, "RUN-2", "hintwise-verify", exit_fn=recorder)
        fh.handle_from_exception(IntegrityViolationError(
            "bad level", context="challenge_map[0].hint_levels[1].level",
        ))
        record = json.loads((tmp_path / "RUN-2_FAIL.json").read_text(encoding="utf-8"))
        assert record["failure_type_id"] == "LADDER_INVARIANT_VIOLATION"
        assert record["location"] == "challenge_map[0].hint_levels[1].level"
        assert recorder.codes == [1]

    def test_from_plain_exception_uses_message_prefix(self, tmp_path, recorder):
        fh = FailureHandler(tmp_path, "RUN-3", "tool", exit_fn=recorder)
        fh.handle_from_exception(RuntimeError("CONTRACT_VIOLATION: missing field"))
        assert recorder.codes == [3]

    def test_unwritable_runs_dir_exits_four(self, tmp_path, recorder, capsys):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("", encoding="utf-8")
        fh = FailureHandler(blocker, "RUN-4", "tool", exit_fn=recorder)
        fh.handle("DRIFT_DETECTED", "x")
        assert recorder.codes == [4]
        assert "HARNESS_INTERNAL_ERROR" in capsys.readouterr().err

    def test_default_exit_is_sys_exit(self, tmp_path):
        fh = FailureHandler(tmp_path, "RUN-5", "tool")
        with pytest.raises(SystemExit) as info:
            fh.handle("BASELINE_MISSING", "no baseline")
        assert info.value.code == 2

    def test_run_id(self):
        run_id = make_run_id("replay-gate")
        assert run_id.startswith("RUN-replay-gate-")
        assert FailureHandler("runs", run_id, "t").run_id == run_id
