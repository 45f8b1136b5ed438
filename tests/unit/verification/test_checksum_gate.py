# tests/unit/verification/test_checksum_gate.py
# Target: sqltutor/verification/checksum_gate.py
# The replay harness subprocess is replaced by a runner that writes a
# replay output with a chosen checksum.

import json
import subprocess
from dataclasses import replace

import pytest

from sqltutor.core.exceptions import ConfigurationError, HarnessError, IntegrityViolationError
from sqltutor.verification import checksum_gate
from sqltutor.verification.checksum_gate import (
    GatePaths,
    Verdict,
    evaluate_gate,
    gate,
    main,
    read_replay_output,
    run_harness_subprocess,
)
from sqltutor.verification.data_models.digest_baseline import ExpectedReplayOutput

CHECKSUM_A = "a" * 64
CHECKSUM_B = "b" * 64


@pytest.fixture
def paths(tmp_path) -> GatePaths:
    inputs = tmp_path / "inputs"
    inputs.mkdir()
    for name in ("fixture.json", "dataset.csv", "constants.py", "engine.py", "harness.py"):
        (inputs / name).write_text(f"content of {name}\n", encoding="utf-8")
    return GatePaths(
        fixture_path=inputs / "fixture.json",
        dataset_path=inputs / "dataset.csv",
        policy_config_path=inputs / "constants.py",
        policy_engine_path=inputs / "engine.py",
        harness_script_path=inputs / "harness.py",
        replay_output_path=tmp_path / "dist" / "replay.json",
        baseline_path=tmp_path / "baseline.json",
        runs_dir=tmp_path / "runs",
    )


def _harness(checksum: str, exit_code: int = 0):
    calls = []

    def _run(paths: GatePaths, timeout):
        calls.append(timeout)
        if exit_code == 0:
            paths.replay_output_path.parent.mkdir(parents=True, exist_ok=True)
            paths.replay_output_path.write_text(json.dumps({
                "policy_only_checksum_sha256": checksum,
                "replay_harness_version": "toy-replay-harness-v2",
                "replay_policy_semantics_version": "orchestrator-aligned-v1",
                "sql_engage_policy_version": "sql-engage-index-v3-hintid-contract",
            }), encoding="utf-8")
        return exit_code

    _run.calls = calls
    return _run


def _fixed_clock():
    return "2026-01-01T00:00:00+00:00"


# =============================================================================
# SECTION 1 -- update / check cycle
# =============================================================================

class TestGate:
    def test_update_then_check_passes(self, paths):
        updated = gate("update", paths, run_harness=_harness(CHECKSUM_A), clock=_fixed_clock)
        assert updated.verdict is Verdict.UPDATED
        assert paths.baseline_path.exists()

        result = gate("check", paths, run_harness=_harness(CHECKSUM_A))
        assert result.verdict is Verdict.PASS
        assert result.exit_code == 0

    def test_baseline_content(self, paths):
        gate("update", paths, run_harness=_harness(CHECKSUM_A), clock=_fixed_clock)
        baseline = json.loads(paths.baseline_path.read_text(encoding="utf-8"))
        assert baseline["schema_version"] == 1
        assert baseline["updated_at"] == "2026-01-01T00:00:00+00:00"
        assert baseline["expected"]["policy_only_checksum_sha256"] == CHECKSUM_A
        assert sorted(baseline["fixture_policy_input_digests_sha256"]) == [
            "fixture",
            "policy_engine",
            "replay_harness",
            "sql_engage_csv",
            "sql_engage_policy",
        ]

    def test_drift_with_unchanged_inputs_fails(self, paths):
        gate("update", paths, run_harness=_harness(CHECKSUM_A))
        result = gate("check", paths, run_harness=_harness(CHECKSUM_B))
        assert result.verdict is Verdict.FAIL
        assert result.exit_code == 1
        assert result.expected_checksum == CHECKSUM_A
        assert result.actual_checksum == CHECKSUM_B

    def test_changed_input_skips_even_when_checksum_differs(self, paths):
        gate("update", paths, run_harness=_harness(CHECKSUM_A))
        paths.fixture_path.write_text("edited fixture\n", encoding="utf-8")
        result = gate("check", paths, run_harness=_harness(CHECKSUM_B))
        assert result.verdict is Verdict.SKIP
        assert result.exit_code == 0
        assert result.changed_inputs == ("fixture",)
        assert "--update" in result.message

    def test_selection_module_edit_skips(self, paths):
        module = paths.fixture_path.parent / "row_selector.py"
        module.write_text("selection v1\n", encoding="utf-8")
        paths = replace(paths, selection_modules=(module,))

        gate("update", paths, run_harness=_harness(CHECKSUM_A))
        module.write_text("selection v2\n", encoding="utf-8")
        result = gate("check", paths, run_harness=_harness(CHECKSUM_B))
        assert result.verdict is Verdict.SKIP
        assert result.changed_inputs == ("sql_engage_row_selector",)

    def test_check_never_writes_baseline(self, paths):
        gate("update", paths, run_harness=_harness(CHECKSUM_A))
        before = paths.baseline_path.read_bytes()
        gate("check", paths, run_harness=_harness(CHECKSUM_B))
        assert paths.baseline_path.read_bytes() == before

    def test_missing_baseline(self, paths):
        with pytest.raises(ConfigurationError) as info:
            gate("check", paths, run_harness=_harness(CHECKSUM_A))
        assert info.value.failure_type_id == "BASELINE_MISSING"
        assert "--update" in str(info.value)

    def test_missing_input_is_configuration_error(self, paths):
        paths.policy_engine_path.unlink()
        with pytest.raises(ConfigurationError) as info:
            gate("update", paths, run_harness=_harness(CHECKSUM_A))
        assert info.value.failure_type_id == "CONFIGURATION_ERROR"
        assert not paths.baseline_path.exists()

    def test_harness_exit_code_propagated_without_verdict(self, paths):
        result = gate("update", paths, run_harness=_harness(CHECKSUM_A, exit_code=3))
        assert result.verdict is None
        assert result.exit_code == 3
        assert not paths.baseline_path.exists()

    def test_timeout_passed_to_runner(self, paths):
        runner = _harness(CHECKSUM_A)
        gate("update", paths, run_harness=runner, timeout=12.5)
        assert runner.calls == [12.5]

    def test_invalid_mode(self, paths):
        with pytest.raises(ValueError):
            gate("verify", paths, run_harness=_harness(CHECKSUM_A))


# =============================================================================
# SECTION 2 -- pure verdict
# =============================================================================

class TestEvaluateGate:
    def _baseline(self, paths, digests):
        from sqltutor.verification.checksum_gate import build_baseline
        return build_baseline(digests, _expected(CHECKSUM_A), "t")

    def test_input_missing_from_baseline_skips(self, paths):
        baseline = self._baseline(paths, {"fixture": "1" * 64})
        result = evaluate_gate({"fixture": "1" * 64, "policy_engine": "2" * 64}, _expected(CHECKSUM_A), baseline)
        assert result.verdict is Verdict.SKIP
        assert result.changed_inputs == ("policy_engine",)

    def test_equal_passes(self, paths):
        baseline = self._baseline(paths, {"fixture": "1" * 64})
        result = evaluate_gate({"fixture": "1" * 64}, _expected(CHECKSUM_A), baseline)
        assert result.verdict is Verdict.PASS


def _expected(checksum) -> ExpectedReplayOutput:
    return ExpectedReplayOutput(
        policy_only_checksum_sha256=checksum,
        replay_harness_version="h",
        replay_policy_semantics_version="s",
        sql_engage_policy_version="p",
    )


# =============================================================================
# SECTION 3 -- harness invocation and replay output
# =============================================================================

class TestHarnessInvocation:
    def test_timeout_becomes_harness_error(self, paths, monkeypatch):
        def _expire(cmd, cwd=None, timeout=None):
            raise subprocess.TimeoutExpired(cmd, timeout)

        monkeypatch.setattr(checksum_gate.subprocess, "run", _expire)
        with pytest.raises(HarnessError) as info:
            run_harness_subprocess(paths, timeout=0.01)
        assert info.value.failure_type_id == "REPLAY_HARNESS_TIMEOUT"

    def test_exit_code_returned(self, paths, monkeypatch):
        seen = {}

        def _run(cmd, cwd=None, timeout=None):
            seen["cmd"] = cmd
            return subprocess.CompletedProcess(cmd, 4)

        monkeypatch.setattr(checksum_gate.subprocess, "run", _run)
        assert run_harness_subprocess(paths) == 4
        assert "sqltutor.verification.replay_harness" in seen["cmd"]
        assert str(paths.fixture_path) in seen["cmd"]


class TestReadReplayOutput:
    def test_missing_file(self, tmp_path):
        with pytest.raises(IntegrityViolationError) as info:
            read_replay_output(tmp_path / "absent.json")
        assert info.value.failure_type_id == "CONTRACT_VIOLATION"

    def test_missing_checksum(self, tmp_path):
        path = tmp_path / "out.json"
        path.write_text("{}", encoding="utf-8")
        with pytest.raises(IntegrityViolationError) as info:
            read_replay_output(path)
        assert info.value.failure_type_id == "CONTRACT_VIOLATION"


class TestGatePaths:
    def test_default_inputs_exist(self):
        inputs = GatePaths.default().input_paths()
        for name, path in inputs.items():
            assert path.is_file(), name
        for name in ("sql_engage_canonicalizer", "sql_engage_dataset_index", "sql_engage_row_selector"):
            assert name in inputs


# =============================================================================
# SECTION 4 -- CLI exit codes
# =============================================================================

def _cli_args(paths: GatePaths, *extra) -> list:
    return [
        "--baseline", str(paths.baseline_path),
        "--runs-dir", str(paths.runs_dir),
        "--replay-output", str(paths.replay_output_path),
        *extra,
    ]


class TestMain:
    def test_harness_exit_code_becomes_process_exit_code(self, paths, monkeypatch):
        monkeypatch.setattr(checksum_gate, "run_harness_subprocess", _harness(CHECKSUM_A, exit_code=3))
        assert main(_cli_args(paths)) == 3
        assert not paths.runs_dir.exists()

    def test_update_then_check_pass(self, paths, monkeypatch, capsys):
        monkeypatch.setattr(checksum_gate, "run_harness_subprocess", _harness(CHECKSUM_A))
        assert main(_cli_args(paths, "--update")) == 0
        assert main(_cli_args(paths)) == 0
        assert "REPLAY GATE RESULT: PASS" in capsys.readouterr().out

    def test_drift_exits_one_with_failure_record(self, paths, monkeypatch):
        monkeypatch.setattr(checksum_gate, "run_harness_subprocess", _harness(CHECKSUM_A))
        assert main(_cli_args(paths, "--update")) == 0

        monkeypatch.setattr(checksum_gate, "run_harness_subprocess", _harness(CHECKSUM_B))
        with pytest.raises(SystemExit) as info:
            main(_cli_args(paths))
        assert info.value.code == 1

        records = list(paths.runs_dir.glob("*_FAIL.json"))
        assert len(records) == 1
        record = json.loads(records[0].read_text(encoding="utf-8"))
        assert record["failure_type_id"] == "DRIFT_DETECTED"
        assert record["location"] == "policy_only_checksum_sha256"
        assert CHECKSUM_B in record["detail"]

    def test_missing_baseline_exits_two(self, paths, monkeypatch):
        monkeypatch.setattr(checksum_gate, "run_harness_subprocess", _harness(CHECKSUM_A))
        with pytest.raises(SystemExit) as info:
            main(_cli_args(paths))
        assert info.value.code == 2
