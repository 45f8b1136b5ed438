#!/usr/bin/env python3
# =============================================================================
# sqltutor -- REPLAY CHECKSUM GATE
# File:   sqltutor/verification/checksum_gate.py
# =============================================================================
#
# PURPOSE
# -------
# CI gate against unintended drift in replayed policy decisions.
#
#   python -m sqltutor.verification.checksum_gate            # check
#   python -m sqltutor.verification.checksum_gate --update   # rewrite baseline
#
# STATE MACHINE
# -------------
#   1. Run the replay harness as a subprocess. Non-zero exit -> return that
#      exit code unchanged, no verdict. Timeout -> REPLAY_HARNESS_TIMEOUT.
#   2. Digest every declared input (fixture, sql_engage_csv,
#      sql_engage_policy, policy_engine, replay_harness, and the
#      sql_engage_canonicalizer / _dataset_index / _row_selector modules).
#   3. update: write a new baseline                        -> UPDATED
#   4. check:  load the baseline (BASELINE_MISSING if absent)
#        any input digest differs                          -> SKIP
#        all match, checksum equal                         -> PASS
#        all match, checksum differs                       -> FAIL (DRIFT_DETECTED)
#
# Exit codes:
#   0 -- PASS, SKIP, UPDATED.
#   1 -- FAIL (drift with unchanged inputs).
#   other -- replay harness exit code, or FAILURE_TYPES code.
#
# compare_input_digests() and evaluate_gate() are pure. Baseline file I/O
# is confined to storage/baseline_store.py.
# =============================================================================

from __future__ import annotations

import argparse
import json
import subprocess
import sys
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional, Tuple

from sqltutor.core.exceptions import (
    ConfigurationError,
    DriftDetectedError,
    HarnessError,
    IntegrityViolationError,
    TutorError,
)
from sqltutor.core.integrity_layer import digest_inputs
from sqltutor.utils.paths import (
    BASELINE_PATH,
    PACKAGE_ROOT,
    REPLAY_FIXTURE_PATH,
    REPLAY_OUTPUT_PATH,
    REPO_ROOT,
    RUNS_DIR,
    SQL_ENGAGE_CSV_PATH,
    display_path,
)
from sqltutor.verification.data_models.digest_baseline import (
    BASELINE_DESCRIPTION,
    DigestBaseline,
    ExpectedReplayOutput,
)
from sqltutor.verification.data_models.failure_record import exit_code_for
from sqltutor.verification.digest_comparator import compare_input_digests
from sqltutor.verification.failure_handler import FailureHandler, make_run_id
from sqltutor.verification.harness_version import BASELINE_SCHEMA_VERSION
from sqltutor.verification.storage.baseline_store import (
    UPDATE_COMMAND,
    load_baseline,
    write_baseline,
)

MODES = ("check", "update")


# =============================================================================
# SECTION 1 -- DATA TYPES
# =============================================================================

class Verdict(Enum):
    PASS    = "PASS"
    FAIL    = "FAIL"
    SKIP    = "SKIP"
    UPDATED = "UPDATED"


@dataclass(frozen=True)
class GatePaths:
    """
    Every file the gate touches. The five *_path inputs named in
    input_paths() are the digested policy-relevant inputs, together with
    selection_modules (the dataset parsing, canonicalization and row
    selection code), each keyed "sql_engage_<module stem>".
    """
    fixture_path:        Path
    dataset_path:        Path
    policy_config_path:  Path
    policy_engine_path:  Path
    harness_script_path: Path
    replay_output_path:  Path
    baseline_path:       Path
    runs_dir:            Path
    selection_modules:   Tuple[Path, ...] = ()

    @classmethod
    def default(cls) -> "GatePaths":
        return cls(
            fixture_path=REPLAY_FIXTURE_PATH,
            dataset_path=SQL_ENGAGE_CSV_PATH,
            policy_config_path=PACKAGE_ROOT / "utils" / "constants.py",
            policy_engine_path=PACKAGE_ROOT / "policy" / "engine.py",
            harness_script_path=PACKAGE_ROOT / "verification" / "replay_harness.py",
            replay_output_path=REPLAY_OUTPUT_PATH,
            baseline_path=BASELINE_PATH,
            runs_dir=RUNS_DIR,
            selection_modules=tuple(
                PACKAGE_ROOT / "core" / name
                for name in ("canonicalizer.py", "dataset_index.py", "row_selector.py")
            ),
        )

    def input_paths(self) -> Dict[str, Path]:
        paths = {
            "fixture":           self.fixture_path,
            "sql_engage_csv":    self.dataset_path,
            "sql_engage_policy": self.policy_config_path,
            "policy_engine":     self.policy_engine_path,
            "replay_harness":    self.harness_script_path,
        }
        for module in self.selection_modules:
            paths[f"sql_engage_{module.stem}"] = module
        return paths


@dataclass(frozen=True)
class GateResult:
    """
    verdict is None only when the replay harness failed; exit_code then
    carries the harness exit code verbatim.
    """
    verdict:           Optional[Verdict]
    exit_code:         int
    message:           str
    input_digests:     Dict[str, str] = field(default_factory=dict)
    expected_checksum: Optional[str] = None
    actual_checksum:   Optional[str] = None
    changed_inputs:    Tuple[str, ...] = ()


HarnessRunner = Callable[[GatePaths, Optional[float]], int]


# =============================================================================
# SECTION 2 -- REPLAY HARNESS INVOCATION
# =============================================================================

def run_harness_subprocess(paths: GatePaths, timeout: Optional[float] = None) -> int:
    """
    Run the replay harness with inherited stdout/stderr. Return its exit code.

    Raises HarnessError (REPLAY_HARNESS_TIMEOUT) if timeout expires; the
    subprocess is killed. No retry.
    """
    cmd = [
        sys.executable, "-m", "sqltutor.verification.replay_harness",
        "--fixture", str(paths.fixture_path),
        "--dataset", str(paths.dataset_path),
        "--output", str(paths.replay_output_path),
    ]
    try:
        proc = subprocess.run(cmd, cwd=str(REPO_ROOT), timeout=timeout)
    except subprocess.TimeoutExpired as exc:
        raise HarnessError(
            f"replay harness did not finish within {timeout}s and was aborted",
            failure_type_id="REPLAY_HARNESS_TIMEOUT",
            context=" ".join(cmd),
        ) from exc
    return proc.returncode


def read_replay_output(path: Path) -> ExpectedReplayOutput:
    """Checksum and version fields of the replay output at path."""
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            output = json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        raise IntegrityViolationError(
            f"Cannot read replay output {path}: {exc}",
            failure_type_id="CONTRACT_VIOLATION",
            context=str(path),
        ) from exc
    if not isinstance(output, dict) or not output.get("policy_only_checksum_sha256"):
        raise IntegrityViolationError(
            f"Missing policy_only_checksum_sha256 in replay output: {path}",
            failure_type_id="CONTRACT_VIOLATION",
            context=str(path),
        )
    return ExpectedReplayOutput.from_dict(output, location=str(path))


# =============================================================================
# SECTION 3 -- PURE GATE LOGIC
# =============================================================================

def build_baseline(
    input_digests: Mapping[str, str],
    replay_output: ExpectedReplayOutput,
    updated_at:    str,
) -> DigestBaseline:
    return DigestBaseline(
        schema_version=BASELINE_SCHEMA_VERSION,
        description=BASELINE_DESCRIPTION,
        fixture_policy_input_digests_sha256=dict(input_digests),
        expected=replay_output,
        updated_at=updated_at,
    )


def evaluate_gate(
    input_digests: Mapping[str, str],
    replay_output: ExpectedReplayOutput,
    baseline:      DigestBaseline,
) -> GateResult:
    """
    Check-mode verdict. Pure.

    Changed inputs make a differing checksum legitimate, so they yield SKIP.
    Unchanged inputs require exact checksum equality.
    """
    comparison = compare_input_digests(input_digests, baseline.fixture_policy_input_digests_sha256)
    expected = baseline.expected.policy_only_checksum_sha256
    actual = replay_output.policy_only_checksum_sha256

    if not comparison.matched:
        changed = "\n".join("  " + m.describe() for m in comparison.mismatches)
        return GateResult(
            verdict=Verdict.SKIP,
            exit_code=0,
            message=(
                "Replay checksum gate skipped: fixture/policy inputs changed.\n"
                f"{changed}\n"
                f"Run `{UPDATE_COMMAND}` after reviewing intended replay changes."
            ),
            input_digests=dict(input_digests),
            expected_checksum=expected,
            actual_checksum=actual,
            changed_inputs=comparison.changed_inputs,
        )

    if actual != expected:
        return GateResult(
            verdict=Verdict.FAIL,
            exit_code=exit_code_for("DRIFT_DETECTED"),
            message=(
                "Replay checksum regression gate FAILED.\n"
                f"Expected: {expected}\n"
                f"Actual:   {actual}\n"
                "Inputs are unchanged, so this indicates non-deterministic or "
                "unintended replay drift."
            ),
            input_digests=dict(input_digests),
            expected_checksum=expected,
            actual_checksum=actual,
        )

    return GateResult(
        verdict=Verdict.PASS,
        exit_code=0,
        message=f"Replay checksum regression gate PASSED.\nPolicy-only checksum: {actual}",
        input_digests=dict(input_digests),
        expected_checksum=expected,
        actual_checksum=actual,
    )


# =============================================================================
# SECTION 4 -- GATE
# =============================================================================

def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def gate(
    mode:        str,
    paths:       GatePaths,
    run_harness: Optional[HarnessRunner] = None,
    timeout:     Optional[float] = None,
    clock:       Callable[[], str] = _now_iso,
) -> GateResult:
    """
    Run the gate in "check" or "update" mode.

    run_harness defaults to run_harness_subprocess().

    Raises TutorError for configuration, contract and timeout failures.
    A FAIL verdict is returned, not raised.
    """
    if mode not in MODES:
        raise ValueError(f"mode must be one of {MODES}, got {mode!r}")
    if run_harness is None:
        run_harness = run_harness_subprocess

    harness_exit = run_harness(paths, timeout)
    if harness_exit != 0:
        return GateResult(
            verdict=None,
            exit_code=harness_exit,
            message=f"Replay harness exited with code {harness_exit}; gate aborted.",
        )

    try:
        input_digests = digest_inputs(paths.input_paths())
    except FileNotFoundError as exc:
        raise ConfigurationError(
            f"Declared replay input is missing: {exc}",
            context=str(exc),
        ) from exc
    replay_output = read_replay_output(paths.replay_output_path)

    if mode == "update":
        baseline = build_baseline(input_digests, replay_output, clock())
        written = write_baseline(paths.baseline_path, baseline)
        return GateResult(
            verdict=Verdict.UPDATED,
            exit_code=0,
            message=f"Replay checksum baseline updated: {display_path(written)}",
            input_digests=dict(input_digests),
            expected_checksum=replay_output.policy_only_checksum_sha256,
            actual_checksum=replay_output.policy_only_checksum_sha256,
        )

    baseline = load_baseline(paths.baseline_path)
    return evaluate_gate(input_digests, replay_output, baseline)


# =============================================================================
# SECTION 5 -- CLI
# =============================================================================

def _parse_args(argv: Optional[List[str]]) -> argparse.Namespace:
    defaults = GatePaths.default()
    parser = argparse.ArgumentParser(
        description="Replay checksum regression gate.",
        prog="python -m sqltutor.verification.checksum_gate",
    )
    parser.add_argument(
        "--update",
        action="store_true",
        default=False,
        help="Rewrite the baseline from the current inputs and replay output.",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Abort the replay harness after this many seconds.",
    )
    parser.add_argument("--baseline", default=str(defaults.baseline_path))
    parser.add_argument("--runs-dir", default=str(defaults.runs_dir))
    parser.add_argument(
        "--replay-output",
        default=str(defaults.replay_output_path),
        help="Where the replay harness writes its export.",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    paths = replace(
        GatePaths.default(),
        replay_output_path=Path(args.replay_output),
        baseline_path=Path(args.baseline),
        runs_dir=Path(args.runs_dir),
    )
    fh = FailureHandler(
        runs_dir=paths.runs_dir,
        run_id=make_run_id("replay-gate"),
        tool="replay-gate",
    )

    try:
        result = gate("update" if args.update else "check", paths, timeout=args.timeout)
        if result.verdict is Verdict.FAIL:
            raise DriftDetectedError(result.message, context="policy_only_checksum_sha256")
    except TutorError as exc:
        fh.handle_from_exception(exc)
        return exit_code_for(exc.failure_type_id)

    if result.verdict is None:
        print(result.message, file=sys.stderr)
        return result.exit_code

    print(f"REPLAY GATE RESULT: {result.verdict.value}")
    print(result.message)
    return 0


if __name__ == "__main__":
    sys.exit(main())
