#!/usr/bin/env python3
# =============================================================================
# sqltutor -- LADDER CONVERTER IDEMPOTENCY VERIFIER
# File:   sqltutor/verification/idempotency_verifier.py
# =============================================================================
#
# PURPOSE
# -------
# Runs the ladder converter twice and asserts that it is a pure function of
# its source assets:
#
#   1. Both runs exit 0 and write the artifact (no SKIP).
#   2. The SHA-256 of the written file is identical across runs
#      (IDEMPOTENCY_BREACH otherwise).
#   3. The "sha256=" digest the converter logs equals the digest of the
#      file on disk (LOGGED_DIGEST_MISMATCH otherwise).
#   4. The second output passes ArtifactValidator.
#
# Invocation:
#   python -m sqltutor.verification.idempotency_verifier
#       [--source-root DIR] [--output PATH] [--runs-dir DIR]
#
# Exit codes: 0 PASS; otherwise the FAILURE_TYPES code via FailureHandler.
# =============================================================================

from __future__ import annotations

import argparse
import re
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

from sqltutor.core.exceptions import (
    ConfigurationError,
    HarnessError,
    IntegrityViolationError,
    TutorError,
)
from sqltutor.core.integrity_layer import sha256_hex
from sqltutor.utils.paths import (
    HINTWISE_SOURCE_ROOT,
    LADDER_OUTPUT_PATH,
    REPO_ROOT,
    RUNS_DIR,
)
from sqltutor.verification.artifact_validator import ArtifactValidator, load_artifact
from sqltutor.verification.data_models.failure_record import exit_code_for
from sqltutor.verification.failure_handler import FailureHandler, make_run_id

_LOG_PREFIX = "[hintwise-verify]"
_LOGGED_SHA_RE = re.compile(r"sha256=([a-f0-9]{64})", re.IGNORECASE)
_SKIP_MARKER = "SKIP:"


# =============================================================================
# SECTION 1 -- DATA TYPES
# =============================================================================

@dataclass(frozen=True)
class VerifierPaths:
    source_root: Path
    output_path: Path
    runs_dir:    Path

    @classmethod
    def default(cls) -> "VerifierPaths":
        return cls(
            source_root=HINTWISE_SOURCE_ROOT,
            output_path=LADDER_OUTPUT_PATH,
            runs_dir=RUNS_DIR,
        )


@dataclass(frozen=True)
class RunOutput:
    """Captured result of one converter invocation."""
    exit_code: int
    stdout:    str
    stderr:    str

    @property
    def combined(self) -> str:
        return f"{self.stdout}\n{self.stderr}"

    @property
    def logged_sha(self) -> Optional[str]:
        match = _LOGGED_SHA_RE.search(self.combined)
        return match.group(1).lower() if match else None

    @property
    def skipped(self) -> bool:
        return _SKIP_MARKER in self.combined


@dataclass(frozen=True)
class VerificationReport:
    converter_policy_version: str
    policy_semantics_version: str
    challenge_map_size:       int
    output_sha256:            str


ConverterRunner = Callable[[VerifierPaths], RunOutput]


# =============================================================================
# SECTION 2 -- CONVERTER INVOCATION
# =============================================================================

def run_converter_subprocess(paths: VerifierPaths) -> RunOutput:
    """Run the converter as a fresh interpreter process."""
    proc = subprocess.run(
        [
            sys.executable, "-m", "sqltutor.ladder.converter",
            "--source-root", str(paths.source_root),
            "--output", str(paths.output_path),
        ],
        cwd=str(REPO_ROOT),
        capture_output=True,
        text=True,
    )
    return RunOutput(exit_code=proc.returncode, stdout=proc.stdout, stderr=proc.stderr)


def _run_once(run_no: int, paths: VerifierPaths, runner: ConverterRunner) -> tuple:
    """One converter run. Returns (RunOutput, written text, file sha256)."""
    result = runner(paths)
    if result.exit_code != 0:
        raise HarnessError(
            f"converter run {run_no} failed with exit {result.exit_code}\n"
            f"stdout:\n{result.stdout}\nstderr:\n{result.stderr}",
            context=f"run{run_no}",
            exit_code=result.exit_code,
        )
    if result.skipped or not Path(paths.output_path).is_file():
        raise ConfigurationError(
            f"converter run {run_no} wrote no artifact to {paths.output_path}. "
            f"Place HintWise.zip or an extracted HintWise-main/ dataset under "
            f"{paths.source_root}.\nconverter output:\n{result.combined.strip()}",
            context=f"run{run_no}",
        )
    raw = Path(paths.output_path).read_bytes()
    return result, raw.decode("utf-8"), sha256_hex(raw)


# =============================================================================
# SECTION 3 -- VERIFY
# =============================================================================

def verify(
    paths:     VerifierPaths,
    runner:    Optional[ConverterRunner] = None,
    validator: Optional[ArtifactValidator] = None,
) -> VerificationReport:
    """
    Run the converter twice and validate the result.

    Raises the first TutorError encountered; never recovers partially.
    """
    if runner is None:
        runner = run_converter_subprocess
    validator = validator if validator is not None else ArtifactValidator()

    run1, _, sha1 = _run_once(1, paths, runner)
    run2, text2, sha2 = _run_once(2, paths, runner)

    if sha1 != sha2:
        raise IntegrityViolationError(
            f"converter output hash changed across runs: {sha1} vs {sha2}",
            failure_type_id="IDEMPOTENCY_BREACH",
            context=str(paths.output_path),
        )
    for run_no, run, file_sha in ((1, run1, sha1), (2, run2, sha2)):
        if run.logged_sha is not None and run.logged_sha != file_sha:
            raise IntegrityViolationError(
                f"logged sha mismatch on run{run_no}: {run.logged_sha} vs {file_sha}",
                failure_type_id="LOGGED_DIGEST_MISMATCH",
                context=f"run{run_no}",
            )

    artifact = load_artifact(text2)
    size = validator.validate(artifact)

    return VerificationReport(
        converter_policy_version=artifact["converter_policy_version"],
        policy_semantics_version=artifact["policy_semantics_version"],
        challenge_map_size=size,
        output_sha256=sha2,
    )


# =============================================================================
# SECTION 4 -- CLI
# =============================================================================

def _parse_args(argv: Optional[List[str]]) -> argparse.Namespace:
    defaults = VerifierPaths.default()
    parser = argparse.ArgumentParser(
        description="Verify that the HintWise ladder converter is idempotent.",
        prog="python -m sqltutor.verification.idempotency_verifier",
    )
    parser.add_argument("--source-root", default=str(defaults.source_root))
    parser.add_argument("--output", default=str(defaults.output_path))
    parser.add_argument(
        "--runs-dir",
        default=str(defaults.runs_dir),
        help="Directory for failure records.",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    paths = VerifierPaths(
        source_root=Path(args.source_root),
        output_path=Path(args.output),
        runs_dir=Path(args.runs_dir),
    )
    fh = FailureHandler(
        runs_dir=paths.runs_dir,
        run_id=make_run_id("idempotency"),
        tool="hintwise-verify",
    )

    try:
        report = verify(paths)
    except TutorError as exc:
        fh.handle_from_exception(exc)
        return exit_code_for(exc.failure_type_id)

    print(f"{_LOG_PREFIX} converter_policy_version={report.converter_policy_version}")
    print(f"{_LOG_PREFIX} policy_semantics_version={report.policy_semantics_version}")
    print(f"{_LOG_PREFIX} challenge_map_size={report.challenge_map_size}")
    print(f"{_LOG_PREFIX} stable_output_sha256={report.output_sha256}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
