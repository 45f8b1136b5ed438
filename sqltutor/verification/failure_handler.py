# sqltutor/verification/failure_handler.py
# FailureHandler -- hard failure policy for the verification tools.
#
# - Exit with a non-zero exit code on any hard failure.
# - No catch-and-continue. No retry. No fallback.
# - Invoked immediately on failure detection; no further stage runs.
# - If the handler itself fails, write partial info to stderr and exit 4.
#
# Subprocess exit codes (converter, replay harness) do not pass through
# here; callers propagate them verbatim.

import json
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

from sqltutor.core.exceptions import TutorError
from sqltutor.verification.data_models.failure_record import (
    FailureRecord,
    exit_code_for,
    failure_type_of,
)
from sqltutor.verification.harness_version import HARNESS_VERSION


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def make_run_id(tool: str) -> str:
    """RUN-<tool>-<YYYYmmddTHHMMSS>. Wall clock is used for naming only."""
    return "RUN-" + tool + "-" + datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S")


class FailureHandler:
    """
    On any hard failure:
      1. Construct FailureRecord.
      2. Write FailureRecord JSON to the runs directory.
      3. Print failure summary to stderr.
      4. Exit with the registry exit code (last operation).

    exit_fn defaults to sys.exit; tests inject a recorder.
    """

    def __init__(
        self,
        runs_dir: Path,
        run_id:   str,
        tool:     str,
        exit_fn:  Optional[Callable[[int], None]] = None,
    ):
        self._runs_dir = Path(runs_dir)
        self._run_id   = run_id
        self._tool     = tool
        self._exit     = exit_fn if exit_fn is not None else sys.exit

    @property
    def run_id(self) -> str:
        return self._run_id

    def handle(
        self,
        failure_type_id: str,
        detail:          str,
        location:        str = "",
    ) -> None:
        """Execute the hard failure policy. With the default exit_fn this does not return."""
        exit_code   = exit_code_for(failure_type_id)
        detected_at = _now_iso()

        record = FailureRecord(
            failure_type_id=failure_type_id,
            exit_code=exit_code,
            tool=self._tool,
            location=location,
            detected_at_iso=detected_at,
            run_id=self._run_id,
            harness_version=HARNESS_VERSION,
            detail=detail,
        )

        try:
            self._runs_dir.mkdir(parents=True, exist_ok=True)
            filepath = self._runs_dir / f"{self._run_id}_FAIL.json"
            with open(filepath, "w", encoding="utf-8") as f:
                json.dump(record.to_dict(), f, indent=4)

            print(
                f"{self._tool.upper()} RESULT: FAIL\n"
                f"Failure type:   {failure_type_id}\n"
                f"Exit code:      {exit_code}\n"
                f"Location:       {location or '(not applicable)'}\n"
                f"Detail:         {detail}\n"
                f"Record written: {filepath}",
                file=sys.stderr,
            )
        except OSError as exc:
            sys.stderr.write(
                f"HARNESS_INTERNAL_ERROR: FailureHandler failed to write record: {exc}\n"
                f"Original failure: {failure_type_id} -- {detail}\n"
            )
            self._exit(4)
            return

        self._exit(exit_code)

    def handle_from_exception(self, exc: Exception) -> None:
        """
        Route an exception to handle().

        TutorError carries its failure type and context; any other
        exception is classified by its "FAILURE_TYPE_ID:" message prefix.
        """
        if isinstance(exc, TutorError):
            location = exc.context if isinstance(exc.context, str) else ""
            self.handle(exc.failure_type_id, str(exc), location=location)
            return
        msg = str(exc)
        self.handle(failure_type_of(msg), msg)
