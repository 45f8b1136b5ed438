# sqltutor/verification/storage/baseline_store.py
# Baseline persistence. The only file I/O of the checksum gate's baseline.
#
# Written as 2-space indented JSON with a trailing newline for stable diffs.

import json
from pathlib import Path

from sqltutor.core.exceptions import ConfigurationError, IntegrityViolationError
from sqltutor.core.integrity_layer import pretty_json
from sqltutor.verification.data_models.digest_baseline import DigestBaseline

UPDATE_COMMAND: str = "python -m sqltutor.verification.checksum_gate --update"


def load_baseline(path: Path) -> DigestBaseline:
    """
    Read and parse the baseline.

    Raises
    ------
    ConfigurationError
        BASELINE_MISSING if the file does not exist.
    IntegrityViolationError
        DATA_CORRUPTION if the file is not a valid baseline.
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = f.read()
    except FileNotFoundError:
        raise ConfigurationError(
            f"Replay checksum baseline not found: {path}. "
            f"Run `{UPDATE_COMMAND}` to create it.",
            failure_type_id="BASELINE_MISSING",
            context=str(path),
        ) from None

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise IntegrityViolationError(
            f"Replay checksum baseline {path} is not valid JSON: {exc}",
            failure_type_id="DATA_CORRUPTION",
            context=str(path),
        ) from exc
    return DigestBaseline.from_dict(data)


def write_baseline(path: Path, baseline: DigestBaseline) -> Path:
    """Overwrite path with baseline. Return path."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8", newline="\n") as f:
        f.write(pretty_json(baseline.to_dict()))
    return path
