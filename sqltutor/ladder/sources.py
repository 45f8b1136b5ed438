# sqltutor/ladder/sources.py
# HintWise source asset discovery and loading.
#
# Candidates are tried in a fixed priority order: entries of a HintWise.zip
# archive first, then the same datasets extracted on disk. A candidate that
# does not exist is skipped silently; a candidate that exists but is not a
# JSON array is a hard failure.
#
# raw_sha256 is taken over the exact bytes read on this run.

import json
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional, Sequence

from sqltutor.core.exceptions import IntegrityViolationError
from sqltutor.core.integrity_layer import sha256_hex
from sqltutor.ladder.models import SourceAsset

ZIP_ARCHIVE_NAME: str = "HintWise.zip"


@dataclass(frozen=True)
class SourceCandidate:
    """
    One possible location of a HintWise dataset.

    kind "zip"  -- relative_path is an entry inside <source_root>/HintWise.zip
    kind "file" -- relative_path is a file below <source_root>
    """
    kind:          str
    relative_path: str

    @property
    def asset_id(self) -> str:
        return f"{self.kind}:{self.relative_path}"


DEFAULT_SOURCE_CANDIDATES = (
    SourceCandidate("zip",  "HintWise-main/hints_dataset.json"),
    SourceCandidate("zip",  "HintWise-main/app/api/hints/hints_dataset.json"),
    SourceCandidate("file", "HintWise-main/hints_dataset.json"),
    SourceCandidate("file", "HintWise-main/app/api/hints/hints_dataset.json"),
)


@dataclass(frozen=True)
class LoadedDataset:
    asset:   SourceAsset
    records: tuple


def _read_zip_entry(archive: Path, entry: str) -> Optional[bytes]:
    if not archive.is_file():
        return None
    asset_id = f"zip:{entry}"
    try:
        with zipfile.ZipFile(archive) as zf:
            if entry not in zf.namelist():
                return None
            return zf.read(entry)
    except zipfile.BadZipFile as exc:
        raise IntegrityViolationError(
            f"{archive.name} is not a readable zip archive ({exc}); cannot read {asset_id}.",
            failure_type_id="DATA_CORRUPTION",
            context=asset_id,
        ) from exc


def _read_local_file(path: Path) -> Optional[bytes]:
    if not path.is_file():
        return None
    return path.read_bytes()


def read_candidate(candidate: SourceCandidate, source_root: Path) -> Optional[bytes]:
    """Raw bytes of candidate, or None if it is absent."""
    source_root = Path(source_root)
    if candidate.kind == "zip":
        return _read_zip_entry(source_root / ZIP_ARCHIVE_NAME, candidate.relative_path)
    if candidate.kind == "file":
        return _read_local_file(source_root / candidate.relative_path)
    raise ValueError(f"CONTRACT_VIOLATION: unknown source candidate kind '{candidate.kind}'")


def _parse_records(raw: bytes, asset_id: str) -> List[Any]:
    try:
        parsed = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise IntegrityViolationError(
            f"Failed to parse {asset_id} as JSON: {exc}",
            failure_type_id="DATA_CORRUPTION",
            context=asset_id,
        ) from exc
    if not isinstance(parsed, list):
        raise IntegrityViolationError(
            f"Dataset {asset_id} is not a JSON array (got {type(parsed).__name__}).",
            failure_type_id="DATA_CORRUPTION",
            context=asset_id,
        )
    return parsed


def load_available_datasets(
    source_root: Path,
    candidates:  Sequence[SourceCandidate] = DEFAULT_SOURCE_CANDIDATES,
) -> List[LoadedDataset]:
    """
    Read every present candidate in priority order.

    Missing and empty candidates are skipped. source_priority is the
    candidate's position in candidates, whether or not earlier ones exist.
    """
    datasets: List[LoadedDataset] = []
    for priority, candidate in enumerate(candidates):
        raw = read_candidate(candidate, source_root)
        if not raw:
            continue
        records = _parse_records(raw, candidate.asset_id)
        if not records:
            continue
        datasets.append(LoadedDataset(
            asset=SourceAsset(
                asset_id=candidate.asset_id,
                source_priority=priority,
                raw_sha256=sha256_hex(raw),
                record_count=len(records),
            ),
            records=tuple(records),
        ))
    return datasets
