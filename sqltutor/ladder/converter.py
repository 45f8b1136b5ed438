#!/usr/bin/env python3
# =============================================================================
# sqltutor -- HINTWISE LADDER CONVERTER
# File:   sqltutor/ladder/converter.py
# =============================================================================
#
# PURPOSE
# -------
# Builds the versioned hint-ladder map from HintWise source assets and
# writes it to a fixed location, fully overwriting any prior content.
#
#   python -m sqltutor.ladder.converter [--source-root DIR] [--output PATH]
#
# The converter is a pure function of its source bytes: two runs against
# unchanged sources write byte-identical files. This is what
# sqltutor.verification.idempotency_verifier checks.
#
# Exit codes:
#   0 -- artifact written, or SKIP (no source assets present).
#   non-zero -- FAILURE_TYPES exit code of the raised TutorError.
#
# Stdout (parsed by the idempotency verifier):
#   [hintwise-converter] output=<path> sha256=<digest of the written bytes>
# =============================================================================

from __future__ import annotations

import argparse
import re
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

from sqltutor.core.exceptions import IntegrityViolationError, TutorError
from sqltutor.core.integrity_layer import pretty_json, sha256_hex
from sqltutor.core.row_selector import stable_hash_hex
from sqltutor.ladder.models import HintLevel, LadderArtifact, LadderEntry
from sqltutor.ladder.sources import (
    DEFAULT_SOURCE_CANDIDATES,
    LoadedDataset,
    SourceCandidate,
    load_available_datasets,
)
from sqltutor.utils.paths import HINTWISE_SOURCE_ROOT, LADDER_OUTPUT_PATH, display_path
from sqltutor.verification.data_models.failure_record import exit_code_for
from sqltutor.verification.harness_version import (
    CONVERTER_POLICY_VERSION,
    POLICY_SEMANTICS_VERSION,
)

_LOG_PREFIX = "[hintwise-converter]"

_HINT_LABEL_RE = re.compile(r"^H([0-9]+)$", re.IGNORECASE)
_TRAILING_BLANKS_RE = re.compile(r"[ \t]+\n")


# =============================================================================
# SECTION 1 -- PATHS
# =============================================================================

@dataclass(frozen=True)
class ConverterPaths:
    source_root: Path
    output_path: Path

    @classmethod
    def default(cls) -> "ConverterPaths":
        return cls(source_root=HINTWISE_SOURCE_ROOT, output_path=LADDER_OUTPUT_PATH)


@dataclass(frozen=True)
class ConversionResult:
    output_path: Path
    sha256:      str
    artifact:    LadderArtifact


# =============================================================================
# SECTION 2 -- NORMALIZATION
# =============================================================================

def normalize_text(value: Any) -> str:
    """CRLF -> LF, drop blanks before line breaks, trim. Falsy values (None, 0, False) -> ""."""
    text = str(value) if value else ""
    text = text.replace("\r\n", "\n")
    text = _TRAILING_BLANKS_RE.sub("\n", text)
    return text.strip()


def parse_hint_level(label: Any) -> Optional[int]:
    """'H3' -> 3. Anything else (including 'H0') -> None."""
    match = _HINT_LABEL_RE.match(normalize_text(label))
    if match is None:
        return None
    level = int(match.group(1))
    return level if level >= 1 else None


def _hint_levels(hints: Any) -> List[HintLevel]:
    """First occurrence of each level wins; result sorted by level."""
    by_level: Dict[int, str] = {}
    for entry in hints if isinstance(hints, list) else []:
        if not isinstance(entry, dict):
            continue
        level = parse_hint_level(entry.get("label"))
        hint = normalize_text(entry.get("hint"))
        if level is None or not hint:
            continue
        by_level.setdefault(level, hint)
    return [HintLevel(level, by_level[level]) for level in sorted(by_level)]


def _text_key(text: str):
    return (text.casefold(), text)


def normalize_records(datasets: Iterable[LoadedDataset]) -> List[LadderEntry]:
    """
    Turn raw dataset records into LadderEntry objects.

    Records without topic or challenge, or without a usable hint level,
    are dropped. The result is sorted by topic, challenge, personality,
    then source priority and row number.
    """
    entries: List[LadderEntry] = []
    for dataset in datasets:
        asset = dataset.asset
        for row_number, record in enumerate(dataset.records, start=1):
            if not isinstance(record, dict):
                continue
            topic = normalize_text(record.get("topic"))
            challenge = normalize_text(record.get("challenge"))
            personality = normalize_text(record.get("personality"))
            if not topic or not challenge:
                continue

            levels = _hint_levels(record.get("hints"))
            if not levels:
                continue

            seed = f"{topic}|{challenge}|{personality}"
            entries.append(LadderEntry(
                challenge_key="hintwise:challenge:" + stable_hash_hex(seed),
                record_id="hintwise:" + stable_hash_hex(f"{asset.asset_id}|{row_number}|{seed}"),
                topic=topic,
                challenge=challenge,
                personality=personality,
                source_asset_id=asset.asset_id,
                source_priority=asset.source_priority,
                source_row_number=row_number,
                hint_levels=tuple(levels),
            ))

    entries.sort(key=lambda e: (
        _text_key(e.topic),
        _text_key(e.challenge),
        _text_key(e.personality),
        e.source_priority,
        e.source_row_number,
    ))
    return entries


def assert_level_order(entries: Sequence[LadderEntry]) -> None:
    """
    Raise IntegrityViolationError (LADDER_INVARIANT_VIOLATION) for the
    first entry whose levels are not exactly 1..n.
    """
    for entry in entries:
        for position, level in enumerate(entry.hint_levels):
            if level.level != position + 1:
                raise IntegrityViolationError(
                    f"Non-consecutive hint level order detected for {entry.record_id} "
                    f"({entry.origin}): position {position} expected H{position + 1}, "
                    f"got {level.label}.",
                    failure_type_id="LADDER_INVARIANT_VIOLATION",
                    context=entry.record_id,
                )


def build_challenge_map(entries: Sequence[LadderEntry]) -> List[LadderEntry]:
    """
    One entry per challenge_key.

    Identical hint ladders under one key collapse to the record with the
    lowest (source_priority, source_row_number). Differing ladders under
    one key raise IntegrityViolationError (DUPLICATE_CHALLENGE_KEY).
    """
    by_key: Dict[str, LadderEntry] = {}
    for entry in entries:
        existing = by_key.get(entry.challenge_key)
        if existing is None:
            by_key[entry.challenge_key] = entry
            continue
        if existing.hint_levels != entry.hint_levels:
            raise IntegrityViolationError(
                f"challenge_key {entry.challenge_key} is declared with different "
                f"hint content by {existing.origin} and {entry.origin} "
                f"(topic={entry.topic!r}, challenge={entry.challenge!r}).",
                failure_type_id="DUPLICATE_CHALLENGE_KEY",
                context=entry.challenge_key,
            )
        if (entry.source_priority, entry.source_row_number) < (
            existing.source_priority, existing.source_row_number
        ):
            by_key[entry.challenge_key] = entry

    return sorted(by_key.values(), key=lambda e: (
        _text_key(e.topic),
        _text_key(e.challenge),
        e.challenge_key,
    ))


# =============================================================================
# SECTION 3 -- ARTIFACT
# =============================================================================

def build_artifact(datasets: Sequence[LoadedDataset]) -> LadderArtifact:
    """
    Pure transformation of loaded datasets into a LadderArtifact.

    Raises IntegrityViolationError when no record survives normalization,
    on a level-order violation, or on a conflicting duplicate key.
    """
    entries = normalize_records(datasets)
    if not entries:
        raise IntegrityViolationError(
            "HintWise assets were found, but no valid hint records could be normalized. "
            f"Assets: {', '.join(d.asset.asset_id for d in datasets)}.",
            failure_type_id="LADDER_INVARIANT_VIOLATION",
        )
    assert_level_order(entries)
    challenge_map = build_challenge_map(entries)

    return LadderArtifact(
        converter_policy_version=CONVERTER_POLICY_VERSION,
        policy_semantics_version=POLICY_SEMANTICS_VERSION,
        source_assets=tuple(sorted(
            (d.asset for d in datasets), key=lambda a: a.source_priority
        )),
        challenge_map=tuple(challenge_map),
        normalized_records=len(entries),
        max_hint_level_seen=max(e.max_hint_level for e in entries),
    )


def write_artifact(artifact: LadderArtifact, output_path: Path) -> str:
    """Overwrite output_path with the artifact. Return SHA-256 of the bytes written."""
    text = pretty_json(artifact.to_dict())
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", encoding="utf-8", newline="\n") as fh:
        fh.write(text)
    return sha256_hex(text)


def convert(
    source_root: Path,
    output_path: Path,
    candidates:  Sequence[SourceCandidate] = DEFAULT_SOURCE_CANDIDATES,
) -> Optional[ConversionResult]:
    """
    Load sources, build the artifact and write it.

    Returns None (nothing written) when no source asset is present.
    """
    datasets = load_available_datasets(source_root, candidates)
    if not datasets:
        return None
    artifact = build_artifact(datasets)
    digest = write_artifact(artifact, output_path)
    return ConversionResult(output_path=Path(output_path), sha256=digest, artifact=artifact)


# =============================================================================
# SECTION 4 -- CLI
# =============================================================================

def _parse_args(argv: Optional[List[str]]) -> argparse.Namespace:
    defaults = ConverterPaths.default()
    parser = argparse.ArgumentParser(
        description="Build the HintWise hint-ladder map.",
        prog="python -m sqltutor.ladder.converter",
    )
    parser.add_argument(
        "--source-root",
        default=str(defaults.source_root),
        help="Directory holding HintWise.zip and/or extracted HintWise-main/.",
    )
    parser.add_argument(
        "--output",
        default=str(defaults.output_path),
        help="Artifact path. Overwritten on every run.",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    paths = ConverterPaths(source_root=Path(args.source_root), output_path=Path(args.output))

    try:
        result = convert(paths.source_root, paths.output_path)
    except TutorError as exc:
        print(f"{_LOG_PREFIX} failed: {exc}", file=sys.stderr)
        return exit_code_for(exc.failure_type_id)

    if result is None:
        print(
            f"{_LOG_PREFIX} SKIP: No local HintWise dataset found under "
            f"{display_path(paths.source_root)}. Expected {DEFAULT_SOURCE_CANDIDATES[0].relative_path} "
            "in HintWise.zip or extracted. Skipping conversion (exit 0).",
            file=sys.stderr,
        )
        return 0

    artifact = result.artifact
    print(f"{_LOG_PREFIX} converter_policy_version={artifact.converter_policy_version}")
    print(f"{_LOG_PREFIX} policy_semantics_version={artifact.policy_semantics_version}")
    print(
        f"{_LOG_PREFIX} source_assets={len(artifact.source_assets)} "
        f"normalized_records={artifact.normalized_records} "
        f"unique_challenges={artifact.unique_challenge_keys}"
    )
    print(f"{_LOG_PREFIX} output={display_path(result.output_path)} sha256={result.sha256}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
