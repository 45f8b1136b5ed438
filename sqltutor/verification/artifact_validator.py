# sqltutor/verification/artifact_validator.py
# ArtifactValidator -- structural invariants of the hint-ladder map.
#
# Checked on the parsed JSON, not on LadderArtifact objects, so that what
# is validated is what consumers actually read from disk.
#
# On the first violation: raises IntegrityViolationError whose context is
# the offending location ("challenge_map[4].hint_levels[1]"). No partial
# recovery, no collection of further violations.

import json
from typing import Any, Dict

from sqltutor.core.exceptions import IntegrityViolationError
from sqltutor.core.integrity_layer import is_sha256_hex
from sqltutor.verification.harness_version import (
    CONVERTER_POLICY_VERSION,
    POLICY_SEMANTICS_VERSION,
)


def _fail(detail: str, location: str, failure_type_id: str = "LADDER_INVARIANT_VIOLATION") -> None:
    raise IntegrityViolationError(
        f"{location}: {detail}" if location else detail,
        failure_type_id=failure_type_id,
        context=location,
    )


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def load_artifact(text: str) -> Dict[str, Any]:
    """Parse artifact text. Raises IntegrityViolationError (DATA_CORRUPTION)."""
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as exc:
        raise IntegrityViolationError(
            f"converter output is not valid JSON: {exc}",
            failure_type_id="DATA_CORRUPTION",
        ) from exc
    if not isinstance(parsed, dict):
        raise IntegrityViolationError(
            f"converter output must be a JSON object, got {type(parsed).__name__}",
            failure_type_id="DATA_CORRUPTION",
        )
    return parsed


class ArtifactValidator:
    """
    Validates a parsed hint-ladder map.

    Checks, in order:
      1. converter_policy_version / policy_semantics_version equal the
         expected stamps (VERSION_MISMATCH).
      2. source_assets non-empty; each has asset_id and a 64-char
         lowercase hex raw_sha256.
      3. challenge_map non-empty; for every entry hint_levels[i].level
         == i + 1, label == "H" + level, hint non-empty.
      4. challenge_key values pairwise distinct.
      5. stats.unique_challenge_keys == len(challenge_map).
    """

    def __init__(
        self,
        expected_converter_version: str = CONVERTER_POLICY_VERSION,
        expected_semantics_version: str = POLICY_SEMANTICS_VERSION,
    ):
        self.expected_converter_version = expected_converter_version
        self.expected_semantics_version = expected_semantics_version

    def validate(self, artifact: Dict[str, Any]) -> int:
        """Validate artifact. Return the number of challenge_map entries."""
        self._check_versions(artifact)
        self._check_source_assets(artifact.get("source_assets"))
        challenge_map = artifact.get("challenge_map")
        self._check_challenge_map(challenge_map)
        self._check_unique_keys(challenge_map)
        self._check_stats(artifact.get("stats"), len(challenge_map))
        return len(challenge_map)

    def _check_versions(self, artifact: Dict[str, Any]) -> None:
        for field, expected in (
            ("converter_policy_version", self.expected_converter_version),
            ("policy_semantics_version", self.expected_semantics_version),
        ):
            actual = artifact.get(field)
            if actual != expected:
                _fail(
                    f"version changed: expected {expected!r}, got {actual!r}",
                    field,
                    failure_type_id="VERSION_MISMATCH",
                )

    @staticmethod
    def _check_source_assets(assets: Any) -> None:
        if not isinstance(assets, list) or not assets:
            _fail("source_assets missing or empty", "source_assets")
        for idx, asset in enumerate(assets):
            location = f"source_assets[{idx}]"
            if not isinstance(asset, dict):
                _fail("not an object", location)
            asset_id = asset.get("asset_id")
            if not isinstance(asset_id, str) or not asset_id:
                _fail("missing asset_id", location + ".asset_id")
            if not is_sha256_hex(asset.get("raw_sha256")):
                _fail(
                    f"invalid raw_sha256 {asset.get('raw_sha256')!r} for {asset_id}",
                    location + ".raw_sha256",
                )

    @staticmethod
    def _check_challenge_map(challenge_map: Any) -> None:
        if not isinstance(challenge_map, list) or not challenge_map:
            _fail("challenge_map missing or empty", "challenge_map")

        for idx, entry in enumerate(challenge_map):
            location = f"challenge_map[{idx}]"
            if not isinstance(entry, dict):
                _fail("not an object", location)
            key = entry.get("challenge_key")
            if not isinstance(key, str) or not key:
                _fail("missing challenge_key", location + ".challenge_key")

            levels = entry.get("hint_levels")
            if not isinstance(levels, list):
                _fail(f"missing hint_levels ({key})", location + ".hint_levels")
            if not levels:
                _fail(f"has no hint_levels ({key})", location + ".hint_levels")

            for level_idx, row in enumerate(levels):
                row_location = f"{location}.hint_levels[{level_idx}]"
                expected = level_idx + 1
                level = row.get("level") if isinstance(row, dict) else None
                if not _is_int(level) or level != expected:
                    _fail(
                        f"non-consecutive level sequence at position {level_idx} "
                        f"(expected {expected}, got {level!r}) in {key}",
                        row_location + ".level",
                    )
                if row.get("label") != f"H{level}":
                    _fail(
                        f"mismatched label {row.get('label')!r} for level {level} in {key}",
                        row_location + ".label",
                    )
                hint = row.get("hint")
                if not isinstance(hint, str) or not hint.strip():
                    _fail(f"empty hint text in {key}", row_location + ".hint")

    @staticmethod
    def _check_unique_keys(challenge_map: list) -> None:
        seen: Dict[str, int] = {}
        for idx, entry in enumerate(challenge_map):
            key = entry["challenge_key"]
            if key in seen:
                _fail(
                    f"duplicate challenge_key {key} (first at challenge_map[{seen[key]}])",
                    f"challenge_map[{idx}].challenge_key",
                    failure_type_id="DUPLICATE_CHALLENGE_KEY",
                )
            seen[key] = idx

    @staticmethod
    def _check_stats(stats: Any, map_size: int) -> None:
        recorded = stats.get("unique_challenge_keys") if isinstance(stats, dict) else None
        if not _is_int(recorded) or recorded != map_size:
            _fail(
                f"stats.unique_challenge_keys={recorded!r} does not match "
                f"challenge_map length {map_size}",
                "stats.unique_challenge_keys",
            )
