# sqltutor/ladder/models.py
# Data classes for the HintWise hint-ladder map.
#
# All classes are frozen. to_dict() emits the on-disk JSON shape with a
# fixed key order, so pretty_json(artifact.to_dict()) is byte-stable.

from dataclasses import dataclass
from typing import Any, Dict, Tuple


@dataclass(frozen=True)
class HintLevel:
    """
    One rung of a hint ladder.

    label is derived from level and cannot be set independently.
    """
    level: int
    hint:  str

    @property
    def label(self) -> str:
        return "H" + str(self.level)

    def to_dict(self) -> Dict[str, Any]:
        return {"level": self.level, "label": self.label, "hint": self.hint}


@dataclass(frozen=True)
class SourceAsset:
    """
    Identity and integrity of one ladder source, taken at read time.

    raw_sha256 is the SHA-256 of the bytes actually read on this run.
    """
    asset_id:        str
    source_priority: int    # position in the candidate list; lower wins
    raw_sha256:      str
    record_count:    int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "asset_id":        self.asset_id,
            "source_priority": self.source_priority,
            "raw_sha256":      self.raw_sha256,
            "record_count":    self.record_count,
        }


@dataclass(frozen=True)
class LadderEntry:
    """
    One normalized challenge with its hint ladder.

    hint_levels are sorted by level and, once validated, run 1..n with no
    gaps. source_priority is kept for tie-breaking but not serialized.
    """
    challenge_key:     str
    record_id:         str
    topic:             str
    challenge:         str
    personality:       str
    source_asset_id:   str
    source_priority:   int
    source_row_number: int
    hint_levels:       Tuple[HintLevel, ...]

    @property
    def max_hint_level(self) -> int:
        return self.hint_levels[-1].level

    @property
    def origin(self) -> str:
        return f"{self.source_asset_id} row {self.source_row_number}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "challenge_key":     self.challenge_key,
            "record_id":         self.record_id,
            "topic":             self.topic,
            "challenge":         self.challenge,
            "personality":       self.personality,
            "source_asset_id":   self.source_asset_id,
            "source_row_number": self.source_row_number,
            "hint_levels":       [level.to_dict() for level in self.hint_levels],
        }


@dataclass(frozen=True)
class LadderArtifact:
    """
    The complete hint-ladder map. Produced wholesale on every converter
    run; never patched.

    unique_challenge_keys is computed from challenge_map, so the stats
    block can never disagree with the map it describes.
    """
    converter_policy_version: str
    policy_semantics_version: str
    source_assets:            Tuple[SourceAsset, ...]
    challenge_map:            Tuple[LadderEntry, ...]
    normalized_records:       int
    max_hint_level_seen:      int

    @property
    def unique_challenge_keys(self) -> int:
        return len(self.challenge_map)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "converter_policy_version": self.converter_policy_version,
            "policy_semantics_version": self.policy_semantics_version,
            "deterministic_selection": {
                "seed_fields": ["topic", "challenge", "personality"],
                "record_id_hash": "stableHash31",
                "challenge_selection_rule": (
                    "select record with minimum source_priority, then minimum "
                    "source_row_number for each challenge_key; differing hint "
                    "content under one challenge_key is rejected"
                ),
            },
            "source_assets": [asset.to_dict() for asset in self.source_assets],
            "stats": {
                "normalized_records":    self.normalized_records,
                "unique_challenge_keys": self.unique_challenge_keys,
                "max_hint_level_seen":   self.max_hint_level_seen,
            },
            "challenge_map": [entry.to_dict() for entry in self.challenge_map],
        }
