# sqltutor/verification/data_models/comparison_report.py
# Input digest comparison result used by the checksum gate.

from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass(frozen=True)
class DigestMismatch:
    """
    One input whose digest differs from the baseline.

    A None digest means the input is missing on that side.
    """
    name:            str
    baseline_digest: Optional[str]
    current_digest:  Optional[str]

    @property
    def kind(self) -> str:
        if self.baseline_digest is None:
            return "missing_in_baseline"
        if self.current_digest is None:
            return "missing_in_current"
        return "changed"

    def describe(self) -> str:
        return (
            f"{self.name} ({self.kind}): baseline={self.baseline_digest or '-'} "
            f"current={self.current_digest or '-'}"
        )


@dataclass(frozen=True)
class DigestComparison:
    """
    Key-by-key comparison of current input digests against a baseline.

    Fields:
      matched    -- True iff both sides have the same keys with equal digests.
      compared   -- Sorted union of input names on both sides.
      mismatches -- tuple of DigestMismatch in name order. Empty iff matched.
    """
    matched:    bool
    compared:   Tuple[str, ...]
    mismatches: Tuple[DigestMismatch, ...]

    @property
    def changed_inputs(self) -> Tuple[str, ...]:
        return tuple(m.name for m in self.mismatches)
