# sqltutor/verification/digest_comparator.py
# DigestComparator -- exact key-by-key comparison of input digest maps.
#
# Digests are compared as exact strings. A key present on only one side is
# a mismatch; it is never treated as "unchanged". Keys are visited in
# sorted order so the mismatch list is reproducible.

from typing import Mapping, Optional

from sqltutor.verification.data_models.comparison_report import (
    DigestComparison,
    DigestMismatch,
)


def compare_input_digests(
    current:  Mapping[str, str],
    baseline: Optional[Mapping[str, str]],
) -> DigestComparison:
    """
    Compare current digests with the baseline's recorded digests.

    Pure. baseline None is treated as an empty mapping, so every current
    input shows up as missing_in_baseline.
    """
    baseline = baseline or {}
    names = tuple(sorted(set(current) | set(baseline)))
    mismatches = []
    for name in names:
        expected = baseline.get(name)
        actual = current.get(name)
        if expected is None or actual is None or expected != actual:
            mismatches.append(DigestMismatch(
                name=name,
                baseline_digest=expected,
                current_digest=actual,
            ))
    return DigestComparison(
        matched=not mismatches,
        compared=names,
        mismatches=tuple(mismatches),
    )
