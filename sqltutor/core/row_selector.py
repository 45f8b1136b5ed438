# sqltutor/core/row_selector.py
# Deterministic Row Selector -- seed-dependent, reproducible row choice.
#
# STABLE HASH RECURRENCE (versioned by SQL_ENGAGE_POLICY_VERSION):
#   h = 0
#   for each byte b of key.encode("utf-8"):
#       h = (h * 31 + b) mod 2**32
#
# Any change to the recurrence, the key format or the modulus re-routes
# every existing selection and requires a policy version bump.
#
# No randomness, no wall clock, no iteration over unordered containers:
# rows are indexed in first-seen dataset order.

from __future__ import annotations

from typing import Optional, Union

from sqltutor.core.dataset_index import DatasetRow, SubtypeIndex

_UINT32_MASK: int = 0xFFFFFFFF


def stable_hash(text: Union[str, bytes]) -> int:
    """
    31-multiplier polynomial hash over UTF-8 bytes, wrapped to unsigned 32 bit.

    Pure. Identical on every platform and interpreter.
    """
    data = text.encode("utf-8") if isinstance(text, str) else text
    h = 0
    for byte in data:
        h = (h * 31 + byte) & _UINT32_MASK
    return h


def stable_hash_hex(text: Union[str, bytes]) -> str:
    """stable_hash() as 8 lowercase hex digits, zero padded."""
    return format(stable_hash(text), "08x")


def deterministic_id(prefix: str, seed: str) -> str:
    """Return "<prefix>-<hex8>" derived from seed."""
    return f"{prefix}-{stable_hash_hex(seed)}"


def _pick(rows, key: str) -> Optional[DatasetRow]:
    if len(rows) == 0:
        return None
    return rows[stable_hash(key) % len(rows)]


def select_anchor_row(
    index:             SubtypeIndex,
    canonical_subtype: str,
    seed:              str,
) -> Optional[DatasetRow]:
    """Full DatasetRow chosen by select_row(), or None."""
    return _pick(index.rows_for(canonical_subtype), f"{canonical_subtype}|{seed}")


def select_row(
    index:             SubtypeIndex,
    canonical_subtype: str,
    seed:              str,
) -> Optional[str]:
    """
    Pick one row id for canonical_subtype.

    Index into the subtype's rows is stable_hash("<subtype>|<seed>") modulo
    the row count. Returns None when the subtype has zero rows; callers
    must treat None as a data-integrity failure, never substitute a row.
    """
    row = select_anchor_row(index, canonical_subtype, seed)
    if row is None:
        return None
    return row.row_id.strip() or None

