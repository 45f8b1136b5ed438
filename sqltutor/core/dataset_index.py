# =============================================================================
# sqltutor -- DATASET INDEXER
# File:   sqltutor/core/dataset_index.py
# =============================================================================
#
# Parses the SQL-Engage error-example dataset (quoted CSV) into rows grouped
# by canonical subtype.
#
# CSV DIALECT
# -----------
#   - Comma delimited. Fields may be quoted; quoted fields may contain commas
#     and line breaks. A doubled quote ("") inside a quoted field is one
#     literal quote character. Parsed with the stdlib csv reader, never by
#     splitting on ",".
#   - Header row locates columns by name, so column order is free.
#   - Fields are trimmed. Blank records are skipped.
#
# ROW IDS
# -------
#   rowId = "sql-engage:<n>" with n = data-row ordinal + 1, i.e. the first
#   data row is "sql-engage:2" (the header occupies line 1). Ids come from
#   position only, so editing a row's subtype text never changes its id.
#
# An empty SubtypeIndex signals an unusable table (no data rows, or a
# required column missing). parse_dataset() returns it; load_dataset()
# turns it into a ConfigurationError.
# =============================================================================

from __future__ import annotations

import csv
import io
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Mapping, Optional, Tuple

from sqltutor.core.exceptions import ConfigurationError
from sqltutor.utils.constants import (
    OPTIONAL_DATASET_COLUMNS,
    REQUIRED_DATASET_COLUMNS,
    ROW_ID_PREFIX,
)


# =============================================================================
# SECTION 1 -- DATA TYPES
# =============================================================================

@dataclass(frozen=True)
class DatasetRow:
    """
    One parsed dataset row. Immutable once parsed.

    Fields
    ------
    row_id                    : Positional id, e.g. "sql-engage:2".
    query                     : The learner query that produced the error.
    subtype                   : error_subtype, trimmed and lower-cased.
    error_type                : Optional column; "" when absent.
    emotion                   : Optional column; "" when absent.
    feedback_target           : Optional column; "" when absent.
    intended_learning_outcome : Optional column; "" when absent.
    """
    row_id:                    str
    query:                     str
    subtype:                   str
    error_type:                str = ""
    emotion:                   str = ""
    feedback_target:           str = ""
    intended_learning_outcome: str = ""


class SubtypeIndex:
    """
    Read-only mapping canonical subtype -> rows in first-seen order.

    Built once per dataset load by parse_dataset(). Rows are held in
    tuples; there is no mutating method.
    """

    __slots__ = ("_rows_by_subtype", "_row_count")

    def __init__(self, rows_by_subtype: Mapping[str, Tuple[DatasetRow, ...]], row_count: int = 0):
        self._rows_by_subtype: Dict[str, Tuple[DatasetRow, ...]] = {
            key: tuple(rows) for key, rows in rows_by_subtype.items()
        }
        self._row_count: int = row_count

    def rows_for(self, subtype: str) -> Tuple[DatasetRow, ...]:
        """Rows for subtype in first-seen order; () for unknown subtypes."""
        return self._rows_by_subtype.get(subtype, ())

    def subtypes(self) -> List[str]:
        """Sorted list of canonical subtypes. Sorted, never dict order."""
        return sorted(self._rows_by_subtype)

    def canonical_set(self) -> frozenset:
        return frozenset(self._rows_by_subtype)

    @property
    def row_count(self) -> int:
        """Number of data rows parsed, including rows without a subtype."""
        return self._row_count

    def __contains__(self, subtype: object) -> bool:
        return subtype in self._rows_by_subtype

    def __len__(self) -> int:
        return len(self._rows_by_subtype)

    def __iter__(self) -> Iterator[str]:
        return iter(self.subtypes())

    def __repr__(self) -> str:
        return (
            "SubtypeIndex(subtypes=" + str(len(self))
            + ", rows=" + str(self._row_count) + ")"
        )


# =============================================================================
# SECTION 2 -- PARSING
# =============================================================================

def _normalize_subtype(value: str) -> str:
    return value.strip().lower()


def _is_blank(record: List[str]) -> bool:
    return all(not field.strip() for field in record)


def _column(record: List[str], idx: Optional[int]) -> str:
    if idx is None or idx >= len(record):
        return ""
    return record[idx].strip()


def parse_records(raw_table: str) -> List[DatasetRow]:
    """
    Parse raw_table into DatasetRows in source order.

    Returns [] when the table has no header, no data rows, or lacks a
    required column. Rows with an empty subtype are kept here (they
    consume a row id) and dropped by parse_dataset().
    """
    # No field can be longer than the table itself.
    if len(raw_table) >= csv.field_size_limit():
        csv.field_size_limit(len(raw_table) + 1)
    reader = csv.reader(io.StringIO(raw_table, newline=""))
    records = (record for record in reader if not _is_blank(record))

    header = next(records, None)
    if header is None:
        return []

    headers = [name.strip() for name in header]
    positions: Dict[str, Optional[int]] = {}
    for name in REQUIRED_DATASET_COLUMNS + OPTIONAL_DATASET_COLUMNS:
        positions[name] = headers.index(name) if name in headers else None

    if any(positions[name] is None for name in REQUIRED_DATASET_COLUMNS):
        return []

    rows: List[DatasetRow] = []
    for ordinal, record in enumerate(records, start=1):
        rows.append(DatasetRow(
            row_id=f"{ROW_ID_PREFIX}:{ordinal + 1}",
            query=_column(record, positions["query"]),
            subtype=_normalize_subtype(_column(record, positions["error_subtype"])),
            error_type=_column(record, positions["error_type"]),
            emotion=_column(record, positions["emotion"]),
            feedback_target=_column(record, positions["feedback_target"]),
            intended_learning_outcome=_column(record, positions["intended_learning_outcome"]),
        ))
    return rows


def build_index(rows: List[DatasetRow]) -> SubtypeIndex:
    """Group rows by subtype, preserving first-seen order within each group."""
    grouped: Dict[str, List[DatasetRow]] = {}
    for row in rows:
        if not row.subtype:
            continue
        grouped.setdefault(row.subtype, []).append(row)
    return SubtypeIndex(
        {key: tuple(value) for key, value in grouped.items()},
        row_count=len(rows),
    )


def parse_dataset(raw_table: str) -> SubtypeIndex:
    """
    Parse a quoted CSV table into a SubtypeIndex.

    Returns an empty index when the table has zero data rows or when the
    query / error_subtype columns are missing. Callers must treat an empty
    index as fatal; load_dataset() does so.
    """
    return build_index(parse_records(raw_table))


def load_dataset(path: Path) -> SubtypeIndex:
    """
    Read a UTF-8 dataset file and parse it.

    Raises
    ------
    ConfigurationError
        DATASET_EMPTY if the file yields no indexed subtype.
    FileNotFoundError
        If path does not exist.
    """
    path = Path(path)
    with open(path, "r", encoding="utf-8", newline="") as fh:
        raw = fh.read()
    index = parse_dataset(raw)
    if len(index) == 0:
        raise ConfigurationError(
            f"Dataset {path} is empty or malformed: expected a header with "
            f"columns {', '.join(REQUIRED_DATASET_COLUMNS)} and at least one "
            "data row with a non-empty error_subtype.",
            failure_type_id="DATASET_EMPTY",
            context=str(path),
        )
    return index
