#!/usr/bin/env python3
# sqltutor/verification/index_check.py
# SQL-Engage index self-check.
#
#   python -m sqltutor.verification.index_check [--dataset PATH] [--seed SEED]
#
# Asserts, for the shipped dataset:
#   - the index is non-empty and contains the fallback subtype;
#   - every canonical subtype selects a row for the check seed;
#   - an unknown label canonicalizes to the fallback and selects a row.
#
# Prints "<subtype> -> <row id>" per subtype. Exit 0 on success, 1 on any
# missing selection, 2 on configuration errors.

import argparse
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

from sqltutor.core.canonicalizer import canonicalize, require_fallback
from sqltutor.core.dataset_index import SubtypeIndex, load_dataset
from sqltutor.core.exceptions import TutorError
from sqltutor.core.row_selector import select_row
from sqltutor.utils.constants import DEFAULT_SUBTYPE_FALLBACK, INDEX_CHECK_SEED
from sqltutor.utils.paths import SQL_ENGAGE_CSV_PATH
from sqltutor.verification.data_models.failure_record import exit_code_for

UNKNOWN_CHECK_LABEL: str = "totally-unknown-subtype"


@dataclass(frozen=True)
class IndexCheckReport:
    selections:        Tuple[Tuple[str, Optional[str]], ...]
    unknown_canonical: str
    unknown_row_id:    Optional[str]
    failures:          Tuple[str, ...]

    @property
    def passed(self) -> bool:
        return not self.failures


def check_index(
    index:    SubtypeIndex,
    seed:     str = INDEX_CHECK_SEED,
    fallback: str = DEFAULT_SUBTYPE_FALLBACK,
) -> IndexCheckReport:
    """
    Resolve every subtype of index. Pure apart from require_fallback(),
    which raises ConfigurationError when the fallback is absent.
    """
    require_fallback(index, fallback)
    failures: List[str] = []

    selections = []
    for subtype in index.subtypes():
        row_id = select_row(index, subtype, seed)
        selections.append((subtype, row_id))
        if row_id is None:
            failures.append(f"SELECTION_MISSING: subtype '{subtype}' selected no row")

    unknown = canonicalize(UNKNOWN_CHECK_LABEL, index.canonical_set(), fallback)
    unknown_row = select_row(index, unknown, seed)
    if unknown != fallback:
        failures.append(
            f"SELECTION_MISSING: unknown subtype canonicalization mismatch. "
            f"Expected '{fallback}', got '{unknown}'."
        )
    if unknown_row is None:
        failures.append("SELECTION_MISSING: unknown subtype did not resolve to a deterministic row id.")

    return IndexCheckReport(
        selections=tuple(selections),
        unknown_canonical=unknown,
        unknown_row_id=unknown_row,
        failures=tuple(failures),
    )


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Self-check of the SQL-Engage subtype index.",
        prog="python -m sqltutor.verification.index_check",
    )
    parser.add_argument("--dataset", default=str(SQL_ENGAGE_CSV_PATH))
    parser.add_argument("--seed", default=INDEX_CHECK_SEED)
    args = parser.parse_args(argv)

    try:
        report = check_index(load_dataset(Path(args.dataset)), seed=args.seed)
    except TutorError as exc:
        print(str(exc), file=sys.stderr)
        return exit_code_for(exc.failure_type_id)

    for subtype, row_id in report.selections:
        print(f"{subtype} -> {row_id or 'MISSING'}")
    print(
        f"unknown -> {report.unknown_row_id or 'MISSING'} "
        f"(canonical: {report.unknown_canonical})"
    )
    for failure in report.failures:
        print(failure, file=sys.stderr)
    return 0 if report.passed else exit_code_for("SELECTION_MISSING")


if __name__ == "__main__":
    sys.exit(main())
