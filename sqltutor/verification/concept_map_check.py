#!/usr/bin/env python3
# sqltutor/verification/concept_map_check.py
# SQL-Engage subtype-to-concept map check.
#
#   python -m sqltutor.verification.concept_map_check [--dataset PATH]
#
# Fails when:
#   - a dataset subtype has no concept mapping;
#   - a mapped subtype does not occur in the dataset;
#   - a mapped subtype has an empty concept list;
#   - a mapping names a concept id outside CONCEPT_IDS.
#
# Exit 0 on success, 1 (CONCEPT_MAP_INCOMPLETE) on any failure, 2 on
# configuration errors.

import argparse
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import AbstractSet, Iterable, List, Mapping, Optional, Sequence, Tuple

from sqltutor.core.dataset_index import load_dataset
from sqltutor.core.exceptions import TutorError
from sqltutor.utils.constants import (
    CONCEPT_IDS,
    SUBTYPE_CONCEPT_MAP,
    UNMAPPED_SUBTYPES_ALLOWED,
)
from sqltutor.utils.paths import SQL_ENGAGE_CSV_PATH
from sqltutor.verification.data_models.failure_record import exit_code_for


@dataclass(frozen=True)
class ConceptMapReport:
    subtype_count:     int
    mapped_count:      int
    missing_subtypes:  Tuple[str, ...]
    unknown_subtypes:  Tuple[str, ...]
    empty_mappings:    Tuple[str, ...]
    invalid_concepts:  Tuple[Tuple[str, str], ...]

    @property
    def passed(self) -> bool:
        return not (
            self.missing_subtypes
            or self.unknown_subtypes
            or self.empty_mappings
            or self.invalid_concepts
        )

    def failures(self) -> List[str]:
        lines = []
        if self.missing_subtypes:
            lines.append(
                f"Missing mappings ({len(self.missing_subtypes)}): "
                + ", ".join(self.missing_subtypes)
            )
        if self.unknown_subtypes:
            lines.append(
                f"Mapped but non-canonical subtypes ({len(self.unknown_subtypes)}): "
                + ", ".join(self.unknown_subtypes)
            )
        if self.empty_mappings:
            lines.append(
                f"Subtypes with empty concept mapping ({len(self.empty_mappings)}): "
                + ", ".join(self.empty_mappings)
            )
        if self.invalid_concepts:
            lines.append(
                f"Mappings using unknown concept IDs ({len(self.invalid_concepts)}): "
                + ", ".join(f"{subtype} -> {concept}" for subtype, concept in self.invalid_concepts)
            )
        return lines


def check_concept_map(
    subtypes:          Iterable[str],
    concept_map:       Mapping[str, Sequence[str]] = SUBTYPE_CONCEPT_MAP,
    concept_ids:       Iterable[str] = CONCEPT_IDS,
    allowed_unmapped:  AbstractSet[str] = UNMAPPED_SUBTYPES_ALLOWED,
) -> ConceptMapReport:
    """
    Compare the canonical subtypes of a dataset against concept_map. Pure.

    Map keys are compared trimmed and lower-cased, like dataset subtypes.
    """
    canonical = sorted(set(subtypes))
    mapping = {key.strip().lower(): tuple(value or ()) for key, value in concept_map.items()}
    known_concepts = set(concept_ids)

    return ConceptMapReport(
        subtype_count=len(canonical),
        mapped_count=len(mapping),
        missing_subtypes=tuple(
            s for s in canonical if s not in mapping and s not in allowed_unmapped
        ),
        unknown_subtypes=tuple(s for s in sorted(mapping) if s not in canonical),
        empty_mappings=tuple(s for s in sorted(mapping) if not mapping[s]),
        invalid_concepts=tuple(
            (s, concept)
            for s in sorted(mapping)
            for concept in mapping[s]
            if concept not in known_concepts
        ),
    )


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Check the SQL-Engage subtype-to-concept map against the dataset.",
        prog="python -m sqltutor.verification.concept_map_check",
    )
    parser.add_argument("--dataset", default=str(SQL_ENGAGE_CSV_PATH))
    args = parser.parse_args(argv)

    try:
        index = load_dataset(Path(args.dataset))
    except TutorError as exc:
        print(str(exc), file=sys.stderr)
        return exit_code_for(exc.failure_type_id)

    report = check_concept_map(index.subtypes())
    print(f"Canonical SQL-Engage subtypes: {report.subtype_count}")
    print(f"Mapped subtypes: {report.mapped_count}")
    if not report.passed:
        for line in report.failures():
            print(f"CONCEPT_MAP_INCOMPLETE: {line}", file=sys.stderr)
        return exit_code_for("CONCEPT_MAP_INCOMPLETE")

    print("PASS: subtype-to-concept mapping covers canonical SQL-Engage subtypes.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
