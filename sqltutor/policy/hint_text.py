# sqltutor/policy/hint_text.py
# Progressive hint text for the three-rung hint ladder.
#
# This is the deterministic (replay-mode) hint text provider. Its output is
# pre-authored ladder guidance plus text from the cited dataset row; it is
# excluded from the policy-only checksum, so a live provider may replace it
# without changing the decision trace.

from __future__ import annotations

import re
from typing import Callable, Optional

from sqltutor.core.dataset_index import DatasetRow
from sqltutor.utils.constants import (
    DEFAULT_SUBTYPE_FALLBACK,
    MAX_HINT_LEVEL,
    SUBTYPE_LADDER_GUIDANCE,
)

# (canonical_subtype, hint_level, anchor_row) -> hint text
HintTextProvider = Callable[[str, int, Optional[DatasetRow]], str]

_SINGLE_QUOTED_RE = re.compile(r"'[\w\s._]+'")
_DOUBLE_QUOTED_RE = re.compile(r'"[\w\s._]+"')
_WHITESPACE_RE = re.compile(r"\s+")
_TERMINAL_PUNCT = (".", "!", "?")


def normalize_spacing(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()


def scrub_specific_identifiers(text: str) -> str:
    """Replace quoted identifiers so a hint never leaks a dataset row's schema names."""
    text = _SINGLE_QUOTED_RE.sub("the referenced item", text)
    text = _DOUBLE_QUOTED_RE.sub("the referenced item", text)
    return normalize_spacing(text)


def append_support_sentence(base: str, addon: str) -> str:
    cleaned = normalize_spacing(addon)
    if not cleaned:
        return base
    if not cleaned.endswith(_TERMINAL_PUNCT):
        cleaned += "."
    return f"{base} {cleaned}"


def ladder_for(canonical_subtype: str) -> tuple:
    return SUBTYPE_LADDER_GUIDANCE.get(
        canonical_subtype,
        SUBTYPE_LADDER_GUIDANCE[DEFAULT_SUBTYPE_FALLBACK],
    )


def deterministic_hint_text(
    canonical_subtype: str,
    hint_level:        int,
    row:               Optional[DatasetRow] = None,
) -> str:
    """
    H1: ladder orientation only.
    H2: ladder check + the row's intended learning outcome.
    H3: ladder procedure + the row's feedback target.

    hint_level is clamped to [1, MAX_HINT_LEVEL].
    """
    ladder = ladder_for(canonical_subtype)
    level = max(1, min(MAX_HINT_LEVEL, int(hint_level)))

    if level == 1:
        return ladder[0]
    if level == 2:
        outcome = scrub_specific_identifiers(row.intended_learning_outcome if row else "")
        return append_support_sentence(ladder[1], outcome)
    feedback = scrub_specific_identifiers(row.feedback_target if row else "")
    return append_support_sentence(ladder[2], feedback)
