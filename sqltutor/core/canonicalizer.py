# sqltutor/core/canonicalizer.py
# Canonicalizer -- maps free-text error-subtype labels to canonical subtypes.
#
# Resolution is total: every input resolves to a subtype. Unknown labels
# degrade to the configured fallback rather than blocking a tutoring
# decision. The tagged form (SubtypeResolution) records how the subtype
# was reached so callers can log lost precision.

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import AbstractSet, Mapping, Optional

from sqltutor.core.dataset_index import SubtypeIndex
from sqltutor.core.exceptions import ConfigurationError
from sqltutor.utils.constants import DEFAULT_SUBTYPE_FALLBACK, SUBTYPE_ALIASES


class ResolutionKind(Enum):
    EXACT = "exact"
    ALIAS = "alias"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class SubtypeResolution:
    """
    Outcome of resolving one raw label.

    subtype is always set. kind is FALLBACK when the raw label was empty,
    unknown, or aliased to a subtype absent from the dataset.
    """
    raw_label: str
    subtype:   str
    kind:      ResolutionKind

    @property
    def is_fallback(self) -> bool:
        return self.kind is ResolutionKind.FALLBACK


def resolve_subtype(
    raw_label:     Optional[str],
    canonical_set: AbstractSet[str],
    fallback:      str = DEFAULT_SUBTYPE_FALLBACK,
    aliases:       Mapping[str, str] = SUBTYPE_ALIASES,
) -> SubtypeResolution:
    """
    Resolve raw_label to a canonical subtype.

    1. Trim and lower-case. Empty -> fallback.
    2. Substitute the alias target if the normalized label is an alias.
    3. Member of canonical_set -> that subtype; otherwise fallback.

    Never raises.
    """
    raw = raw_label or ""
    normalized = raw.strip().lower()
    if not normalized:
        return SubtypeResolution(raw, fallback, ResolutionKind.FALLBACK)

    aliased = aliases.get(normalized)
    candidate = aliased if aliased is not None else normalized
    if candidate in canonical_set:
        kind = ResolutionKind.ALIAS if aliased is not None else ResolutionKind.EXACT
        return SubtypeResolution(raw, candidate, kind)

    return SubtypeResolution(raw, fallback, ResolutionKind.FALLBACK)


def canonicalize(
    raw_label:     Optional[str],
    canonical_set: AbstractSet[str],
    fallback:      str = DEFAULT_SUBTYPE_FALLBACK,
    aliases:       Mapping[str, str] = SUBTYPE_ALIASES,
) -> str:
    """Return the canonical subtype for raw_label. See resolve_subtype()."""
    return resolve_subtype(raw_label, canonical_set, fallback, aliases).subtype


def require_fallback(index: SubtypeIndex, fallback: str = DEFAULT_SUBTYPE_FALLBACK) -> str:
    """
    Assert the fallback subtype is backed by at least one dataset row.

    Raises ConfigurationError (FALLBACK_SUBTYPE_MISSING) otherwise.
    Returns fallback for chaining.
    """
    if len(index.rows_for(fallback)) == 0:
        known = ", ".join(index.subtypes()) or "(none)"
        raise ConfigurationError(
            f"Missing required fallback subtype '{fallback}' in SQL-Engage "
            f"dataset. Known subtypes: {known}. Add at least one row with "
            f"error_subtype '{fallback}' or change DEFAULT_SUBTYPE_FALLBACK.",
            failure_type_id="FALLBACK_SUBTYPE_MISSING",
            context=fallback,
        )
    return fallback


# ---------------------------------------------------------------------------
# ENGINE ERROR MESSAGE NORMALIZATION
# ---------------------------------------------------------------------------
# Ordered rules: first match wins. Each rule maps a SQLite / sql.js error
# message pattern to a subtype label that is then canonicalized, so a label
# missing from the dataset still lands on the fallback.

_WRONG_POSITION_STARTS = ("from ", "where ", "group by ", "order by ", "join ")
_INCOMPLETE_TAIL_RE = re.compile(r"(\bselect\b|\bfrom\b|\bwhere\b|\bgroup by\b|\border by\b|\bjoin\b)\s*$")
_SYNTAX_RE = re.compile(r"near .*syntax error|syntax error|unexpected token|wrong order")
_INCOMPLETE_RE = re.compile(
    r"incomplete input|unterminated|unexpected end|unexpected eof|missing keyword|incomplete sql"
)

_ERROR_PATTERNS = (
    (re.compile(r"no such column|unknown column|has no column named|column not found"
                r"|does not exist.*column|invalid column|referenced column"), "undefined column"),
    (re.compile(r"no such table|unknown table|no such relation|table not found"
                r"|does not exist.*table|invalid table|referenced table"), "undefined table"),
    (re.compile(r"no such function|unknown function|undefined function|function not found"
                r"|does not exist.*function"), "undefined function"),
    (re.compile(r"ambiguous column|ambiguous table|ambiguous reference|is ambiguous"
                r"|ambiguous identifier"), "ambiguous reference"),
)

_LATE_ERROR_PATTERNS = (
    (re.compile(r"datatype mismatch|type mismatch|cannot convert|incompatible types|invalid.*type"),
     "data type mismatch"),
    (re.compile(r"constraint failed|unique constraint|foreign key constraint|check constraint"
                r"|not null constraint"), "constraint violation"),
    (re.compile(r"division by zero|divide by zero|arithmetic error|numeric overflow"), "operator misuse"),
    (re.compile(r"like pattern|escape sequence|invalid escape"), "operator misuse"),
    (re.compile(r"index.*already exists|index.*not found|no such index"), "misspelling"),
    (re.compile(r"no such view|view.*not found|invalid view"), "undefined table"),
    (re.compile(r"near\s*\"[^\"]*\"\s*: syntax error|missing comma|expected comma"), "missing commas"),
    (re.compile(r"unmatched.*bracket|unmatched.*parenthes|unclosed.*paren|mismatched.*bracket"),
     "unmatched brackets"),
)


def _is_likely_wrong_positioning(query: str) -> bool:
    compact = query.strip().lower()
    return bool(compact) and compact.startswith(_WRONG_POSITION_STARTS)


def _is_likely_incomplete(query: str) -> bool:
    compact = query.strip().lower()
    return bool(compact) and _INCOMPLETE_TAIL_RE.search(compact) is not None


def normalize_sql_error_subtype(
    error_message: str,
    query:         str,
    canonical_set: AbstractSet[str],
    fallback:      str = DEFAULT_SUBTYPE_FALLBACK,
) -> str:
    """
    Map a raw SQL engine error message (and the offending query) to a
    canonical subtype. Unrecognized messages resolve to fallback.
    """
    error = (error_message or "").lower()
    query = query or ""

    for pattern, label in _ERROR_PATTERNS:
        if pattern.search(error):
            return canonicalize(label, canonical_set, fallback)

    if _INCOMPLETE_RE.search(error) or _is_likely_incomplete(query):
        return canonicalize("incomplete query", canonical_set, fallback)

    if _SYNTAX_RE.search(error) and _is_likely_wrong_positioning(query):
        return canonicalize("wrong positioning", canonical_set, fallback)

    for pattern, label in _LATE_ERROR_PATTERNS:
        if pattern.search(error):
            return canonicalize(label, canonical_set, fallback)

    return canonicalize(fallback, canonical_set, fallback)
