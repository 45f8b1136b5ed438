# sqltutor/utils/constants.py
# Static policy configuration for SQL-Engage subtype resolution and replay.
#
# Every value below feeds the policy decision trace. The file is one of the
# digested inputs of the replay checksum gate ("sql_engage_policy"), so any
# edit here turns the next gate run into a SKIP until the baseline is
# regenerated with --update.
#
# Standard import pattern:
#   from sqltutor.utils.constants import (
#       DEFAULT_SUBTYPE_FALLBACK,
#       SUBTYPE_ALIASES,
#       SQL_ENGAGE_POLICY_VERSION,
#   )

import math


# ---------------------------------------------------------------------------
# SQL-ENGAGE DATASET POLICY
# ---------------------------------------------------------------------------

# Bump whenever row selection or canonicalization semantics change.
SQL_ENGAGE_POLICY_VERSION: str = "sql-engage-index-v3-hintid-contract"

# Must be present in every loaded dataset (ConfigurationError otherwise).
DEFAULT_SUBTYPE_FALLBACK: str = "incomplete query"

# Seed used by the index self-check.
INDEX_CHECK_SEED: str = "sql-engage-index-check"

# Row id prefix. Row ids are positional: "sql-engage:<line>".
ROW_ID_PREFIX: str = "sql-engage"

REQUIRED_DATASET_COLUMNS: tuple = ("query", "error_subtype")
OPTIONAL_DATASET_COLUMNS: tuple = (
    "error_type",
    "emotion",
    "feedback_target",
    "intended_learning_outcome",
)


# ---------------------------------------------------------------------------
# SUBTYPE ALIASES
# ---------------------------------------------------------------------------
# Non-canonical spelling (lower-cased, trimmed) -> canonical subtype.
# Static configuration; never derived from the dataset.

SUBTYPE_ALIASES: dict = {
    "unknown column":       "undefined column",
    "no such column":       "undefined column",
    "column not found":     "undefined column",
    "unknown table":        "undefined table",
    "no such table":        "undefined table",
    "table not found":      "undefined table",
    "unknown function":     "undefined function",
    "no such function":     "undefined function",
    "function not found":   "undefined function",
    "ambiguous column":     "ambiguous reference",
    "ambiguous table":      "ambiguous reference",
    "ambiguous identifier": "ambiguous reference",
}


# ---------------------------------------------------------------------------
# SUBTYPE -> CONCEPT MAP
# ---------------------------------------------------------------------------
# Every canonical SQL-Engage subtype maps to one or more concept ids of the
# tutor's concept graph. Checked against the dataset by
# sqltutor/verification/concept_map_check.py.

CONCEPT_IDS: tuple = (
    "select-basic",
    "where-clause",
    "joins",
    "aggregation",
    "order-by",
    "subqueries",
)

SUBTYPE_CONCEPT_MAP: dict = {
    "aggregation misuse":       ("aggregation",),
    "ambiguous reference":      ("joins",),
    "data type mismatch":       ("where-clause",),
    "incomplete query":         ("select-basic",),
    "incorrect distinct usage": ("select-basic",),
    "incorrect group by usage": ("aggregation",),
    "incorrect having clause":  ("aggregation",),
    "incorrect join usage":     ("joins",),
    "incorrect order by usage": ("order-by",),
    "incorrect select usage":   ("select-basic",),
    "incorrect wildcard usage": ("select-basic",),
    "inefficient query":        ("select-basic",),
    "missing commas":           ("select-basic",),
    "missing quotes":           ("select-basic",),
    "missing semicolons":       ("select-basic",),
    "misspelling":              ("where-clause",),
    "non-standard operators":   ("where-clause",),
    "operator misuse":          ("where-clause",),
    "undefined column":         ("select-basic",),
    "undefined function":       ("aggregation",),
    "undefined table":          ("joins",),
    "unmatched brackets":       ("where-clause",),
    "wrong positioning":        ("order-by",),
}

# Dataset subtypes allowed to have no concept mapping.
UNMAPPED_SUBTYPES_ALLOWED: frozenset = frozenset()


# ---------------------------------------------------------------------------
# HINT LADDER GUIDANCE
# ---------------------------------------------------------------------------
# Three rungs per subtype: H1 orientation, H2 targeted check, H3 procedure.
# Subtypes without an entry use the DEFAULT_SUBTYPE_FALLBACK ladder.

MAX_HINT_LEVEL: int = 3

SUBTYPE_LADDER_GUIDANCE: dict = {
    "incomplete query": (
        "Start by completing the missing part of your SQL statement.",
        "Check whether each clause is present and complete before running again.",
        "Build the query incrementally: SELECT -> FROM -> WHERE/JOIN/GROUP BY, validating each step.",
    ),
    "undefined table": (
        "The table reference is likely incorrect.",
        "Verify the exact table name from the schema and use that spelling.",
        "Match every table in your query to a real schema table, then retry.",
    ),
    "undefined column": (
        "One or more column names do not match the schema.",
        "Compare your selected/filtered columns against the exact column names in the table.",
        "Rewrite the query with only verified column names, then add extra fields one at a time.",
    ),
    "undefined function": (
        "A function in the query is not recognized.",
        "Replace unsupported function names with functions available in this SQL dialect.",
        "Confirm function signatures and test the function on a small query first.",
    ),
    "ambiguous reference": (
        "A column reference is ambiguous across multiple tables.",
        "Prefix overlapping columns with table names or aliases.",
        "Use explicit aliases throughout SELECT, WHERE, GROUP BY, and ORDER BY.",
    ),
    "wrong positioning": (
        "A clause appears in the wrong order.",
        "Reorder clauses to standard SQL order.",
        "Use a fixed skeleton (SELECT -> FROM -> JOIN -> WHERE -> GROUP BY -> HAVING -> ORDER BY).",
    ),
    "aggregation misuse": (
        "Your aggregate function or grouping logic needs adjustment.",
        "Check that all non-aggregated columns in SELECT appear in GROUP BY.",
        "Apply aggregates only to values you want to summarize, and ensure GROUP BY includes all other selected columns.",
    ),
    "data type mismatch": (
        "A value does not match the expected data type for this operation.",
        "Compare the column type with the value you are providing.",
        "Convert values to the correct type before comparison or insertion.",
    ),
    "incorrect group by usage": (
        "The GROUP BY clause is missing or contains incorrect columns.",
        "Ensure every non-aggregated column in SELECT is included in GROUP BY.",
        "Refactor the query to group by the exact set of non-aggregated columns.",
    ),
    "incorrect having clause": (
        "HAVING is being used incorrectly or filters are in the wrong place.",
        "Use HAVING only for conditions on aggregate results; move row filters to WHERE.",
        "Validate that aggregate conditions reference grouped data correctly.",
    ),
    "incorrect join usage": (
        "The JOIN condition or type is incorrect.",
        "Verify the join keys exist in both tables and the join type matches your intent.",
        "Specify explicit ON conditions and prefer explicit JOIN syntax over comma joins.",
    ),
    "incorrect order by usage": (
        "ORDER BY columns or direction are incorrect.",
        "Check that the sorting columns exist in the result set and ASC/DESC is intended.",
        "Limit sorting to necessary columns and ensure the order aligns with the requirement.",
    ),
    "missing commas": (
        "A comma is missing between columns or table references.",
        "Review the SELECT or FROM list and insert commas between items.",
        "Format lists with one item per line to make missing commas obvious.",
    ),
    "missing quotes": (
        "String literals are missing required quotes.",
        "Wrap text values in single quotes and escape embedded quotes properly.",
        "Consistently quote all string literals and verify special characters are escaped.",
    ),
    "misspelling": (
        "A keyword or identifier appears to be misspelled.",
        "Compare the spelling against the schema and SQL keywords.",
        "Use consistent naming conventions and verify against the database catalog.",
    ),
    "operator misuse": (
        "An operator is being used incorrectly for this context.",
        "Check that the operator fits the data types and logic of the comparison.",
        "Review operator precedence and use parentheses to clarify intent.",
    ),
    "unmatched brackets": (
        "Opening and closing brackets or parentheses do not match.",
        "Count brackets to locate the mismatch and ensure proper nesting.",
        "Balance every opening bracket with a corresponding closing bracket.",
    ),
}


# ---------------------------------------------------------------------------
# REPLAY POLICIES AND STRATEGY THRESHOLDS
# ---------------------------------------------------------------------------
# escalate  -- error count at which an explanation replaces hints.
# aggregate -- error count at which a textbook note is recommended.
# math.inf disables the rule (hint-only strategy).

STRATEGY_THRESHOLDS: dict = {
    "hint-only":       {"escalate": math.inf, "aggregate": math.inf},
    "adaptive":        {"escalate": 3,        "aggregate": 6},
    "adaptive-low":    {"escalate": 5,        "aggregate": 10},
    "adaptive-medium": {"escalate": 3,        "aggregate": 6},
    "adaptive-high":   {"escalate": 2,        "aggregate": 4},
}

# Hint views after which a further failed run triggers auto-escalation.
AUTO_ESCALATION_HINT_THRESHOLD: int = 3

# Time on a problem (ms) after which notes are recommended.
AGGREGATION_TIME_LIMIT_MS: int = 600_000

# Number of most recent error subtypes kept in the decision context.
RECENT_ERROR_WINDOW: int = 5

REPLAY_POLICIES: tuple = (
    {
        "id":             "hint-only-baseline",
        "strategy":       "hint-only",
        "policy_version": "hint-only-baseline-v2",
    },
    {
        "id":             "adaptive-textbook",
        "strategy":       "adaptive-medium",
        "policy_version": "adaptive-textbook-v2",
    },
)
