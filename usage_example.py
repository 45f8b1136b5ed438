# usage_example.py
# Minimal usage example for the SQL-Engage index and row selector.
# This file is not part of the sqltutor package. For reference only.

from sqltutor.core.canonicalizer import canonicalize, normalize_sql_error_subtype, require_fallback
from sqltutor.core.dataset_index import load_dataset
from sqltutor.core.row_selector import select_row
from sqltutor.policy.hint_text import deterministic_hint_text
from sqltutor.utils.paths import SQL_ENGAGE_CSV_PATH

# Load the shipped dataset; the fallback subtype must be present.
index = load_dataset(SQL_ENGAGE_CSV_PATH)
require_fallback(index)
canonical = index.canonical_set()

# Free-text labels resolve to canonical subtypes.
# "no such column" is an alias    -> "undefined column"
# an unknown label                -> "incomplete query" (fallback)
for label in ("Undefined Column", "no such column", "totally-unknown-subtype"):
    print(f"{label!r:28} -> {canonicalize(label, canonical)}")

# Raw engine errors are normalized the same way.
subtype = normalize_sql_error_subtype(
    "no such column: emp_name",
    "SELECT emp_name FROM employees",
    canonical,
)

# Row selection depends only on (subtype, seed), so the same learner and
# problem always cite the same example row.
seed = "learner-a:problem-select-basics"
row_id = select_row(index, subtype, seed)
print(f"{subtype} / {seed} -> {row_id}")
assert row_id == select_row(index, subtype, seed)

for level in (1, 2, 3):
    print(f"H{level}: {deterministic_hint_text(subtype, level)}")

# Expected output (first lines):
# 'Undefined Column'           -> undefined column
# 'no such column'             -> undefined column
# 'totally-unknown-subtype'    -> incomplete query
