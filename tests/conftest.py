# tests/conftest.py
# Shared fixtures: a small SQL-Engage table, HintWise records, a replay
# fixture. All fixtures are deterministic and build files under tmp_path.

import json
from pathlib import Path

import pytest

from sqltutor.core.dataset_index import parse_dataset


# Five records, one blank line, one multi-line quoted field.
#   record 1 -> sql-engage:2   incomplete query
#   record 2 -> sql-engage:3   undefined column
#   (blank line: skipped, consumes no id)
#   record 3 -> sql-engage:4   undefined table
#   record 4 -> sql-engage:5   undefined column (query spans two lines)
#   record 5 -> sql-engage:6   no subtype (not indexed)
SAMPLE_CSV = (
    "query,error_type,error_subtype,emotion,feedback_target,intended_learning_outcome\n"
    '"SELECT a, b FROM",syntax error,incomplete query,frustration,'
    "\"Finish the FROM clause, e.g. 't'.\",Complete every clause\n"
    'SELECT x FROM t,semantic error,  Undefined Column ,confusion,'
    '"Column ""x"" is unknown.",Check column names\n'
    "\n"
    "SELECT * FROM tt,semantic error,undefined table,confusion,No table tt.,Use real tables\n"
    '"SELECT\n  y FROM t",semantic error,undefined column,confusion,Column y is unknown.,Check names\n'
    "SELECT 1,,,neutral,,\n"
)


@pytest.fixture
def sample_csv() -> str:
    return SAMPLE_CSV


@pytest.fixture
def sample_index():
    return parse_dataset(SAMPLE_CSV)


@pytest.fixture
def sample_csv_path(tmp_path) -> Path:
    path = tmp_path / "sql_engage_dataset.csv"
    path.write_text(SAMPLE_CSV, encoding="utf-8")
    return path


# =============================================================================
# HintWise
# =============================================================================

def _record(topic, challenge, personality, *hints):
    return {
        "topic": topic,
        "challenge": challenge,
        "personality": personality,
        "hints": [{"label": label, "hint": hint} for label, hint in hints],
    }


@pytest.fixture
def hintwise_records() -> list:
    return [
        _record("Joins", "Employees with departments", "Mentor",
                ("H1", "Combine two tables."),
                ("H2", "Use JOIN ... ON."),
                ("H3", "JOIN departments d ON e.department_id = d.id")),
        _record("aggregation", "Average salary", "Socratic",
                ("H1", "Which function averages?"),
                ("H2", "AVG with GROUP BY.")),
        _record("Filtering", "Hired after 2020", "Mentor",
                ("h1", "  Use WHERE.  "),
                ("H2", "Compare hire_date."),
                ("H2", "ignored duplicate level"),
                ("note", "not a level"),
                ("H3", "WHERE hire_date > '2020-12-31'")),
    ]


@pytest.fixture
def write_hintwise(tmp_path):
    """Factory: write records as the extracted HintWise-main dataset under a source root."""
    def _write(records, source_root: Path = None) -> Path:
        root = source_root or (tmp_path / "hintwise")
        target = root / "HintWise-main" / "hints_dataset.json"
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(json.dumps(records, indent=2), encoding="utf-8")
        return root
    return _write


# =============================================================================
# Replay fixture
# =============================================================================

@pytest.fixture
def replay_fixture_dict() -> dict:
    """
    learner-1: four errors then a success, all within 40 s.
    learner-2: one unknown subtype (falls back) then a success.
    """
    return {
        "fixtureId": "test-fixture",
        "baseTimestampMs": 1_000_000,
        "learners": [
            {
                "learnerId": "learner-1",
                "problemId": "p-1",
                "attempts": [
                    {"attemptId": "l1-a1", "offsetMs": 0, "outcome": "error", "errorSubtype": "undefined column"},
                    {"attemptId": "l1-a2", "offsetMs": 10_000, "outcome": "error", "errorSubtype": "no such column"},
                    {"attemptId": "l1-a3", "offsetMs": 20_000, "outcome": "error", "errorSubtype": "undefined column"},
                    {"attemptId": "l1-a4", "offsetMs": 30_000, "outcome": "error", "errorSubtype": "undefined column"},
                    {"attemptId": "l1-a5", "offsetMs": 40_000, "outcome": "success"},
                ],
            },
            {
                "learnerId": "learner-2",
                "problemId": "p-2",
                "attempts": [
                    {"attemptId": "l2-a1", "offsetMs": 0, "outcome": "error", "errorSubtype": "never heard of it"},
                    {"attemptId": "l2-a2", "offsetMs": 5_000, "outcome": "success"},
                ],
            },
        ],
    }
