# sqltutor/utils/paths.py
# Repository-rooted default locations.
#
# Only the *default()* constructors of the path dataclasses read these.
# Logic functions always receive their paths explicitly.

from pathlib import Path

PACKAGE_ROOT: Path = Path(__file__).resolve().parent.parent
REPO_ROOT:    Path = PACKAGE_ROOT.parent

DATA_DIR:     Path = PACKAGE_ROOT / "data"
DIST_DIR:     Path = REPO_ROOT / "dist"

SQL_ENGAGE_CSV_PATH:   Path = DATA_DIR / "sql_engage_dataset.csv"
REPLAY_FIXTURE_PATH:   Path = DATA_DIR / "toy_replay_fixture.json"
HINTWISE_SOURCE_ROOT:  Path = DATA_DIR / "hintwise"

LADDER_OUTPUT_PATH:    Path = DIST_DIR / "hintwise" / "hintwise-ladder-map.v1.json"
REPLAY_OUTPUT_PATH:    Path = DIST_DIR / "replay" / "toy-replay-output.json"
RUNS_DIR:              Path = DIST_DIR / "verification" / "runs"

BASELINE_PATH:         Path = PACKAGE_ROOT / "verification" / "replay_checksum_baseline.json"


def display_path(path: Path, root: Path = REPO_ROOT) -> str:
    """path relative to root when it lies below root, else as given."""
    try:
        return str(Path(path).resolve().relative_to(root))
    except ValueError:
        return str(path)
