# tests/unit/verification/test_concept_map_check.py
# Target: sqltutor/verification/concept_map_check.py

from sqltutor.core.dataset_index import load_dataset
from sqltutor.utils.constants import CONCEPT_IDS, SUBTYPE_CONCEPT_MAP
from sqltutor.utils.paths import SQL_ENGAGE_CSV_PATH
from sqltutor.verification.concept_map_check import check_concept_map, main

_MAP = {
    "incomplete query": ("select-basic",),
    "undefined column": ("select-basic",),
    "undefined table":  ("joins",),
}


class TestCheckConceptMap:
    def test_complete_map_passes(self):
        report = check_concept_map(["incomplete query", "undefined column", "undefined table"], _MAP)
        assert report.passed
        assert report.subtype_count == 3
        assert report.mapped_count == 3
        assert report.failures() == []

    def test_unmapped_dataset_subtype(self):
        report = check_concept_map(["incomplete query", "undefined column", "undefined table", "misspelling"], _MAP)
        assert not report.passed
        assert report.missing_subtypes == ("misspelling",)

    def test_allowed_unmapped_subtype(self):
        report = check_concept_map(
            ["incomplete query", "undefined column", "undefined table", "misspelling"],
            _MAP,
            allowed_unmapped=frozenset({"misspelling"}),
        )
        assert report.passed

    def test_mapped_subtype_absent_from_dataset(self):
        report = check_concept_map(["incomplete query", "undefined column"], _MAP)
        assert report.unknown_subtypes == ("undefined table",)
        assert "Mapped but non-canonical subtypes (1): undefined table" in report.failures()

    def test_empty_mapping(self):
        concept_map = dict(_MAP, **{"undefined table": ()})
        report = check_concept_map(["incomplete query", "undefined column", "undefined table"], concept_map)
        assert report.empty_mappings == ("undefined table",)

    def test_unknown_concept_id(self):
        concept_map = dict(_MAP, **{"undefined table": ("joins", "window-functions")})
        report = check_concept_map(["incomplete query", "undefined column", "undefined table"], concept_map)
        assert report.invalid_concepts == (("undefined table", "window-functions"),)
        assert report.failures() == [
            "Mappings using unknown concept IDs (1): undefined table -> window-functions"
        ]

    def test_map_keys_are_normalized(self):
        report = check_concept_map(["incomplete query"], {" Incomplete Query ": ("select-basic",)})
        assert report.passed


class TestShippedMap:
    def test_covers_shipped_dataset(self):
        index = load_dataset(SQL_ENGAGE_CSV_PATH)
        assert check_concept_map(index.subtypes()).passed

    def test_every_concept_is_known(self):
        for subtype, concepts in SUBTYPE_CONCEPT_MAP.items():
            assert concepts, subtype
            assert set(concepts) <= set(CONCEPT_IDS), subtype


class TestMain:
    def test_shipped_dataset(self, capsys):
        assert main([]) == 0
        out = capsys.readouterr().out
        assert "Canonical SQL-Engage subtypes: 23" in out
        assert out.rstrip().endswith("PASS: subtype-to-concept mapping covers canonical SQL-Engage subtypes.")

    def test_sample_dataset_fails(self, sample_csv_path, capsys):
        assert main(["--dataset", str(sample_csv_path)]) == 1
        err = capsys.readouterr().err
        assert "CONCEPT_MAP_INCOMPLETE: Mapped but non-canonical subtypes" in err

    def test_unmapped_subtype_fails(self, tmp_path, capsys):
        path = tmp_path / "d.csv"
        path.write_text(
            "query,error_subtype\nSELECT,incomplete query\nSELECT x,brand new subtype\n",
            encoding="utf-8",
        )
        assert main(["--dataset", str(path)]) == 1
        assert "Missing mappings (1): brand new subtype" in capsys.readouterr().err

    def test_empty_dataset_exit_code(self, tmp_path, capsys):
        path = tmp_path / "d.csv"
        path.write_text("query,error_subtype\n", encoding="utf-8")
        assert main(["--dataset", str(path)]) == 2
