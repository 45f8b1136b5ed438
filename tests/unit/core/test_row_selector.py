# tests/unit/core/test_row_selector.py
# Target: sqltutor/core/row_selector.py
# Known values are worked by hand from h = (h * 31 + byte) mod 2**32.

from sqltutor.core.row_selector import (
    deterministic_id,
    select_anchor_row,
    select_row,
    stable_hash,
    stable_hash_hex,
)


class TestStableHash:
    def test_empty(self):
        assert stable_hash("") == 0

    def test_single_byte(self):
        assert stable_hash("a") == 97

    def test_two_bytes(self):
        assert stable_hash("ab") == 97 * 31 + 98

    def test_matches_31_polynomial_for_ascii(self):
        assert stable_hash("hello") == 99162322

    def test_hashes_utf8_bytes_not_code_points(self):
        # "é" is c3 a9 in UTF-8: 195 * 31 + 169.
        assert stable_hash("é") == 6214

    def test_str_and_bytes_agree(self):
        assert stable_hash("undefined column|seed") == stable_hash(b"undefined column|seed")

    def test_wraps_to_unsigned_32_bit(self):
        value = stable_hash("x" * 500)
        assert 0 <= value <= 0xFFFFFFFF

    def test_hex_is_zero_padded(self):
        assert stable_hash_hex("ab") == "00000c21"
        assert stable_hash_hex("") == "00000000"


class TestDeterministicId:
    def test_format(self):
        assert deterministic_id("note", "ab") == "note-00000c21"

    def test_seed_changes_id(self):
        assert deterministic_id("explain", "a") != deterministic_id("explain", "b")


class TestSelectRow:
    def test_unknown_subtype_returns_none(self, sample_index):
        assert select_row(sample_index, "misspelling", "seed") is None
        assert select_anchor_row(sample_index, "misspelling", "seed") is None

    def test_single_row_subtype_always_selected(self, sample_index):
        for seed in ("a", "b", "learner-1:p-1"):
            assert select_row(sample_index, "undefined table", seed) == "sql-engage:4"

    def test_index_is_hash_modulo_row_count(self, sample_index):
        rows = sample_index.rows_for("undefined column")
        expected = rows[stable_hash("undefined column|learner-1:p-1") % len(rows)].row_id
        assert select_row(sample_index, "undefined column", "learner-1:p-1") == expected

    def test_repeatable(self, sample_index):
        first = select_row(sample_index, "undefined column", "seed-x")
        assert all(select_row(sample_index, "undefined column", "seed-x") == first for _ in range(5))

    def test_anchor_row_matches_row_id(self, sample_index):
        row = select_anchor_row(sample_index, "undefined column", "seed-x")
        assert row.row_id == select_row(sample_index, "undefined column", "seed-x")

