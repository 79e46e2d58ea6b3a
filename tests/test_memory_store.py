"""
Tests for the in-memory grid store.

The ledger tests rely on this store behaving like a worksheet, so its
row/column semantics are pinned down here.
"""

import pytest

from expense_ledger.services.storage import DuplicateError, InMemoryGridStore, NotFoundError


class TestPartitions:
    """Partition management."""

    def test_create_and_list_in_order(self, store):
        store.create_partition("January 2025")
        store.create_partition("February 2025")
        assert store.list_partitions() == ["January 2025", "February 2025"]
        assert store.has_partition("January 2025")

    def test_duplicate_rejected(self, store):
        store.create_partition("January 2025")
        with pytest.raises(DuplicateError):
            store.create_partition("January 2025")

    def test_get_missing_partition(self, store):
        with pytest.raises(NotFoundError):
            store.get_partition("March 2025")


class TestCells:
    """Reads, writes and row insertion."""

    def test_unwritten_cells_read_blank(self, store):
        store.create_partition("P")
        store.write_row("P", 3, 2, ["x"])
        assert store.read_column("P", 2) == ["", "", "x"]
        assert store.read_cell("P", 10, 10) == ""

    def test_read_column_pads_to_row_count(self, store):
        store.create_partition("P")
        store.write_row("P", 1, 1, ["a"])
        assert store.read_column("P", 1, 3) == ["a", "", ""]

    def test_last_row_ignores_trailing_blanks(self, store):
        store.create_partition("P")
        store.write_rows("P", 1, 1, [["a"], [""], ["", ""]])
        assert store.last_row("P") == 1

    def test_append_rows_with_gap(self, store):
        store.create_partition("P")
        store.write_row("P", 1, 2, ["title"])
        first = store.append_rows("P", [["label"]], start_column=2, gap=1)
        assert first == 3
        assert store.read_column("P", 2) == ["title", "", "label"]

    def test_insert_row_before_shifts_down(self, store):
        store.create_partition("P")
        store.write_rows("P", 1, 1, [["a"], ["b"], ["c"]])
        store.insert_row_before("P", 2)
        assert store.read_column("P", 1) == ["a", "", "b", "c"]

    def test_find_text(self, store):
        store.create_partition("P")
        store.write_row("P", 2, 9, ["MONTH TOTAL:", 100])
        assert store.find_text("P", "MONTH TOTAL:") == (2, 9)
        assert store.find_text("P", "missing") is None

    def test_find_text_ignores_case_and_surrounding_text(self, store):
        store.create_partition("P")
        store.write_row("P", 2, 9, [" Month Total: ", 100])
        assert store.find_text("P", "MONTH TOTAL:") == (2, 9)

    def test_read_column_stops_at_its_own_last_cell(self, store):
        store.create_partition("P")
        store.write_rows("P", 1, 1, [["a", "x"], ["b"], ["", "y"], ["", "z"]])
        assert store.read_column("P", 1) == ["a", "b"]
        assert store.read_column("P", 2) == ["x", "", "y", "z"]
        assert store.read_column("P", 1, 4) == ["a", "b", "", ""]

    def test_clear_columns(self, store):
        store.create_partition("P")
        store.write_rows("P", 1, 1, [["a", "b", "c"], ["d", "e", "f"]])
        store.clear_columns("P", 1, 2)
        assert store.dump("P") == [["", "", "c"], ["", "", "f"]]

    def test_rows_start_at_one(self, store):
        store.create_partition("P")
        with pytest.raises(ValueError):
            store.write_row("P", 0, 1, ["x"])

    def test_unknown_partition(self):
        with pytest.raises(NotFoundError):
            InMemoryGridStore().read_column("nope", 1)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
