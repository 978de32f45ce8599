# SPDX-License-Identifier: MIT
"""Tests for Arrow to display-string conversion."""

import pyarrow as pa

from icepeek.loader.arrow_convert import (
    batches_to_string_rows,
    column_names,
    format_cell,
    total_row_count,
)


class TestFormatCell:
    def test_null_is_empty(self):
        assert format_cell(None) == ""

    def test_bytes_as_hex(self):
        assert format_cell(b"\x01\xff") == "01ff"

    def test_float_repr(self):
        assert format_cell(0.1) == "0.1"
        assert format_cell(2.0) == "2.0"

    def test_other_values(self):
        assert format_cell(42) == "42"
        assert format_cell(True) == "True"
        assert format_cell("x") == "x"


class TestBatches:
    def test_empty(self):
        assert column_names([]) == []
        assert total_row_count([]) == 0
        assert batches_to_string_rows([]) == ([], [])

    def test_rows_across_batches(self, batch_factory):
        names, rows = batches_to_string_rows([batch_factory([1, 2]), batch_factory([3], ["c"])])
        assert names == ["id", "name"]
        assert rows == [["1", "row-1"], ["2", "row-2"], ["3", "c"]]

    def test_offset_and_limit(self, batch_factory):
        batches = [batch_factory([1, 2]), batch_factory([3, 4])]
        _, rows = batches_to_string_rows(batches, offset=1, limit=2)
        assert [r[0] for r in rows] == ["2", "3"]

    def test_nulls_render_empty(self):
        batch = pa.RecordBatch.from_pydict({"v": pa.array([None, 1.5], pa.float64())})
        _, rows = batches_to_string_rows([batch])
        assert rows == [[""], ["1.5"]]

    def test_total_row_count(self, batch_factory):
        assert total_row_count([batch_factory([1, 2]), batch_factory([3])]) == 3
