# SPDX-License-Identifier: MIT
"""Arrow record batches to display strings."""

from typing import Any, List, Optional, Sequence, Tuple

import pyarrow as pa

NULL_DISPLAY = ""


def format_cell(value: Any) -> str:
    if value is None:
        return NULL_DISPLAY
    if isinstance(value, bytes):
        return value.hex()
    if isinstance(value, float):
        return repr(value)
    return str(value)


def column_names(batches: Sequence[pa.RecordBatch]) -> List[str]:
    if not batches:
        return []
    return list(batches[0].schema.names)


def total_row_count(batches: Sequence[pa.RecordBatch]) -> int:
    return sum(b.num_rows for b in batches)


def batches_to_string_rows(
    batches: Sequence[pa.RecordBatch],
    offset: int = 0,
    limit: Optional[int] = None,
) -> Tuple[List[str], List[List[str]]]:
    """Render batches as rows of strings.

    Args:
        batches: Record batches sharing one schema
        offset: Rows to skip from the start
        limit: Maximum rows to return (None for all)

    Returns:
        (column_names, rows)
    """
    names = column_names(batches)
    rows: List[List[str]] = []
    position = 0
    for batch in batches:
        if position + batch.num_rows <= offset:
            position += batch.num_rows
            continue
        start = max(offset - position, 0)
        columns = [batch.column(i).to_pylist() for i in range(batch.num_columns)]
        for row_index in range(start, batch.num_rows):
            if limit is not None and len(rows) >= limit:
                return names, rows
            rows.append([format_cell(col[row_index]) for col in columns])
        position += batch.num_rows
    return names, rows
