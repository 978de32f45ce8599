# SPDX-License-Identifier: MIT
"""
Row scanning on top of pyiceberg.

Translates compiled filter predicates into pyiceberg expressions, streams
Arrow record batches and stops as soon as the requested row limit is met.
"""

from typing import Any, List, Optional

import pyarrow as pa
from pyiceberg.expressions import (
    AlwaysFalse,
    AlwaysTrue,
    And as IcebergAnd,
    BooleanExpression,
    EqualTo,
    GreaterThan,
    GreaterThanOrEqual,
    In as IcebergIn,
    IsNull as IcebergIsNull,
    LessThan,
    LessThanOrEqual,
    NotEqualTo,
    NotNull,
    Or as IcebergOr,
)

from ..filter import And, Compare, CompareOp, In, IsNotNull, IsNull, Or, Predicate
from ..models import ScanRequest, ScanResult

_COMPARE_EXPRESSIONS = {
    CompareOp.EQ: EqualTo,
    CompareOp.NE: NotEqualTo,
    CompareOp.GT: GreaterThan,
    CompareOp.LT: LessThan,
    CompareOp.GE: GreaterThanOrEqual,
    CompareOp.LE: LessThanOrEqual,
}


def to_iceberg_expression(predicate: Optional[Predicate]) -> BooleanExpression:
    """Convert a compiled predicate into a pyiceberg row filter.

    None means no filter. An empty IN list matches nothing.
    """
    if predicate is None:
        return AlwaysTrue()
    if isinstance(predicate, And):
        return IcebergAnd(to_iceberg_expression(predicate.left), to_iceberg_expression(predicate.right))
    if isinstance(predicate, Or):
        return IcebergOr(to_iceberg_expression(predicate.left), to_iceberg_expression(predicate.right))
    if isinstance(predicate, Compare):
        return _COMPARE_EXPRESSIONS[predicate.op](predicate.column, predicate.value.value)
    if isinstance(predicate, IsNull):
        return IcebergIsNull(predicate.column)
    if isinstance(predicate, IsNotNull):
        return NotNull(predicate.column)
    if isinstance(predicate, In):
        if not predicate.values:
            return AlwaysFalse()
        # Dedupe on (kind, value): 1, 1.0 and true are equal as Python values
        unique = {(d.kind, d.value): d.value for d in predicate.values}
        return IcebergIn(predicate.column, tuple(unique.values()))
    raise TypeError(f"unsupported predicate node: {predicate!r}")


def limit_batches(batches: List[pa.RecordBatch], limit: Optional[int]) -> List[pa.RecordBatch]:
    """Trim a batch list so it holds at most limit rows."""
    if limit is None:
        return list(batches)
    trimmed: List[pa.RecordBatch] = []
    remaining = limit
    for batch in batches:
        if remaining <= 0:
            break
        if batch.num_rows <= remaining:
            trimmed.append(batch)
            remaining -= batch.num_rows
        else:
            trimmed.append(batch.slice(0, remaining))
            remaining = 0
    return trimmed


def collect_batches(reader: Any, limit: Optional[int]) -> ScanResult:
    """Drain a RecordBatchReader until limit rows have been collected.

    has_more is True when the limit was reached, meaning more rows may exist.
    """
    batches: List[pa.RecordBatch] = []
    collected = 0
    for batch in reader:
        batches.append(batch)
        collected += batch.num_rows
        if limit is not None and collected >= limit:
            break
    has_more = limit is not None and collected >= limit
    return ScanResult(batches=limit_batches(batches, limit), has_more=has_more)


def execute_scan(table: Any, request: ScanRequest) -> ScanResult:
    """Run a scan against a pyiceberg table.

    Args:
        table: pyiceberg Table (or StaticTable)
        request: Projection, filter, snapshot and limit

    Returns:
        Collected batches plus the possible-truncation flag.
    """
    kwargs = {"row_filter": to_iceberg_expression(request.filter)}
    if request.columns:
        kwargs["selected_fields"] = tuple(request.columns)
    if request.snapshot_id is not None:
        kwargs["snapshot_id"] = request.snapshot_id
    if request.limit is not None:
        kwargs["limit"] = request.limit
    reader = table.scan(**kwargs).to_arrow_batch_reader()
    return collect_batches(reader, request.limit)
