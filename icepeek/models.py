# SPDX-License-Identifier: MIT
"""
Data models for icepeek.

Display-side snapshots of Iceberg table metadata plus the request/result
types exchanged between the UI and the table store. Everything here is a
plain dataclass so views never touch pyiceberg objects directly.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .config import StorageConfig


# =============================================================================
# Schema
# =============================================================================


@dataclass
class FieldInfo:
    """One schema field; struct/list/map fields carry their children."""

    field_id: int
    name: str
    type_str: str
    required: bool
    doc: Optional[str] = None
    children: List["FieldInfo"] = field(default_factory=list)


@dataclass
class SchemaInfo:
    schema_id: int
    fields: List[FieldInfo] = field(default_factory=list)

    def field_names(self) -> List[str]:
        """Top-level column names in schema order."""
        return [f.name for f in self.fields]

    def find_field(self, field_id: int) -> Optional[FieldInfo]:
        """Look up a field anywhere in the tree by id."""
        stack = list(self.fields)
        while stack:
            current = stack.pop()
            if current.field_id == field_id:
                return current
            stack.extend(current.children)
        return None


# =============================================================================
# Snapshots, partitioning, sorting
# =============================================================================


@dataclass
class SnapshotInfo:
    snapshot_id: int
    parent_id: Optional[int]
    sequence_number: int
    timestamp_ms: int
    manifest_list: str
    schema_id: Optional[int]
    summary: Dict[str, str] = field(default_factory=dict)

    @property
    def operation(self) -> str:
        return self.summary.get("operation", "")


@dataclass
class PartitionFieldInfo:
    source_id: int
    field_id: int
    name: str
    transform: str


@dataclass
class PartitionSpecInfo:
    spec_id: int
    fields: List[PartitionFieldInfo] = field(default_factory=list)


@dataclass
class SortFieldInfo:
    source_id: int
    transform: str
    direction: str  # "asc" or "desc"
    null_order: str  # "nulls-first" or "nulls-last"


@dataclass
class SortOrderInfo:
    order_id: int
    fields: List[SortFieldInfo] = field(default_factory=list)


@dataclass
class TableMetadata:
    """Everything the Schema, Snapshots and Properties views render."""

    location: str
    table_uuid: str
    format_version: int
    last_updated_ms: int
    current_schema_id: int
    current_snapshot_id: Optional[int]
    schemas: List[SchemaInfo] = field(default_factory=list)
    snapshots: List[SnapshotInfo] = field(default_factory=list)
    partition_specs: List[PartitionSpecInfo] = field(default_factory=list)
    default_spec_id: int = 0
    sort_orders: List[SortOrderInfo] = field(default_factory=list)
    default_sort_order_id: int = 0
    properties: Dict[str, str] = field(default_factory=dict)

    def schema_by_id(self, schema_id: Optional[int]) -> Optional[SchemaInfo]:
        if schema_id is None:
            return None
        return next((s for s in self.schemas if s.schema_id == schema_id), None)

    def current_schema(self) -> Optional[SchemaInfo]:
        return self.schema_by_id(self.current_schema_id)

    def snapshot_by_id(self, snapshot_id: Optional[int]) -> Optional[SnapshotInfo]:
        if snapshot_id is None:
            return None
        return next((s for s in self.snapshots if s.snapshot_id == snapshot_id), None)

    def schema_id_for_snapshot(self, snapshot_id: Optional[int]) -> int:
        """Schema a snapshot was written with; head schema when unknown."""
        snapshot = self.snapshot_by_id(snapshot_id)
        if snapshot is not None and snapshot.schema_id is not None:
            return snapshot.schema_id
        return self.current_schema_id

    def sorted_snapshots(self) -> List[SnapshotInfo]:
        """Newest first; ties broken by sequence number."""
        return sorted(
            self.snapshots,
            key=lambda s: (s.timestamp_ms, s.sequence_number),
            reverse=True,
        )


# =============================================================================
# Manifests and data files
# =============================================================================


@dataclass
class ManifestInfo:
    path: str
    length: int
    content: str  # "data" or "deletes"
    partition_spec_id: int
    added_snapshot_id: Optional[int]
    sequence_number: int = 0
    added_files: int = 0
    existing_files: int = 0
    deleted_files: int = 0
    added_rows: int = 0
    existing_rows: int = 0
    deleted_rows: int = 0

    @property
    def live_files(self) -> int:
        return self.added_files + self.existing_files


@dataclass
class DataFileInfo:
    file_path: str
    file_format: str
    record_count: int
    file_size_bytes: int
    partition: Dict[str, Any] = field(default_factory=dict)
    null_value_counts: Dict[int, int] = field(default_factory=dict)
    lower_bounds: Dict[int, str] = field(default_factory=dict)
    upper_bounds: Dict[int, str] = field(default_factory=dict)


# =============================================================================
# Load and scan requests
# =============================================================================


@dataclass
class LoadCommand:
    """What to open, as given on the command line.

    Either metadata_path is set (direct load) or both catalog_uri and
    table_name are (REST catalog load).
    """

    metadata_path: Optional[str] = None
    catalog_uri: Optional[str] = None
    table_name: Optional[str] = None
    columns: Optional[List[str]] = None
    limit: Optional[int] = None
    no_limit: bool = False
    storage: StorageConfig = field(default_factory=StorageConfig)

    @property
    def is_catalog(self) -> bool:
        return self.catalog_uri is not None

    def describe(self) -> str:
        if self.is_catalog:
            return f"{self.table_name} @ {self.catalog_uri}"
        return self.metadata_path or ""


@dataclass
class ScanRequest:
    columns: Optional[List[str]] = None
    filter: Optional[Any] = None  # filter.Predicate
    snapshot_id: Optional[int] = None
    limit: Optional[int] = None


@dataclass
class ScanResult:
    batches: List[Any] = field(default_factory=list)  # pyarrow.RecordBatch
    has_more: bool = False
