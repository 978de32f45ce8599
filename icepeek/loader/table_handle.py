# SPDX-License-Identifier: MIT
"""
TableHandle and TableSlot.

TableHandle wraps one opened pyiceberg table and exposes the read-only
operations the viewer needs. TableSlot is the single lock-guarded place
the opened handle lives once the initial load completes.
"""

import threading
from typing import Any, Dict, List, Optional

from pyiceberg.conversions import from_bytes
from pyiceberg.manifest import ManifestContent, ManifestFile
from pyiceberg.types import ListType, MapType, NestedField, StructType

from ..models import (
    DataFileInfo,
    FieldInfo,
    ManifestInfo,
    PartitionFieldInfo,
    PartitionSpecInfo,
    ScanRequest,
    ScanResult,
    SchemaInfo,
    SnapshotInfo,
    SortFieldInfo,
    SortOrderInfo,
    TableMetadata,
)
from .scan import execute_scan


def _enum_text(value: Any) -> str:
    return str(getattr(value, "value", value))


def _field_info(nested: NestedField, name: Optional[str] = None) -> FieldInfo:
    field_type = nested.field_type
    children: List[FieldInfo] = []
    if isinstance(field_type, StructType):
        children = [_field_info(child) for child in field_type.fields]
    elif isinstance(field_type, ListType):
        children = [_field_info(field_type.element_field, "element")]
    elif isinstance(field_type, MapType):
        children = [
            _field_info(field_type.key_field, "key"),
            _field_info(field_type.value_field, "value"),
        ]
    return FieldInfo(
        field_id=nested.field_id,
        name=name or nested.name,
        type_str=str(field_type),
        required=nested.required,
        doc=nested.doc,
        children=children,
    )


def _summary_dict(snapshot: Any) -> Dict[str, str]:
    summary = snapshot.summary
    if summary is None:
        return {}
    result = {"operation": _enum_text(summary.operation)}
    result.update({str(k): str(v) for k, v in summary.additional_properties.items()})
    return result


class TableHandle:
    """Read-only facade over a pyiceberg Table."""

    def __init__(self, table: Any, source: str = "") -> None:
        self.table = table
        self.source = source

    @property
    def io(self) -> Any:
        return self.table.io

    # -------------------------------------------------------------------------
    # Metadata
    # -------------------------------------------------------------------------

    def extract_metadata(self) -> TableMetadata:
        """Snapshot the table metadata into display models."""
        metadata = self.table.metadata
        schemas = [
            SchemaInfo(schema_id=s.schema_id, fields=[_field_info(f) for f in s.fields])
            for s in metadata.schemas
        ]
        snapshots = [
            SnapshotInfo(
                snapshot_id=snap.snapshot_id,
                parent_id=snap.parent_snapshot_id,
                sequence_number=snap.sequence_number or 0,
                timestamp_ms=snap.timestamp_ms,
                manifest_list=snap.manifest_list or "",
                schema_id=snap.schema_id,
                summary=_summary_dict(snap),
            )
            for snap in metadata.snapshots
        ]
        specs = [
            PartitionSpecInfo(
                spec_id=spec.spec_id,
                fields=[
                    PartitionFieldInfo(
                        source_id=pf.source_id,
                        field_id=pf.field_id,
                        name=pf.name,
                        transform=str(pf.transform),
                    )
                    for pf in spec.fields
                ],
            )
            for spec in metadata.partition_specs
        ]
        orders = [
            SortOrderInfo(
                order_id=order.order_id,
                fields=[
                    SortFieldInfo(
                        source_id=sf.source_id,
                        transform=str(sf.transform),
                        direction=_enum_text(sf.direction),
                        null_order=_enum_text(sf.null_order),
                    )
                    for sf in order.fields
                ],
            )
            for order in metadata.sort_orders
        ]
        return TableMetadata(
            location=metadata.location,
            table_uuid=str(metadata.table_uuid),
            format_version=int(metadata.format_version),
            last_updated_ms=metadata.last_updated_ms,
            current_schema_id=metadata.current_schema_id,
            current_snapshot_id=metadata.current_snapshot_id,
            schemas=schemas,
            snapshots=snapshots,
            partition_specs=specs,
            default_spec_id=metadata.default_spec_id,
            sort_orders=orders,
            default_sort_order_id=metadata.default_sort_order_id,
            properties=dict(metadata.properties),
        )

    # -------------------------------------------------------------------------
    # Data
    # -------------------------------------------------------------------------

    def scan(self, request: ScanRequest) -> ScanResult:
        return execute_scan(self.table, request)

    def snapshot(self, snapshot_id: Optional[int]) -> Any:
        """Resolve a snapshot id, or the head snapshot when None."""
        if snapshot_id is None:
            return self.table.current_snapshot()
        return self.table.snapshot_by_id(snapshot_id)

    def list_manifests(self, snapshot_id: Optional[int]) -> Optional[List[ManifestFile]]:
        """Manifests of a snapshot; None when the snapshot does not exist."""
        snapshot = self.snapshot(snapshot_id)
        if snapshot is None:
            return None
        return list(snapshot.manifests(self.io))

    def manifest_info(self, manifest: ManifestFile) -> ManifestInfo:
        content = "deletes" if manifest.content == ManifestContent.DELETES else "data"
        return ManifestInfo(
            path=manifest.manifest_path,
            length=manifest.manifest_length,
            content=content,
            partition_spec_id=manifest.partition_spec_id,
            added_snapshot_id=manifest.added_snapshot_id,
            sequence_number=manifest.sequence_number or 0,
            added_files=manifest.added_files_count or 0,
            existing_files=manifest.existing_files_count or 0,
            deleted_files=manifest.deleted_files_count or 0,
            added_rows=manifest.added_rows_count or 0,
            existing_rows=manifest.existing_rows_count or 0,
            deleted_rows=manifest.deleted_rows_count or 0,
        )

    def live_data_files(self, manifest: ManifestFile) -> List[DataFileInfo]:
        """Data files of a manifest that are not marked deleted."""
        schema = self.table.schema()
        spec = self.table.specs().get(manifest.partition_spec_id)
        files = []
        for entry in manifest.fetch_manifest_entry(self.io, discard_deleted=True):
            data_file = entry.data_file
            files.append(DataFileInfo(
                file_path=data_file.file_path,
                file_format=_enum_text(data_file.file_format),
                record_count=data_file.record_count,
                file_size_bytes=data_file.file_size_in_bytes,
                partition=self._partition_values(spec, data_file.partition),
                null_value_counts=dict(data_file.null_value_counts or {}),
                lower_bounds=self._decode_bounds(schema, data_file.lower_bounds),
                upper_bounds=self._decode_bounds(schema, data_file.upper_bounds),
            ))
        return files

    def count_live_rows(self, snapshot_id: Optional[int]) -> int:
        """Sum record counts of live data files in a snapshot."""
        snapshot = self.snapshot(snapshot_id)
        if snapshot is None:
            raise LookupError(f"snapshot not found: {snapshot_id}")
        total = 0
        for manifest in snapshot.manifests(self.io):
            if manifest.content != ManifestContent.DATA:
                continue
            for entry in manifest.fetch_manifest_entry(self.io, discard_deleted=True):
                total += entry.data_file.record_count
        return total

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _decode_bounds(schema: Any, bounds: Optional[Dict[int, bytes]]) -> Dict[int, str]:
        decoded: Dict[int, str] = {}
        for field_id, raw in (bounds or {}).items():
            try:
                field = schema.find_field(field_id)
                decoded[field_id] = str(from_bytes(field.field_type, raw))
            except (ValueError, TypeError, KeyError, UnicodeDecodeError):
                decoded[field_id] = raw.hex()
        return decoded

    @staticmethod
    def _partition_values(spec: Any, partition: Any) -> Dict[str, Any]:
        if spec is None or partition is None:
            return {}
        values = {}
        for position, pf in enumerate(spec.fields):
            try:
                values[pf.name] = partition[position]
            except (IndexError, KeyError, TypeError):
                break
        return values


class TableSlot:
    """Holds the one authoritative TableHandle.

    get() copies the reference under the lock and returns it; callers do
    their I/O after the lock is released. install() succeeds exactly once.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._handle: Optional[TableHandle] = None

    def get(self) -> Optional[TableHandle]:
        with self._lock:
            return self._handle

    def install(self, handle: TableHandle) -> None:
        with self._lock:
            if self._handle is not None:
                raise RuntimeError("table handle already installed")
            self._handle = handle
