# SPDX-License-Identifier: MIT
"""
View caches.

Each view keeps the data one tab (or the status bar) renders and updates
itself from AppMessages. The Textual widgets in app.py only read from
these caches, so all merging logic is testable without a running app.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Set, Tuple

from rich.markup import escape

from ..loader.arrow_convert import batches_to_string_rows
from ..models import DataFileInfo, FieldInfo, ManifestInfo, SchemaInfo, SnapshotInfo, TableMetadata
from .app_state import AppState
from .formatting import HEAD_MARKER, VIEWED_MARKER, format_count, truncate
from .messages import (
    DataFileStatsReady,
    DataReady,
    Error,
    LoadingFinished,
    LoadingStarted,
    ManifestsReady,
    MessageHandler,
    MetadataReady,
    TotalRowCount,
)


class IgnoringHandler(MessageHandler):
    """MessageHandler whose handlers all do nothing; views override what they use."""

    def on_data_ready(self, msg: DataReady) -> None:
        pass

    def on_metadata_ready(self, msg: MetadataReady) -> None:
        pass

    def on_manifests_ready(self, msg: ManifestsReady) -> None:
        pass

    def on_data_file_stats_ready(self, msg: DataFileStatsReady) -> None:
        pass

    def on_total_row_count(self, msg: TotalRowCount) -> None:
        pass

    def on_loading_started(self, msg: LoadingStarted) -> None:
        pass

    def on_loading_finished(self, msg: LoadingFinished) -> None:
        pass

    def on_error(self, msg: Error) -> None:
        pass


# =============================================================================
# Data tab
# =============================================================================


class DataView(IgnoringHandler):
    """Fetched rows plus the display-only column mask."""

    def __init__(self) -> None:
        self.columns: List[str] = []
        self.rows: List[List[str]] = []
        self.hidden: Set[str] = set()
        self.version = 0

    def on_data_ready(self, msg: DataReady) -> None:
        self.columns, self.rows = batches_to_string_rows(msg.batches)
        self.hidden &= set(self.columns)
        self.version += 1

    def toggle_column(self, name: str) -> bool:
        """Flip visibility of a column. Returns False for unknown names."""
        if name not in self.columns:
            return False
        if name in self.hidden:
            self.hidden.discard(name)
        else:
            self.hidden.add(name)
        self.version += 1
        return True

    def visible_columns(self) -> List[str]:
        return [c for c in self.columns if c not in self.hidden]

    def visible_rows(self) -> List[List[str]]:
        keep = [i for i, c in enumerate(self.columns) if c not in self.hidden]
        return [[row[i] for i in keep] for row in self.rows]


# =============================================================================
# Schema tab
# =============================================================================


class SchemaView(IgnoringHandler):
    """Schema tree pinned to the schema of the viewed snapshot."""

    def __init__(self) -> None:
        self.metadata: Optional[TableMetadata] = None
        self.viewed_schema_id: Optional[int] = None

    def on_metadata_ready(self, msg: MetadataReady) -> None:
        self.metadata = msg.metadata
        if self.viewed_schema_id is None or msg.metadata.schema_by_id(self.viewed_schema_id) is None:
            self.viewed_schema_id = msg.metadata.current_schema_id

    def set_viewed_schema(self, schema_id: Optional[int]) -> None:
        """Pin to schema_id; None restores the head schema."""
        if self.metadata is None:
            self.viewed_schema_id = schema_id
            return
        if schema_id is None or self.metadata.schema_by_id(schema_id) is None:
            schema_id = self.metadata.current_schema_id
        self.viewed_schema_id = schema_id

    @property
    def schema(self) -> Optional[SchemaInfo]:
        if self.metadata is None:
            return None
        return self.metadata.schema_by_id(self.viewed_schema_id)

    def flattened(self) -> List[Tuple[int, FieldInfo]]:
        """Depth-first (depth, field) pairs for tree rendering."""
        result: List[Tuple[int, FieldInfo]] = []

        def walk(fields: List[FieldInfo], depth: int) -> None:
            for f in fields:
                result.append((depth, f))
                walk(f.children, depth + 1)

        schema = self.schema
        if schema is not None:
            walk(schema.fields, 0)
        return result

    def history(self) -> List[Tuple[str, SchemaInfo]]:
        """All schemas with a marker for the one on screen."""
        if self.metadata is None:
            return []
        return [
            (VIEWED_MARKER if s.schema_id == self.viewed_schema_id else " ", s)
            for s in self.metadata.schemas
        ]


# =============================================================================
# Snapshots tab
# =============================================================================


class SnapshotView(IgnoringHandler):
    def __init__(self) -> None:
        self.snapshots: List[SnapshotInfo] = []
        self.current_snapshot_id: Optional[int] = None
        self.viewed_snapshot_id: Optional[int] = None

    def on_metadata_ready(self, msg: MetadataReady) -> None:
        self.snapshots = msg.metadata.sorted_snapshots()
        self.current_snapshot_id = msg.metadata.current_snapshot_id

    def set_viewed_snapshot(self, snapshot_id: Optional[int]) -> None:
        self.viewed_snapshot_id = snapshot_id

    def marker(self, snapshot: SnapshotInfo) -> str:
        if self.viewed_snapshot_id is not None and snapshot.snapshot_id == self.viewed_snapshot_id:
            return VIEWED_MARKER
        if snapshot.snapshot_id == self.current_snapshot_id:
            return HEAD_MARKER
        return " "

    def snapshot_at(self, index: int) -> Optional[SnapshotInfo]:
        if 0 <= index < len(self.snapshots):
            return self.snapshots[index]
        return None


# =============================================================================
# Files tab
# =============================================================================


class ManifestCache(str, Enum):
    INVALID = "invalid"
    REQUESTED = "requested"
    LOADED = "loaded"


@dataclass
class ManifestTotals:
    files: int
    rows: int
    size_bytes: int


class ManifestView(IgnoringHandler):
    """Manifest summaries and live data files for one snapshot selection."""

    def __init__(self) -> None:
        self.cache = ManifestCache.INVALID
        self.manifests: List[ManifestInfo] = []
        self.files_by_manifest: List[List[DataFileInfo]] = []
        self.snapshot_id: Optional[int] = None

    @property
    def needs_load(self) -> bool:
        return self.cache == ManifestCache.INVALID

    def invalidate(self) -> None:
        self.cache = ManifestCache.INVALID
        self.manifests = []
        self.files_by_manifest = []

    def mark_requested(self) -> None:
        self.cache = ManifestCache.REQUESTED

    def on_manifests_ready(self, msg: ManifestsReady) -> None:
        self.manifests = list(msg.manifests)
        self.files_by_manifest = []
        self.snapshot_id = msg.snapshot_id
        self.cache = ManifestCache.LOADED

    def on_data_file_stats_ready(self, msg: DataFileStatsReady) -> None:
        self.files_by_manifest = [list(group) for group in msg.files_by_manifest]

    def files_for(self, index: int) -> List[DataFileInfo]:
        if 0 <= index < len(self.files_by_manifest):
            return self.files_by_manifest[index]
        return []

    def totals(self, index: int) -> ManifestTotals:
        files = self.files_for(index)
        return ManifestTotals(
            files=len(files),
            rows=sum(f.record_count for f in files),
            size_bytes=sum(f.file_size_bytes for f in files),
        )


# =============================================================================
# Properties tab
# =============================================================================


class PropertiesView(IgnoringHandler):
    def __init__(self) -> None:
        self.metadata: Optional[TableMetadata] = None
        self.viewed_snapshot_id: Optional[int] = None

    def on_metadata_ready(self, msg: MetadataReady) -> None:
        self.metadata = msg.metadata

    def set_viewed_snapshot(self, snapshot_id: Optional[int]) -> None:
        self.viewed_snapshot_id = snapshot_id

    def viewed_snapshot(self) -> Optional[SnapshotInfo]:
        """The time-travel snapshot, or None at head or when the id is unknown."""
        if self.metadata is None or self.viewed_snapshot_id is None:
            return None
        return self.metadata.snapshot_by_id(self.viewed_snapshot_id)

    def sorted_properties(self) -> List[Tuple[str, str]]:
        if self.metadata is None:
            return []
        return sorted(self.metadata.properties.items())


# =============================================================================
# Status bar
# =============================================================================


class StatusView(MessageHandler):
    """Row counts, loading and error state for the status bar.

    Loading labels are tracked per task generation so the indicator clears
    only once every started task has finished.
    """

    def __init__(self, state: AppState) -> None:
        self.state = state
        self.loaded_rows = 0
        self.filtered_rows: Optional[int] = None
        self.table_total_rows: Optional[int] = None
        self.visible_columns = 0
        self.total_columns = 0
        self.error: Optional[str] = None
        self.in_flight: Dict[int, str] = {}

    def on_data_ready(self, msg: DataReady) -> None:
        if self.state.filter_active:
            self.filtered_rows = msg.total_rows
        else:
            self.loaded_rows = msg.total_rows
            self.filtered_rows = None

    def on_metadata_ready(self, msg: MetadataReady) -> None:
        pass

    def on_manifests_ready(self, msg: ManifestsReady) -> None:
        pass

    def on_data_file_stats_ready(self, msg: DataFileStatsReady) -> None:
        pass

    def on_total_row_count(self, msg: TotalRowCount) -> None:
        self.table_total_rows = msg.total

    def on_loading_started(self, msg: LoadingStarted) -> None:
        self.in_flight[msg.generation] = msg.label
        self.error = None

    def on_loading_finished(self, msg: LoadingFinished) -> None:
        self.in_flight.pop(msg.generation, None)

    def on_error(self, msg: Error) -> None:
        self.error = msg.text

    def clear_filtered(self) -> None:
        self.filtered_rows = None

    @property
    def loading(self) -> Optional[str]:
        """Label of the most recently started task still running."""
        if not self.in_flight:
            return None
        return self.in_flight[max(self.in_flight)]

    def render_text(self) -> str:
        total_suffix = f"/{format_count(self.table_total_rows)}" if self.table_total_rows is not None else ""
        more_hint = " (m:+rows)" if self.state.has_more else ""
        if self.filtered_rows is not None:
            text = f" Rows: {format_count(self.filtered_rows)}/{format_count(self.loaded_rows)}{total_suffix} (filtered){more_hint}"
        elif self.loaded_rows > 0 or self.table_total_rows is not None:
            text = f" Rows: {format_count(self.loaded_rows)}{total_suffix}{more_hint}"
        else:
            text = " Rows: -"
        parts = [text]
        if self.total_columns:
            parts.append(f"Cols: {self.visible_columns}/{self.total_columns}")
        if self.state.is_time_traveling:
            parts.append(f"[b]Snapshot: {self.state.selected_snapshot_id}[/b]")
        if self.state.applied_filter_text:
            parts.append(f"Filter: {escape(truncate(self.state.applied_filter_text))}")
        if self.loading:
            parts.append(f"[i]{escape(self.loading)}[/i]")
        if self.error:
            parts.append(f"[red]{escape(truncate(self.error))}[/red]")
        return " | ".join(parts)
