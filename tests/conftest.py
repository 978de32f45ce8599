"""
Pytest configuration and fixtures for icepeek tests.
"""

import sys
from pathlib import Path

# Ensure project root is in sys.path for 'icepeek' imports without installing
_project_root = Path(__file__).parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

from typing import Dict, List, Optional

import pyarrow as pa
import pytest

from icepeek.loader.scan import collect_batches
from icepeek.models import (
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

HEAD_SNAPSHOT = 3003
OLD_SNAPSHOT = 1001
MIDDLE_SNAPSHOT = 2002


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "tui: marks TUI tests")


@pytest.fixture
def temp_state_dir(tmp_path: Path, monkeypatch) -> Path:
    """Create and return a temporary state directory.

    Sets ICEPEEK_STATE and resets the debug logger so it picks up the path.
    """
    state_dir = tmp_path / ".local" / "state" / "icepeek"
    state_dir.mkdir(parents=True)
    monkeypatch.setenv("ICEPEEK_STATE", str(state_dir))
    monkeypatch.setenv("ICEPEEK_SETTINGS", str(tmp_path / "no-settings.json"))
    monkeypatch.delenv("ICEPEEK_DEBUG", raising=False)

    from icepeek.debug_logger import reset_logger
    reset_logger()

    return state_dir


@pytest.fixture(autouse=True)
def isolate_state_dir(temp_state_dir: Path):
    """Keep every test away from the real ~/.local/state/icepeek/debug.log."""
    yield temp_state_dir

    from icepeek.debug_logger import reset_logger
    reset_logger()


# =============================================================================
# Sample table
# =============================================================================


def make_batch(ids: List[int], names: Optional[List[str]] = None) -> pa.RecordBatch:
    """RecordBatch with an id column and a name column."""
    names = names if names is not None else [f"row-{i}" for i in ids]
    return pa.RecordBatch.from_pydict({"id": pa.array(ids, pa.int64()), "name": pa.array(names, pa.string())})


def _sample_metadata() -> TableMetadata:
    schema_v0 = SchemaInfo(0, [
        FieldInfo(1, "id", "long", True),
        FieldInfo(2, "name", "string", False),
    ])
    schema_v1 = SchemaInfo(1, [
        FieldInfo(1, "id", "long", True),
        FieldInfo(2, "name", "string", False),
        FieldInfo(3, "tags", "list<string>", False, children=[FieldInfo(4, "element", "string", True)]),
    ])
    snapshots = [
        SnapshotInfo(OLD_SNAPSHOT, None, 1, 1_700_000_000_000, "s3://b/t/metadata/snap-1.avro", 0,
                     {"operation": "append", "added-records": "10"}),
        SnapshotInfo(MIDDLE_SNAPSHOT, OLD_SNAPSHOT, 2, 1_700_000_100_000, "s3://b/t/metadata/snap-2.avro", 1,
                     {"operation": "append", "added-records": "5"}),
        SnapshotInfo(HEAD_SNAPSHOT, MIDDLE_SNAPSHOT, 3, 1_700_000_200_000, "s3://b/t/metadata/snap-3.avro", 1,
                     {"operation": "overwrite"}),
    ]
    return TableMetadata(
        location="s3://b/t",
        table_uuid="9c12d441-03fe-4693-9a96-a0705ddf69c1",
        format_version=2,
        last_updated_ms=1_700_000_200_000,
        current_schema_id=1,
        current_snapshot_id=HEAD_SNAPSHOT,
        schemas=[schema_v0, schema_v1],
        snapshots=snapshots,
        partition_specs=[PartitionSpecInfo(0, [PartitionFieldInfo(2, 1000, "name_bucket", "bucket[4]")])],
        sort_orders=[SortOrderInfo(1, [SortFieldInfo(1, "identity", "asc", "nulls-first")])],
        default_sort_order_id=1,
        properties={"write.format.default": "parquet", "owner": "data-eng"},
    )


@pytest.fixture
def sample_metadata() -> TableMetadata:
    return _sample_metadata()


def make_manifest(path: str, added_files: int = 1, added_rows: int = 10, content: str = "data") -> ManifestInfo:
    return ManifestInfo(
        path=path,
        length=4096,
        content=content,
        partition_spec_id=0,
        added_snapshot_id=HEAD_SNAPSHOT,
        added_files=added_files,
        added_rows=added_rows,
    )


def make_data_file(path: str, records: int = 10, size: int = 2048) -> DataFileInfo:
    return DataFileInfo(
        file_path=path,
        file_format="PARQUET",
        record_count=records,
        file_size_bytes=size,
        null_value_counts={1: 0, 2: 3},
        lower_bounds={1: "1"},
        upper_bounds={1: str(records)},
    )


class FakeHandle:
    """In-memory stand-in for TableHandle.

    Manifests are ManifestInfo objects already; files_by_path maps a
    manifest path to its live data files. Paths listed in failing_manifests
    raise on load.
    """

    def __init__(
        self,
        metadata: Optional[TableMetadata] = None,
        batches: Optional[List[pa.RecordBatch]] = None,
        manifests: Optional[Dict[Optional[int], List[ManifestInfo]]] = None,
        files_by_path: Optional[Dict[str, List[DataFileInfo]]] = None,
        failing_manifests=(),
        row_count: int = 0,
    ) -> None:
        self.metadata = metadata or _sample_metadata()
        self.batches = batches if batches is not None else [make_batch([1, 2, 3])]
        self.manifests = manifests if manifests is not None else {}
        self.files_by_path = files_by_path or {}
        self.failing_manifests = set(failing_manifests)
        self.row_count = row_count
        self.source = "fake://table"
        self.scan_requests: List[ScanRequest] = []
        self.scan_error: Optional[Exception] = None
        self.count_error: Optional[Exception] = None
        self.manifest_list_error: Optional[Exception] = None

    def extract_metadata(self) -> TableMetadata:
        return self.metadata

    def scan(self, request: ScanRequest) -> ScanResult:
        self.scan_requests.append(request)
        if self.scan_error is not None:
            raise self.scan_error
        return collect_batches(iter(self.batches), request.limit)

    def list_manifests(self, snapshot_id: Optional[int]) -> Optional[List[ManifestInfo]]:
        if self.manifest_list_error is not None:
            raise self.manifest_list_error
        return self.manifests.get(snapshot_id)

    def manifest_info(self, manifest: ManifestInfo) -> ManifestInfo:
        return manifest

    def live_data_files(self, manifest: ManifestInfo) -> List[DataFileInfo]:
        if manifest.path in self.failing_manifests:
            raise OSError(f"cannot read {manifest.path}")
        return self.files_by_path.get(manifest.path, [])

    def count_live_rows(self, snapshot_id: Optional[int]) -> int:
        if self.count_error is not None:
            raise self.count_error
        return self.row_count


@pytest.fixture
def fake_handle() -> FakeHandle:
    return FakeHandle()


class RecordingOrchestrator:
    """Records spawn requests instead of running them."""

    def __init__(self) -> None:
        self.calls: List[tuple] = []

    def spawn_initial_load(self, command, limit, generation, count_generation) -> None:
        self.calls.append(("initial_load", {"command": command, "limit": limit,
                                            "generation": generation, "count_generation": count_generation}))

    def spawn_rescan(self, predicate, columns, snapshot_id, limit, generation) -> None:
        self.calls.append(("rescan", {"predicate": predicate, "columns": columns, "snapshot_id": snapshot_id,
                                      "limit": limit, "generation": generation}))

    def spawn_count_rows(self, snapshot_id, generation) -> None:
        self.calls.append(("count_rows", {"snapshot_id": snapshot_id, "generation": generation}))

    def spawn_load_manifests(self, snapshot_id, generation) -> None:
        self.calls.append(("load_manifests", {"snapshot_id": snapshot_id, "generation": generation}))

    def of(self, kind: str) -> List[dict]:
        return [args for name, args in self.calls if name == kind]

    def clear(self) -> None:
        self.calls.clear()


@pytest.fixture
def recording_orchestrator() -> RecordingOrchestrator:
    return RecordingOrchestrator()


def run_inline(fn, name) -> None:
    """Spawn replacement that runs a task body immediately."""
    fn()


@pytest.fixture
def batch_factory():
    return make_batch


@pytest.fixture
def manifest_factory():
    return make_manifest


@pytest.fixture
def data_file_factory():
    return make_data_file


@pytest.fixture
def handle_factory():
    return FakeHandle


@pytest.fixture
def inline_spawn():
    return run_inline
