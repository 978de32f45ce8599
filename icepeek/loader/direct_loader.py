# SPDX-License-Identifier: MIT
"""
Open a table straight from its metadata files, no catalog involved.

Metadata discovery for a table directory:
1. A path ending in .json is used as the metadata file itself
2. {path}/metadata/version-hint.text names the version -> v{N}.metadata.json
3. Local paths only: the highest v{N}.metadata.json under {path}/metadata/
"""

import re
from pathlib import Path
from typing import Optional

from pyiceberg.io import FileIO, load_file_io
from pyiceberg.table import StaticTable

from ..config import StorageConfig
from ..errors import TableNotFoundError, classify_error
from .table_handle import TableHandle

REMOTE_SCHEMES = ("s3://", "s3a://", "gs://")
_METADATA_FILE = re.compile(r"^v(\d+)\.metadata\.json$")


def is_remote_path(path: str) -> bool:
    return path.startswith(REMOTE_SCHEMES)


def normalize_local_path(path: str) -> str:
    """Absolute form of a local path; remote URLs pass through untouched."""
    if is_remote_path(path):
        return path
    try:
        return str(Path(path).expanduser().resolve())
    except OSError:
        return path


def latest_local_metadata(base: str) -> Optional[str]:
    """Highest-numbered v{N}.metadata.json in a local metadata directory."""
    metadata_dir = Path(base) / "metadata"
    if not metadata_dir.is_dir():
        return None
    best_version = -1
    best_path = None
    for entry in metadata_dir.iterdir():
        match = _METADATA_FILE.match(entry.name)
        if not match:
            continue
        version = int(match.group(1))
        if version > best_version:
            best_version = version
            best_path = str(entry)
    return best_path


def _read_version_hint(io: FileIO, hint_path: str) -> Optional[str]:
    try:
        with io.new_input(hint_path).open() as stream:
            return stream.read().decode("utf-8").strip()
    except (FileNotFoundError, OSError):
        return None


def resolve_metadata_path(path: str, io: FileIO) -> str:
    """Find the metadata JSON file for a table location.

    Raises:
        TableNotFoundError: when no metadata file can be located
    """
    if path.endswith(".json"):
        return path

    base = path.rstrip("/")
    hint_path = f"{base}/metadata/version-hint.text"
    version = _read_version_hint(io, hint_path)
    if version:
        return f"{base}/metadata/v{version}.metadata.json"

    if not is_remote_path(base):
        latest = latest_local_metadata(base)
        if latest:
            return latest

    raise TableNotFoundError(
        f"no Iceberg metadata found at: {path} (tried {hint_path}); "
        "pass the metadata JSON file directly or add a version-hint.text"
    )


def load_direct(path: str, storage: Optional[StorageConfig] = None) -> TableHandle:
    """Open a table from a metadata file or table directory.

    Args:
        path: Local path, s3:// or gs:// URL of a table or metadata file
        storage: Object store settings (defaults from the environment)

    Returns:
        TableHandle over a pyiceberg StaticTable.

    Raises:
        IcepeekError: classified failure
    """
    storage = storage or StorageConfig.resolve()
    location = normalize_local_path(path)
    props = storage.storage_props()
    try:
        io = load_file_io(props, location)
        metadata_location = resolve_metadata_path(location, io)
        table = StaticTable.from_metadata(metadata_location, props)
    except Exception as e:
        raise classify_error(e) from e
    return TableHandle(table, source=metadata_location)
