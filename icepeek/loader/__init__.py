# SPDX-License-Identifier: MIT
"""
Table store adapter.

Everything that touches pyiceberg lives in this package: opening tables
(directly from metadata files or through a REST catalog), extracting
metadata, scanning rows and walking manifests.
"""

from ..models import LoadCommand
from .catalog_loader import load_from_catalog
from .direct_loader import load_direct
from .table_handle import TableHandle, TableSlot


def open_table(command: LoadCommand) -> TableHandle:
    """Open the table a LoadCommand points at.

    Raises:
        IcepeekError: classified failure from either loader
    """
    if command.is_catalog:
        return load_from_catalog(command.catalog_uri, command.table_name or "", command.storage)
    return load_direct(command.metadata_path or "", command.storage)


__all__ = [
    "TableHandle",
    "TableSlot",
    "load_direct",
    "load_from_catalog",
    "open_table",
]
