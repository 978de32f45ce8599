# SPDX-License-Identifier: MIT
"""Open a table through an Iceberg REST catalog."""

from typing import Optional, Tuple

from pyiceberg.catalog import load_catalog

from ..config import StorageConfig
from ..errors import TableNotFoundError, classify_error
from .table_handle import TableHandle

CATALOG_NAME = "rest"


def split_table_name(table_name: str) -> Tuple[str, str]:
    """Split "ns.sub.table" into ("ns.sub", "table").

    Raises:
        TableNotFoundError: when the name has no namespace part
    """
    namespace, _, table = table_name.rpartition(".")
    if not namespace or not table:
        raise TableNotFoundError(
            f"table name must be fully qualified (e.g., 'database.table'), got: {table_name}"
        )
    return namespace, table


def load_from_catalog(uri: str, table_name: str, storage: Optional[StorageConfig] = None) -> TableHandle:
    """Load a table from the REST catalog at uri.

    Storage properties are forwarded so the catalog's FileIO can reach
    data files.
    """
    namespace, table = split_table_name(table_name)
    storage = storage or StorageConfig.resolve()
    props = dict(storage.storage_props())
    props.update({"type": "rest", "uri": uri})
    try:
        catalog = load_catalog(CATALOG_NAME, **props)
        loaded = catalog.load_table(tuple(namespace.split(".")) + (table,))
    except Exception as e:
        raise classify_error(e) from e
    return TableHandle(loaded, source=f"{table_name} @ {uri}")
