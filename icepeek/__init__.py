# SPDX-License-Identifier: MIT
"""
icepeek - terminal viewer for Apache Iceberg tables.

Browse schema history, snapshots, manifests and filtered rows of an
Iceberg table without writing anything.
"""

from ._version import __version__

__all__ = ["__version__"]
