# SPDX-License-Identifier: MIT
"""
Error taxonomy for icepeek.

Table store and filesystem failures are folded into a handful of
categories so background tasks can report them with a consistent prefix.
"""

import json
from typing import Optional

from pyiceberg.exceptions import (
    ForbiddenError,
    NoSuchNamespaceError,
    NoSuchTableError,
    ServerError,
    SignError,
    UnauthorizedError,
)


class IcepeekError(Exception):
    """Base class for every error raised by icepeek itself."""

    category = "error"

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause

    def __str__(self) -> str:
        return self.message


class TableConnectionError(IcepeekError):
    """Catalog or object store could not be reached."""

    category = "connection"


class TableNotFoundError(IcepeekError):
    """Table, namespace, metadata file or snapshot does not exist."""

    category = "not found"


class ParseError(IcepeekError):
    """Filter text could not be compiled."""

    category = "parse"


class MetadataFormatError(IcepeekError):
    """Table metadata exists but cannot be decoded."""

    category = "format"


class TableIOError(IcepeekError):
    """Any other read failure."""

    category = "io"


def classify_error(exc: BaseException) -> IcepeekError:
    """Map an arbitrary exception into the icepeek taxonomy.

    Already-classified errors are returned unchanged.

    Args:
        exc: Exception raised by pyiceberg, pyarrow or the filesystem

    Returns:
        An IcepeekError subclass instance wrapping exc.
    """
    if isinstance(exc, IcepeekError):
        return exc

    text = str(exc) or type(exc).__name__
    lowered = text.lower()

    if isinstance(exc, (NoSuchTableError, NoSuchNamespaceError, FileNotFoundError)):
        return TableNotFoundError(text, exc)
    if isinstance(exc, (UnauthorizedError, ForbiddenError, SignError)):
        return TableConnectionError(f"access denied: {text}", exc)
    if isinstance(exc, (ConnectionError, TimeoutError, ServerError)):
        return TableConnectionError(text, exc)
    if isinstance(exc, (json.JSONDecodeError, UnicodeDecodeError)):
        return MetadataFormatError(text, exc)
    if "connection refused" in lowered or "could not connect" in lowered:
        return TableConnectionError(text, exc)
    if "does not exist" in lowered or "not found" in lowered:
        return TableNotFoundError(text, exc)
    if isinstance(exc, ValueError):
        return MetadataFormatError(text, exc)
    return TableIOError(text, exc)
