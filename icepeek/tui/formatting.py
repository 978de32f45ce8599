# SPDX-License-Identifier: MIT
"""
Shared formatting utilities for TUI components.

Byte sizes, timestamps and truncation used by the views and the status bar.
"""

from datetime import datetime, timezone
from typing import Optional

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S UTC"

ERROR_DISPLAY_MAX_LEN = 40

# Marker glyphs for snapshot rows
VIEWED_MARKER = "\u25c6"  # black diamond
HEAD_MARKER = "\u25b8"  # small right triangle


def format_size(num_bytes: int) -> str:
    """Human-readable byte size (B, KB, MB, GB).

    Examples:
        512 -> "512 B"
        2048 -> "2.0 KB"
        5 * 1024 ** 3 -> "5.0 GB"
    """
    kb = 1024
    mb = kb * 1024
    gb = mb * 1024
    if num_bytes >= gb:
        return f"{num_bytes / gb:.1f} GB"
    if num_bytes >= mb:
        return f"{num_bytes / mb:.1f} MB"
    if num_bytes >= kb:
        return f"{num_bytes / kb:.1f} KB"
    return f"{num_bytes} B"


def format_timestamp_ms(ms: Optional[int]) -> str:
    """Epoch milliseconds as a UTC timestamp string."""
    if ms is None:
        return "-"
    try:
        dt = datetime.fromtimestamp(ms / 1000, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return f"{ms}ms"
    return dt.strftime(TIMESTAMP_FORMAT)


def truncate(text: str, max_len: int = ERROR_DISPLAY_MAX_LEN) -> str:
    """Shorten text to max_len characters, ending in '...' when cut."""
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


def format_count(n: Optional[int]) -> str:
    return "-" if n is None else f"{n:,}"
