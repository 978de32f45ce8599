# SPDX-License-Identifier: MIT
"""
Structured debug logging for icepeek.

Every event is one JSON object per line in <state dir>/debug.log.
Background workers log from their own threads, so writes are serialized.

Levels (ICEPEEK_DEBUG env var or the debugLevel setting):
    0 - disabled
    1 - info: task lifecycle, errors, table loads (default)
    2 - debug: adds stale-message drops and per-scan details
"""

import json
import os
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from .config import get_int_setting
from .paths import PathResolver

LEVEL_OFF = 0
LEVEL_INFO = 1
LEVEL_DEBUG = 2


def _resolve_level() -> int:
    env = os.environ.get("ICEPEEK_DEBUG")
    if env is not None:
        try:
            return int(env)
        except ValueError:
            return LEVEL_INFO
    return get_int_setting("debugLevel", LEVEL_INFO)


class DebugLogger:
    """JSON-lines event logger with one method per event kind."""

    def __init__(self, log_path: Optional[Path] = None, level: Optional[int] = None) -> None:
        self.log_path = log_path or PathResolver.debug_log()
        self.level = _resolve_level() if level is None else level
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self.level > LEVEL_OFF

    def _write(self, event: Dict[str, Any], level: int = LEVEL_INFO) -> None:
        if self.level < level:
            return
        record = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": "debug" if level >= LEVEL_DEBUG else "info",
            "pid": os.getpid(),
            "thread": threading.current_thread().name,
        }
        record.update(event)
        line = json.dumps(record, default=str)
        try:
            with self._lock:
                self.log_path.parent.mkdir(parents=True, exist_ok=True)
                with open(self.log_path, "a") as f:
                    f.write(line + "\n")
        except OSError:
            # Never let logging take down the viewer
            pass

    # -------------------------------------------------------------------------
    # Event methods
    # -------------------------------------------------------------------------

    def table_loaded(self, source: str, snapshot_id: Optional[int], schema_fields: int) -> None:
        self._write({
            "event": "table_loaded",
            "source": source,
            "snapshot_id": snapshot_id,
            "schema_fields": schema_fields,
        })

    def task_start(self, task: str, generation: int, details: Optional[Dict[str, Any]] = None) -> None:
        event = {"event": "task_start", "task": task, "generation": generation}
        if details:
            event.update(details)
        self._write(event)

    def task_end(self, task: str, generation: int, duration_ms: float, outcome: str) -> None:
        self._write({
            "event": "task_end",
            "task": task,
            "generation": generation,
            "duration_ms": round(duration_ms, 2),
            "outcome": outcome,
        })

    def scan_complete(self, rows: int, has_more: bool, limit: Optional[int], filtered: bool) -> None:
        self._write({
            "event": "scan_complete",
            "rows": rows,
            "has_more": has_more,
            "limit": limit,
            "filtered": filtered,
        }, level=LEVEL_DEBUG)

    def stale_message(self, kind: str, generation: int, latest: int) -> None:
        self._write({
            "event": "stale_message",
            "kind": kind,
            "generation": generation,
            "latest": latest,
        }, level=LEVEL_DEBUG)

    def filter_error(self, text: str, reason: str) -> None:
        self._write({"event": "filter_error", "filter": text, "err": reason})

    def error(self, op: str, err: str) -> None:
        self._write({"event": "error", "op": op, "err": err})


_logger: Optional[DebugLogger] = None
_logger_lock = threading.Lock()


def get_logger() -> DebugLogger:
    """Return the process-wide logger, creating it on first use."""
    global _logger
    with _logger_lock:
        if _logger is None:
            _logger = DebugLogger()
        return _logger


def reset_logger() -> None:
    """Drop the cached logger so the next get_logger() re-reads paths and level."""
    global _logger
    with _logger_lock:
        _logger = None
