# SPDX-License-Identifier: MIT
"""
Background task orchestration.

Every table store call runs off the UI thread. Each operation is spawned
independently, reports progress through the send callable, and always
finishes with LoadingFinished. Nothing is cancelled; results arrive in
completion order and carry the generation they were spawned with.
"""

import threading
import time
from typing import Callable, List, Optional

from ..debug_logger import get_logger
from ..errors import classify_error
from ..loader import TableHandle, TableSlot, open_table
from ..loader.arrow_convert import total_row_count
from ..models import DataFileInfo, LoadCommand, ScanRequest
from .messages import (
    AppMessage,
    DataFileStatsReady,
    DataReady,
    Error,
    LoadingFinished,
    LoadingStarted,
    ManifestsReady,
    MetadataReady,
    TotalRowCount,
)

Send = Callable[[AppMessage], None]
Spawn = Callable[[Callable[[], None], str], None]
Opener = Callable[[LoadCommand], TableHandle]


def spawn_thread(fn: Callable[[], None], name: str) -> None:
    """Run fn on a new daemon thread."""
    threading.Thread(target=fn, name=f"icepeek-{name}", daemon=True).start()


class TaskOrchestrator:
    """Spawns initial load, rescan, row count and manifest load tasks.

    Args:
        send: Thread-safe callable delivering a message to the foreground
        slot: Holder of the shared TableHandle
        spawn: Runs a task body in the background (default: a daemon thread)
        opener: Resolves a LoadCommand into a TableHandle
    """

    def __init__(
        self,
        send: Send,
        slot: TableSlot,
        spawn: Optional[Spawn] = None,
        opener: Optional[Opener] = None,
    ) -> None:
        self.send = send
        self.slot = slot
        self.spawn = spawn or spawn_thread
        self.opener = opener or open_table

    # -------------------------------------------------------------------------
    # Spawning
    # -------------------------------------------------------------------------

    def spawn_initial_load(
        self, command: LoadCommand, limit: Optional[int], generation: int, count_generation: int
    ) -> None:
        self.spawn(
            lambda: self.initial_load(command, limit, generation, count_generation),
            "initial-load",
        )

    def spawn_rescan(
        self,
        predicate,
        columns: Optional[List[str]],
        snapshot_id: Optional[int],
        limit: Optional[int],
        generation: int,
    ) -> None:
        self.spawn(
            lambda: self.rescan(predicate, columns, snapshot_id, limit, generation),
            "rescan",
        )

    def spawn_count_rows(self, snapshot_id: Optional[int], generation: int) -> None:
        self.spawn(lambda: self.count_rows(snapshot_id, generation), "count-rows")

    def spawn_load_manifests(self, snapshot_id: Optional[int], generation: int) -> None:
        self.spawn(lambda: self.load_manifests(snapshot_id, generation), "load-manifests")

    # -------------------------------------------------------------------------
    # Task bodies (run on the background thread)
    # -------------------------------------------------------------------------

    def initial_load(
        self, command: LoadCommand, limit: Optional[int], generation: int, count_generation: int
    ) -> None:
        """Open the table, publish metadata and the first page of rows."""
        logger = get_logger()
        started = time.perf_counter()
        outcome = "ok"
        logger.task_start("initial_load", generation, {"source": command.describe()})
        try:
            self.send(LoadingStarted("Loading table...", generation=generation))
            try:
                handle = self.opener(command)
            except Exception as e:
                outcome = "load_error"
                err = classify_error(e)
                logger.error("initial_load", str(err))
                self.send(Error(f"Load error: {err}", generation=generation))
                return

            try:
                metadata = handle.extract_metadata()
                self.send(MetadataReady(metadata, generation=generation))
                schema = metadata.current_schema()
                logger.table_loaded(handle.source, metadata.current_snapshot_id, len(schema.fields) if schema else 0)
            except Exception as e:
                outcome = "metadata_error"
                logger.error("extract_metadata", str(e))
                self.send(Error(f"Metadata error: {classify_error(e)}", generation=generation))

            self.send(LoadingStarted("Scanning data...", generation=generation))
            request = ScanRequest(columns=command.columns, limit=limit)
            self._scan_and_publish(handle, request, generation)

            try:
                self.slot.install(handle)
            except RuntimeError as e:
                outcome = "already_loaded"
                self.send(Error(f"Load error: {e}", generation=generation))
                return
            self.spawn_count_rows(None, count_generation)
        finally:
            logger.task_end("initial_load", generation, (time.perf_counter() - started) * 1000, outcome)
            self.send(LoadingFinished(generation=generation))

    def rescan(
        self,
        predicate,
        columns: Optional[List[str]],
        snapshot_id: Optional[int],
        limit: Optional[int],
        generation: int,
    ) -> None:
        """Re-run the scan with a new filter, snapshot or limit."""
        logger = get_logger()
        started = time.perf_counter()
        outcome = "ok"
        logger.task_start("rescan", generation, {"snapshot_id": snapshot_id, "limit": limit})
        try:
            self.send(LoadingStarted("Scanning...", generation=generation))
            handle = self.slot.get()
            if handle is None:
                outcome = "no_table"
                self.send(Error("No table loaded", generation=generation))
                return
            request = ScanRequest(columns=columns, filter=predicate, snapshot_id=snapshot_id, limit=limit)
            if not self._scan_and_publish(handle, request, generation):
                outcome = "scan_error"
        finally:
            logger.task_end("rescan", generation, (time.perf_counter() - started) * 1000, outcome)
            self.send(LoadingFinished(generation=generation))

    def count_rows(self, snapshot_id: Optional[int], generation: int) -> None:
        """Publish the live row count of a snapshot; failures are only logged."""
        logger = get_logger()
        try:
            handle = self.slot.get()
            if handle is None:
                logger.error("count_rows", "no table loaded")
                return
            total = handle.count_live_rows(snapshot_id)
            self.send(TotalRowCount(total, generation=generation))
        except Exception as e:
            logger.error("count_rows", str(e))
        finally:
            self.send(LoadingFinished(generation=generation))

    def load_manifests(self, snapshot_id: Optional[int], generation: int) -> None:
        """Publish manifest summaries, then the live data files of each."""
        logger = get_logger()
        started = time.perf_counter()
        outcome = "ok"
        logger.task_start("load_manifests", generation, {"snapshot_id": snapshot_id})
        try:
            self.send(LoadingStarted("Loading manifests...", generation=generation))
            handle = self.slot.get()
            if handle is None:
                outcome = "no_table"
                self.send(Error("No table loaded", generation=generation))
                return

            try:
                manifests = handle.list_manifests(snapshot_id)
            except Exception as e:
                outcome = "manifest_list_error"
                logger.error("list_manifests", str(e))
                self.send(Error(f"Failed to load manifest list: {classify_error(e)}", generation=generation))
                return

            if manifests is None:
                outcome = "no_snapshot"
                self.send(ManifestsReady([], snapshot_id=snapshot_id, generation=generation))
                self.send(DataFileStatsReady([], generation=generation))
                return

            self.send(ManifestsReady(
                [handle.manifest_info(m) for m in manifests],
                snapshot_id=snapshot_id,
                generation=generation,
            ))

            groups: List[List[DataFileInfo]] = []
            for manifest in manifests:
                try:
                    groups.append(handle.live_data_files(manifest))
                except Exception as e:
                    outcome = "partial"
                    logger.error("load_manifest", str(e))
                    self.send(Error(f"Failed to load manifest: {classify_error(e)}", generation=generation))
                    groups.append([])
            self.send(DataFileStatsReady(groups, generation=generation))
        finally:
            logger.task_end("load_manifests", generation, (time.perf_counter() - started) * 1000, outcome)
            self.send(LoadingFinished(generation=generation))

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _scan_and_publish(self, handle: TableHandle, request: ScanRequest, generation: int) -> bool:
        try:
            result = handle.scan(request)
        except Exception as e:
            get_logger().error("scan", str(e))
            self.send(Error(f"Scan error: {classify_error(e)}", generation=generation))
            return False
        rows = total_row_count(result.batches)
        get_logger().scan_complete(rows, result.has_more, request.limit, request.filter is not None)
        self.send(DataReady(result.batches, rows, result.has_more, generation=generation))
        return True
