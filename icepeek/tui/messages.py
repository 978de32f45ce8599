# SPDX-License-Identifier: MIT
"""
Messages posted by background tasks to the foreground.

AppMessage is a closed set of frozen dataclasses. Each one dispatches to
the matching method of a MessageHandler through accept(), and every
MessageHandler must implement all of them.

Every message carries the generation of the task that produced it so the
synchronizer can drop results that a newer request has superseded.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, List, Optional, Union

from textual.message import Message

from ..models import DataFileInfo, ManifestInfo, TableMetadata


class MessageHandler(ABC):
    """Receives every AppMessage variant."""

    @abstractmethod
    def on_data_ready(self, msg: "DataReady") -> None: ...

    @abstractmethod
    def on_metadata_ready(self, msg: "MetadataReady") -> None: ...

    @abstractmethod
    def on_manifests_ready(self, msg: "ManifestsReady") -> None: ...

    @abstractmethod
    def on_data_file_stats_ready(self, msg: "DataFileStatsReady") -> None: ...

    @abstractmethod
    def on_total_row_count(self, msg: "TotalRowCount") -> None: ...

    @abstractmethod
    def on_loading_started(self, msg: "LoadingStarted") -> None: ...

    @abstractmethod
    def on_loading_finished(self, msg: "LoadingFinished") -> None: ...

    @abstractmethod
    def on_error(self, msg: "Error") -> None: ...


@dataclass(frozen=True)
class DataReady:
    batches: List[Any]  # pyarrow.RecordBatch
    total_rows: int
    has_more: bool
    generation: int = 0

    def accept(self, handler: MessageHandler) -> None:
        handler.on_data_ready(self)


@dataclass(frozen=True)
class MetadataReady:
    metadata: TableMetadata
    generation: int = 0

    def accept(self, handler: MessageHandler) -> None:
        handler.on_metadata_ready(self)


@dataclass(frozen=True)
class ManifestsReady:
    manifests: List[ManifestInfo]
    snapshot_id: Optional[int] = None
    generation: int = 0

    def accept(self, handler: MessageHandler) -> None:
        handler.on_manifests_ready(self)


@dataclass(frozen=True)
class DataFileStatsReady:
    # One list per manifest, in ManifestsReady order
    files_by_manifest: List[List[DataFileInfo]]
    generation: int = 0

    def accept(self, handler: MessageHandler) -> None:
        handler.on_data_file_stats_ready(self)


@dataclass(frozen=True)
class TotalRowCount:
    total: int
    generation: int = 0

    def accept(self, handler: MessageHandler) -> None:
        handler.on_total_row_count(self)


@dataclass(frozen=True)
class LoadingStarted:
    label: str
    generation: int = 0

    def accept(self, handler: MessageHandler) -> None:
        handler.on_loading_started(self)


@dataclass(frozen=True)
class LoadingFinished:
    generation: int = 0

    def accept(self, handler: MessageHandler) -> None:
        handler.on_loading_finished(self)


@dataclass(frozen=True)
class Error:
    text: str
    generation: int = 0

    def accept(self, handler: MessageHandler) -> None:
        handler.on_error(self)


AppMessage = Union[
    DataReady,
    MetadataReady,
    ManifestsReady,
    DataFileStatsReady,
    TotalRowCount,
    LoadingStarted,
    LoadingFinished,
    Error,
]


class TaskUpdate(Message):
    """Textual message carrying an AppMessage from a worker thread."""

    def __init__(self, payload: AppMessage) -> None:
        super().__init__()
        self.payload = payload
