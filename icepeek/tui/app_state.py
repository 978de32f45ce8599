# SPDX-License-Identifier: MIT
"""State management dataclasses for the TUI app.

- Tab / Focus: the two UI axes
- Action classes: user intents, independent of key bindings
- GenerationLedger: latest request token issued per result channel
- AppState: everything the synchronizer owns
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class Tab(int, Enum):
    DATA = 0
    SCHEMA = 1
    SNAPSHOTS = 2
    FILES = 3
    PROPERTIES = 4

    @property
    def pane_id(self) -> str:
        return self.name.lower()

    @property
    def title(self) -> str:
        return self.name.title()

    @classmethod
    def from_pane_id(cls, pane_id: str) -> "Tab":
        return cls[pane_id.upper()]


class Focus(str, Enum):
    LEFT = "left"
    RIGHT = "right"
    FILTER_EDITING = "filter"
    COLUMN_SELECTOR = "columns"


# =============================================================================
# Actions
# =============================================================================


class Action:
    """Base class for user intents."""


@dataclass(frozen=True)
class Quit(Action):
    pass


@dataclass(frozen=True)
class SwitchTab(Action):
    index: int


@dataclass(frozen=True)
class FocusNext(Action):
    pass


@dataclass(frozen=True)
class FocusPrev(Action):
    pass


@dataclass(frozen=True)
class ToggleHelp(Action):
    pass


@dataclass(frozen=True)
class FocusFilter(Action):
    pass


@dataclass(frozen=True)
class ToggleColumnSelector(Action):
    pass


@dataclass(frozen=True)
class ToggleColumn(Action):
    name: str


@dataclass(frozen=True)
class SubmitFilter(Action):
    text: str


@dataclass(frozen=True)
class SelectSnapshot(Action):
    snapshot_id: int


@dataclass(frozen=True)
class IncreaseLimit(Action):
    pass


@dataclass(frozen=True)
class Reload(Action):
    pass


# =============================================================================
# Request generations
# =============================================================================

SCAN = "scan"
COUNT = "count"
MANIFESTS = "manifests"


@dataclass
class GenerationLedger:
    """Monotonic request tokens.

    One counter is shared by every channel so each spawned task gets a
    unique token; latest remembers the newest token issued per channel.
    """

    counter: int = 0
    latest: Dict[str, int] = field(default_factory=dict)

    def issue(self, channel: str) -> int:
        self.counter += 1
        self.latest[channel] = self.counter
        return self.counter

    def is_stale(self, channel: str, generation: int) -> bool:
        return generation < self.latest.get(channel, 0)


@dataclass
class AppState:
    """Top-level state owned by the view state synchronizer.

    selected_snapshot_id is None while viewing the head snapshot.
    """

    active_tab: Tab = Tab.DATA
    focus: Focus = Focus.LEFT
    selected_snapshot_id: Optional[int] = None
    current_snapshot_id: Optional[int] = None
    limit: Optional[int] = None
    page_size: int = 500
    has_more: bool = False
    applied_filter_text: Optional[str] = None
    applied_predicate: Any = None  # filter.Predicate
    scan_columns: Optional[List[str]] = None  # startup projection only
    help_visible: bool = False
    generations: GenerationLedger = field(default_factory=GenerationLedger)

    @property
    def is_time_traveling(self) -> bool:
        return self.selected_snapshot_id is not None

    @property
    def viewed_snapshot_id(self) -> Optional[int]:
        """Snapshot whose data is on screen."""
        if self.selected_snapshot_id is not None:
            return self.selected_snapshot_id
        return self.current_snapshot_id

    @property
    def filter_active(self) -> bool:
        return bool(self.applied_filter_text)
