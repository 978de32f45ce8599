# SPDX-License-Identifier: MIT
"""
View state synchronizer.

The foreground state machine: turns user actions into state changes and
background tasks, and merges task results into the view caches. It owns
the head snapshot id and the applied filter text; views consult it for
both.

Results from superseded requests are dropped. Every scan, count and
manifest load is tagged with a fresh generation when spawned, and a
result older than the newest generation issued for its channel is
discarded on arrival. Loading and error messages always apply.
"""

from typing import List, Optional

from ..debug_logger import get_logger
from ..errors import ParseError
from ..filter import parse_filter
from ..models import LoadCommand, TableMetadata
from .app_state import (
    COUNT,
    MANIFESTS,
    SCAN,
    Action,
    AppState,
    Focus,
    FocusFilter,
    FocusNext,
    FocusPrev,
    IncreaseLimit,
    Quit,
    Reload,
    SelectSnapshot,
    SubmitFilter,
    SwitchTab,
    Tab,
    ToggleColumn,
    ToggleColumnSelector,
    ToggleHelp,
)
from .messages import (
    AppMessage,
    DataFileStatsReady,
    DataReady,
    Error,
    ManifestsReady,
    MessageHandler,
    MetadataReady,
    TotalRowCount,
)
from .orchestrator import TaskOrchestrator
from .views import DataView, ManifestView, PropertiesView, SchemaView, SnapshotView, StatusView

# Result messages subject to the staleness check, by channel
_CHANNELS = {
    DataReady: SCAN,
    TotalRowCount: COUNT,
    ManifestsReady: MANIFESTS,
    DataFileStatsReady: MANIFESTS,
}


class ViewStateSynchronizer:
    """Owns AppState and the view caches.

    Args:
        orchestrator: Spawns background tasks
        page_size: Rows added per "load more" and the reset value of limit
        initial_limit: Limit of the first scan (None scans everything)
        scan_columns: Startup column projection applied to every scan
    """

    def __init__(
        self,
        orchestrator: TaskOrchestrator,
        page_size: int,
        initial_limit: Optional[int],
        scan_columns: Optional[List[str]] = None,
    ) -> None:
        self.orchestrator = orchestrator
        self.state = AppState(
            limit=initial_limit,
            page_size=page_size,
            scan_columns=list(scan_columns) if scan_columns else None,
        )
        self.metadata: Optional[TableMetadata] = None

        self.data = DataView()
        self.schema = SchemaView()
        self.snapshots = SnapshotView()
        self.manifests = ManifestView()
        self.properties = PropertiesView()
        self.status = StatusView(self.state)
        self.views: List[MessageHandler] = [
            self.data,
            self.schema,
            self.snapshots,
            self.manifests,
            self.properties,
            self.status,
        ]

    # -------------------------------------------------------------------------
    # Startup
    # -------------------------------------------------------------------------

    def start(self, command: LoadCommand) -> None:
        """Kick off the initial load."""
        generations = self.state.generations
        scan_generation = generations.issue(SCAN)
        count_generation = generations.issue(COUNT)
        self.orchestrator.spawn_initial_load(command, self.state.limit, scan_generation, count_generation)

    # -------------------------------------------------------------------------
    # Messages
    # -------------------------------------------------------------------------

    def handle_message(self, msg: AppMessage) -> bool:
        """Merge one task message into state and views.

        Returns:
            False when the message was stale and discarded.
        """
        channel = _CHANNELS.get(type(msg))
        generations = self.state.generations
        if channel is not None and generations.is_stale(channel, msg.generation):
            get_logger().stale_message(type(msg).__name__, msg.generation, generations.latest[channel])
            return False

        for view in self.views:
            msg.accept(view)

        if isinstance(msg, MetadataReady):
            self.metadata = msg.metadata
            self.state.current_snapshot_id = msg.metadata.current_snapshot_id
            if self.state.active_tab == Tab.FILES:
                self._load_manifests_if_needed()
        elif isinstance(msg, DataReady):
            self.state.has_more = msg.has_more
            self._sync_column_counts()
        return True

    def _dispatch_local(self, msg: AppMessage) -> None:
        for view in self.views:
            msg.accept(view)

    # -------------------------------------------------------------------------
    # Actions
    # -------------------------------------------------------------------------

    def handle_action(self, action: Action) -> bool:
        """Apply a user action.

        Returns:
            True when the app should quit.
        """
        state = self.state
        if isinstance(action, Quit):
            return True
        if isinstance(action, SwitchTab):
            self._switch_tab(action.index)
        elif isinstance(action, (FocusNext, FocusPrev)):
            state.focus = Focus.RIGHT if state.focus == Focus.LEFT else Focus.LEFT
        elif isinstance(action, ToggleHelp):
            state.help_visible = not state.help_visible
        elif isinstance(action, FocusFilter):
            state.focus = Focus.FILTER_EDITING
        elif isinstance(action, ToggleColumnSelector):
            state.focus = Focus.LEFT if state.focus == Focus.COLUMN_SELECTOR else Focus.COLUMN_SELECTOR
        elif isinstance(action, ToggleColumn):
            if self.data.toggle_column(action.name):
                self._sync_column_counts()
        elif isinstance(action, SubmitFilter):
            self._submit_filter(action.text)
        elif isinstance(action, SelectSnapshot):
            self._select_snapshot(action.snapshot_id)
        elif isinstance(action, IncreaseLimit):
            self._increase_limit()
        elif isinstance(action, Reload):
            self._spawn_rescan()
            if state.active_tab == Tab.FILES:
                self._invalidate_manifests()
                self._load_manifests_if_needed()
        return False

    def _switch_tab(self, index: int) -> None:
        try:
            tab = Tab(index)
        except ValueError:
            return
        self.state.active_tab = tab
        self.state.focus = Focus.LEFT
        if tab == Tab.FILES:
            self._load_manifests_if_needed()

    def _submit_filter(self, text: str) -> None:
        state = self.state
        state.focus = Focus.LEFT
        text = text.strip()
        if not text:
            state.applied_filter_text = None
            state.applied_predicate = None
            state.limit = state.page_size
            self.status.clear_filtered()
            self._spawn_rescan()
            return
        try:
            predicate = parse_filter(text)
        except ParseError as e:
            get_logger().filter_error(text, str(e))
            self._dispatch_local(Error(f"Filter error: {e}"))
            return
        state.applied_filter_text = text
        state.applied_predicate = predicate
        state.limit = state.page_size
        self._spawn_rescan()

    def _select_snapshot(self, snapshot_id: int) -> None:
        state = self.state
        at_head = snapshot_id == state.current_snapshot_id
        state.selected_snapshot_id = None if at_head else snapshot_id
        state.limit = state.page_size
        self._invalidate_manifests()

        if at_head or self.metadata is None:
            self.schema.set_viewed_schema(None)
        else:
            self.schema.set_viewed_schema(self.metadata.schema_id_for_snapshot(snapshot_id))
        self.snapshots.set_viewed_snapshot(state.selected_snapshot_id)
        self.properties.set_viewed_snapshot(state.selected_snapshot_id)
        self.status.table_total_rows = None

        self._spawn_rescan()
        self._spawn_count()
        if state.active_tab == Tab.FILES:
            self._load_manifests_if_needed()

    def _increase_limit(self) -> None:
        state = self.state
        if not state.has_more:
            return
        state.limit = (state.limit or 0) + state.page_size
        self._spawn_rescan()

    # -------------------------------------------------------------------------
    # Task spawning
    # -------------------------------------------------------------------------

    def _spawn_rescan(self) -> None:
        state = self.state
        generation = state.generations.issue(SCAN)
        self.orchestrator.spawn_rescan(
            state.applied_predicate,
            state.scan_columns,
            state.selected_snapshot_id,
            state.limit,
            generation,
        )

    def _spawn_count(self) -> None:
        generation = self.state.generations.issue(COUNT)
        self.orchestrator.spawn_count_rows(self.state.selected_snapshot_id, generation)

    def _invalidate_manifests(self) -> None:
        """Drop the manifest view and supersede any load still in flight."""
        self.manifests.invalidate()
        self.state.generations.issue(MANIFESTS)

    def _load_manifests_if_needed(self) -> None:
        if not self.manifests.needs_load or self.metadata is None:
            return
        generation = self.state.generations.issue(MANIFESTS)
        self.manifests.mark_requested()
        self.orchestrator.spawn_load_manifests(self.state.selected_snapshot_id, generation)

    def _sync_column_counts(self) -> None:
        self.status.total_columns = len(self.data.columns)
        self.status.visible_columns = len(self.data.visible_columns())
