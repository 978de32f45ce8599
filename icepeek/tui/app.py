#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
"""
Main TUI application for icepeek.

Tabs:
- Data: filtered, paginated rows of the viewed snapshot
- Schema: field tree of the schema the viewed snapshot was written with
- Snapshots: table history; Enter time-travels to the highlighted snapshot
- Files: manifests and their live data files with column statistics
- Properties: table location, format, partitioning, sort orders, properties

All table I/O happens in thread workers; results come back as TaskUpdate
messages and are merged by the ViewStateSynchronizer.
"""

import threading
from typing import Callable, Dict, List, Optional, Tuple

from rich.markup import escape
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.screen import ModalScreen
from textual.widget import Widget
from textual.widgets import (
    DataTable,
    Footer,
    Header,
    Input,
    SelectionList,
    Static,
    TabbedContent,
    TabPane,
)

from ..config import default_page_size, effective_limit
from ..loader import TableSlot
from ..models import LoadCommand
from .app_state import (
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
from .formatting import format_count, format_size, format_timestamp_ms
from .messages import (
    AppMessage,
    DataFileStatsReady,
    DataReady,
    ManifestsReady,
    MetadataReady,
    TaskUpdate,
)
from .orchestrator import Opener, Spawn, TaskOrchestrator
from .synchronizer import ViewStateSynchronizer
from .views import ManifestCache

HELP_TEXT = """\
[bold]Navigation[/bold]
  1-5          Switch tab (Data, Schema, Snapshots, Files, Properties)
  Tab / S-Tab  Move focus between left and right panels
  Up / Down    Move selection
  Enter        Time-travel to the highlighted snapshot (Snapshots tab)

[bold]Data[/bold]
  /            Edit filter (Enter applies, empty clears, Esc cancels)
  c            Choose visible columns (Space toggles)
  m            Load more rows
  r            Reload

[bold]Filter syntax[/bold]
  col = 'text'   col != 3   col >= 1.5   flag = true
  col IS NULL    col IS NOT NULL    col IN ('a', 'b')
  combine with AND / OR, group with ( )

  ?            Toggle this help
  q            Quit
"""

# Left and right focus targets per tab
FOCUS_TARGETS: Dict[Tab, Tuple[str, str]] = {
    Tab.DATA: ("#data-table", "#data-table"),
    Tab.SCHEMA: ("#schema-fields", "#schema-history"),
    Tab.SNAPSHOTS: ("#snapshot-list", "#snapshot-detail-scroll"),
    Tab.FILES: ("#manifest-list", "#file-list"),
    Tab.PROPERTIES: ("#properties-scroll", "#properties-scroll"),
}


class HelpScreen(ModalScreen):
    """Key binding reference."""

    BINDINGS = [
        Binding("escape", "dismiss", "Close"),
        Binding("question_mark", "dismiss", "Close", show=False),
        Binding("q", "dismiss", "Close", show=False),
    ]

    def compose(self) -> ComposeResult:
        with Vertical(id="help-modal"):
            yield Static("[bold]icepeek help[/bold]", classes="modal-title")
            yield Static(HELP_TEXT, id="help-body")


class ColumnSelectorScreen(ModalScreen[List[str]]):
    """Pick which fetched columns are displayed. Dismisses with the visible set."""

    BINDINGS = [
        Binding("escape", "close", "Done"),
        Binding("c", "close", "Done", show=False),
    ]

    def __init__(self, columns: List[str], visible: List[str]) -> None:
        super().__init__()
        self.columns = columns
        self.visible_columns = visible

    def compose(self) -> ComposeResult:
        with Vertical(id="column-modal"):
            yield Static("[bold]Columns[/bold]  (space toggles, esc closes)", classes="modal-title")
            yield SelectionList[str](
                *[(name, name, name in self.visible_columns) for name in self.columns],
                id="column-list",
            )

    def on_mount(self) -> None:
        self.query_one("#column-list", SelectionList).focus()

    def action_close(self) -> None:
        self.dismiss(list(self.query_one("#column-list", SelectionList).selected))


class IcepeekApp(App):
    """
    Textual application for browsing one Iceberg table.

    Args:
        command: What to open and the startup column/limit preferences
        opener: Override for resolving the table (tests inject fakes)
        spawn: Override for running background task bodies
    """

    TITLE = "icepeek"
    CSS_PATH = "styles/app.tcss"

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("question_mark", "toggle_help", "Help"),
        Binding("1", "switch_tab(0)", "Data", show=False),
        Binding("2", "switch_tab(1)", "Schema", show=False),
        Binding("3", "switch_tab(2)", "Snapshots", show=False),
        Binding("4", "switch_tab(3)", "Files", show=False),
        Binding("5", "switch_tab(4)", "Properties", show=False),
        Binding("slash", "focus_filter", "Filter"),
        Binding("c", "column_selector", "Columns"),
        Binding("m", "load_more", "More rows"),
        Binding("r", "reload", "Reload"),
    ]

    def __init__(
        self,
        command: LoadCommand,
        opener: Optional[Opener] = None,
        spawn: Optional[Spawn] = None,
    ) -> None:
        super().__init__()
        self.command = command
        self.slot = TableSlot()
        self.orchestrator = TaskOrchestrator(
            send=self._post_task_message,
            slot=self.slot,
            spawn=spawn or self._spawn_worker,
            opener=opener,
        )
        self.sync = ViewStateSynchronizer(
            self.orchestrator,
            page_size=command.limit or default_page_size(),
            initial_limit=effective_limit(command.limit, command.no_limit),
            scan_columns=command.columns,
        )
        self._ui_thread_id = threading.get_ident()
        self._rendered_data_version = -1
        self._current_manifest = 0

    # -------------------------------------------------------------------------
    # Layout
    # -------------------------------------------------------------------------

    def compose(self) -> ComposeResult:
        yield Header()
        yield Input(id="filter-input", placeholder="Filter (press /): col = 'x' AND n > 3")

        with TabbedContent(initial=Tab.DATA.pane_id):
            with TabPane(Tab.DATA.title, id=Tab.DATA.pane_id):
                yield DataTable(id="data-table", zebra_stripes=True, cursor_type="row")

            with TabPane(Tab.SCHEMA.title, id=Tab.SCHEMA.pane_id):
                yield Horizontal(
                    DataTable(id="schema-fields", cursor_type="row"),
                    Vertical(
                        Static("Schema History", classes="section-title"),
                        DataTable(id="schema-history", cursor_type="row"),
                        Static("", id="schema-detail"),
                        classes="side-panel",
                    ),
                )

            with TabPane(Tab.SNAPSHOTS.title, id=Tab.SNAPSHOTS.pane_id):
                yield Horizontal(
                    DataTable(id="snapshot-list", cursor_type="row"),
                    VerticalScroll(Static("", id="snapshot-detail"), id="snapshot-detail-scroll", classes="side-panel"),
                )

            with TabPane(Tab.FILES.title, id=Tab.FILES.pane_id):
                yield Vertical(
                    Horizontal(
                        DataTable(id="manifest-list", cursor_type="row"),
                        DataTable(id="file-list", cursor_type="row"),
                    ),
                    VerticalScroll(Static("", id="file-detail"), id="file-detail-scroll"),
                )

            with TabPane(Tab.PROPERTIES.title, id=Tab.PROPERTIES.pane_id):
                yield VerticalScroll(Static("", id="properties-body"), id="properties-scroll")

        yield Static(" Rows: -", id="status-bar")
        yield Footer()

    def on_mount(self) -> None:
        self._ui_thread_id = threading.get_ident()
        self._setup_columns()
        self.sync.start(self.command)
        self._render_status()
        self._query("#data-table", DataTable).focus()

    def _setup_columns(self) -> None:
        self._query("#schema-fields", DataTable).add_columns("Field", "ID", "Type", "Req")
        self._query("#schema-history", DataTable).add_columns("", "Schema", "Fields")
        self._query("#snapshot-list", DataTable).add_columns("", "Operation", "Timestamp", "Added")
        self._query("#manifest-list", DataTable).add_columns("Content", "Files", "Rows", "Size", "Spec")
        self._query("#file-list", DataTable).add_columns("File", "Format", "Rows", "Size")

    def _query(self, selector, expect_type=None):
        """Query the main screen, even while a modal is on top."""
        return self.screen_stack[0].query_one(selector, expect_type)

    # -------------------------------------------------------------------------
    # Background task plumbing
    # -------------------------------------------------------------------------

    def _post_task_message(self, msg: AppMessage) -> None:
        self.post_message(TaskUpdate(msg))

    def _spawn_worker(self, fn: Callable[[], None], name: str) -> None:
        if threading.get_ident() != self._ui_thread_id:
            self.call_from_thread(self._spawn_worker, fn, name)
            return
        self.run_worker(fn, name=name, group="tasks", thread=True, exit_on_error=False)

    def on_task_update(self, event: TaskUpdate) -> None:
        msg = event.payload
        if not self.sync.handle_message(msg):
            return
        if isinstance(msg, DataReady):
            self._render_data()
        elif isinstance(msg, MetadataReady):
            self._render_schema()
            self._render_snapshots()
            self._render_properties()
            self.sub_title = self.command.describe()
        elif isinstance(msg, (ManifestsReady, DataFileStatsReady)):
            self._render_files()
        self._render_status()

    # -------------------------------------------------------------------------
    # Actions
    # -------------------------------------------------------------------------

    def _dispatch(self, action) -> None:
        if self.sync.handle_action(action):
            self.exit()
            return
        self._render_status()

    async def action_quit(self) -> None:
        if self.sync.handle_action(Quit()):
            self.exit()

    def action_switch_tab(self, index: int) -> None:
        self._dispatch(SwitchTab(index))
        tabbed = self._query(TabbedContent)
        tabbed.active = self.sync.state.active_tab.pane_id
        self._apply_focus()
        self._render_files()

    def on_tabbed_content_tab_activated(self, event: TabbedContent.TabActivated) -> None:
        """Keep state in step with mouse-driven tab changes."""
        tab = Tab.from_pane_id(event.tabbed_content.active)
        if tab != self.sync.state.active_tab:
            self._dispatch(SwitchTab(tab.value))
            self._apply_focus()
            self._render_files()

    def action_focus_next(self) -> None:
        self._dispatch(FocusNext())
        self._apply_focus()

    def action_focus_previous(self) -> None:
        self._dispatch(FocusPrev())
        self._apply_focus()

    def action_toggle_help(self) -> None:
        self._dispatch(ToggleHelp())
        self.push_screen(HelpScreen(), lambda _: self._dispatch(ToggleHelp()))

    def action_focus_filter(self) -> None:
        self._dispatch(FocusFilter())
        self._query("#filter-input", Input).focus()

    def action_column_selector(self) -> None:
        data = self.sync.data
        if not data.columns:
            return
        self._dispatch(ToggleColumnSelector())
        self.push_screen(
            ColumnSelectorScreen(list(data.columns), data.visible_columns()),
            self._on_columns_chosen,
        )

    def _on_columns_chosen(self, visible: Optional[List[str]]) -> None:
        if visible is not None:
            for name in self.sync.data.columns:
                if (name in visible) != (name not in self.sync.data.hidden):
                    self._dispatch(ToggleColumn(name))
        self._dispatch(ToggleColumnSelector())
        self._render_data(force=True)
        self._apply_focus()

    def action_load_more(self) -> None:
        self._dispatch(IncreaseLimit())

    def action_reload(self) -> None:
        self._dispatch(Reload())

    def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id == "filter-input":
            self._dispatch(SubmitFilter(event.value))
            self._apply_focus()

    def on_key(self, event) -> None:
        """Escape leaves the filter bar without applying it."""
        if event.key != "escape" or self.sync.state.focus != Focus.FILTER_EDITING:
            return
        filter_input = self._query("#filter-input", Input)
        if filter_input.has_focus:
            filter_input.value = self.sync.state.applied_filter_text or ""
            self._dispatch(FocusPrev())
            self._apply_focus()
            event.prevent_default()
            event.stop()

    def on_data_table_row_selected(self, event: DataTable.RowSelected) -> None:
        if event.data_table.id == "snapshot-list" and event.row_key.value is not None:
            self._dispatch(SelectSnapshot(int(event.row_key.value)))
            self._render_snapshots()
            self._render_schema()
            self._render_files()
            self._render_properties()

    def on_data_table_row_highlighted(self, event: DataTable.RowHighlighted) -> None:
        table_id = event.data_table.id
        if table_id == "snapshot-list":
            self._render_snapshot_detail(event.cursor_row)
        elif table_id == "schema-fields":
            self._render_field_detail(event.cursor_row)
        elif table_id == "manifest-list":
            self._render_file_list(event.cursor_row)
        elif table_id == "file-list":
            self._render_file_detail(event.cursor_row)

    def _apply_focus(self) -> None:
        state = self.sync.state
        if state.focus in (Focus.FILTER_EDITING, Focus.COLUMN_SELECTOR):
            return
        left, right = FOCUS_TARGETS[state.active_tab]
        target = left if state.focus == Focus.LEFT else right
        widget = self._query(target, Widget)
        widget.focus()

    # -------------------------------------------------------------------------
    # Rendering
    # -------------------------------------------------------------------------

    def _render_status(self) -> None:
        self._query("#status-bar", Static).update(self.sync.status.render_text())

    def _render_data(self, force: bool = False) -> None:
        data = self.sync.data
        if not force and data.version == self._rendered_data_version:
            return
        self._rendered_data_version = data.version
        table = self._query("#data-table", DataTable)
        table.clear(columns=True)
        table.add_columns(*data.visible_columns())
        table.add_rows(data.visible_rows())

    def _render_schema(self) -> None:
        view = self.sync.schema
        fields = self._query("#schema-fields", DataTable)
        fields.clear()
        for depth, f in view.flattened():
            prefix = "  " * depth + ("\u2514 " if depth else "")
            fields.add_row(f"{prefix}{f.name}", str(f.field_id), f.type_str, "*" if f.required else "")
        history = self._query("#schema-history", DataTable)
        history.clear()
        for marker, schema in view.history():
            history.add_row(marker, str(schema.schema_id), str(len(schema.fields)))
        self._render_field_detail(0)

    def _render_field_detail(self, row: int) -> None:
        flat = self.sync.schema.flattened()
        detail = self._query("#schema-detail", Static)
        if not 0 <= row < len(flat):
            detail.update("")
            return
        _, f = flat[row]
        lines = [
            f"[b]Field:[/b] {escape(f.name)}",
            f"[b]ID:[/b] {f.field_id}",
            f"[b]Type:[/b] {escape(f.type_str)}",
            f"[b]Required:[/b] {str(f.required).lower()}",
        ]
        if f.doc:
            lines.append(f"[b]Doc:[/b] {escape(f.doc)}")
        detail.update("\n".join(lines))

    def _render_snapshots(self) -> None:
        view = self.sync.snapshots
        table = self._query("#snapshot-list", DataTable)
        cursor = table.cursor_row
        table.clear()
        for snap in view.snapshots:
            added = snap.summary.get("added-records", "")
            table.add_row(
                view.marker(snap),
                snap.operation,
                format_timestamp_ms(snap.timestamp_ms),
                f"+{added}" if added else "",
                key=str(snap.snapshot_id),
            )
        if view.snapshots:
            table.move_cursor(row=min(cursor, len(view.snapshots) - 1))
        self._render_snapshot_detail(table.cursor_row)

    def _render_snapshot_detail(self, row: int) -> None:
        snap = self.sync.snapshots.snapshot_at(row)
        detail = self._query("#snapshot-detail", Static)
        if snap is None:
            detail.update("[dim]No snapshots[/dim]")
            return
        lines = [
            f"[b]Snapshot ID:[/b] {snap.snapshot_id}",
            f"[b]Parent:[/b] {snap.parent_id if snap.parent_id is not None else '-'}",
            f"[b]Sequence:[/b] {snap.sequence_number}",
            f"[b]Timestamp:[/b] {format_timestamp_ms(snap.timestamp_ms)}",
            f"[b]Operation:[/b] {escape(snap.operation)}",
        ]
        if snap.schema_id is not None:
            lines.append(f"[b]Schema ID:[/b] {snap.schema_id}")
        lines.append(f"[b]Manifest List:[/b] {escape(snap.manifest_list)}")
        lines.append("")
        lines.append("[b]Summary[/b]")
        for key, value in sorted(snap.summary.items()):
            if key != "operation":
                lines.append(f"  {escape(key)}: {escape(value)}")
        detail.update("\n".join(lines))

    def _render_files(self) -> None:
        view = self.sync.manifests
        table = self._query("#manifest-list", DataTable)
        table.clear()
        if view.cache != ManifestCache.LOADED:
            self._query("#file-list", DataTable).clear()
            self._query("#file-detail", Static).update("[dim]Loading manifests...[/dim]")
            return
        for index, manifest in enumerate(view.manifests):
            totals = view.totals(index)
            table.add_row(
                manifest.content,
                str(manifest.live_files),
                format_count(manifest.added_rows + manifest.existing_rows),
                format_size(totals.size_bytes),
                str(manifest.partition_spec_id),
            )
        self._render_file_list(table.cursor_row)

    def _render_file_list(self, manifest_index: int) -> None:
        view = self.sync.manifests
        table = self._query("#file-list", DataTable)
        table.clear()
        for f in view.files_for(manifest_index):
            table.add_row(f.file_path.rsplit("/", 1)[-1], f.file_format, format_count(f.record_count), format_size(f.file_size_bytes))
        self._current_manifest = manifest_index
        self._render_file_detail(0)

    def _render_file_detail(self, row: int) -> None:
        files = self.sync.manifests.files_for(self._current_manifest)
        detail = self._query("#file-detail", Static)
        if not 0 <= row < len(files):
            detail.update("")
            return
        f = files[row]
        schema = self.sync.schema.schema
        lines = [
            f"[b]Path:[/b] {escape(f.file_path)}",
            f"[b]Format:[/b] {f.file_format}  [b]Rows:[/b] {format_count(f.record_count)}  "
            f"[b]Size:[/b] {format_size(f.file_size_bytes)}",
        ]
        if f.partition:
            parts = ", ".join(f"{k}={v}" for k, v in f.partition.items())
            lines.append(f"[b]Partition:[/b] {escape(parts)}")
        field_ids = sorted(set(f.null_value_counts) | set(f.lower_bounds) | set(f.upper_bounds))
        if field_ids:
            lines.append("")
            lines.append("[b]Column stats[/b]  (nulls, lower, upper)")
        for field_id in field_ids:
            found = schema.find_field(field_id) if schema else None
            name = found.name if found else f"#{field_id}"
            lines.append(
                f"  {escape(name)}: {f.null_value_counts.get(field_id, '-')}, "
                f"{escape(str(f.lower_bounds.get(field_id, '-')))}, "
                f"{escape(str(f.upper_bounds.get(field_id, '-')))}"
            )
        detail.update("\n".join(lines))

    def _render_properties(self) -> None:
        view = self.sync.properties
        meta = view.metadata
        body = self._query("#properties-body", Static)
        if meta is None:
            body.update("")
            return
        lines = [
            "[b]Table[/b]",
            f"  Format Version: {meta.format_version}",
            f"  Table UUID: {meta.table_uuid}",
            f"  Location: {escape(meta.location)}",
            f"  Last Updated: {format_timestamp_ms(meta.last_updated_ms)}",
            f"  Current Snapshot: {meta.current_snapshot_id if meta.current_snapshot_id is not None else '-'}",
            "",
            "[b]Partition Specs[/b]",
        ]
        for spec in meta.partition_specs:
            default = " (default)" if spec.spec_id == meta.default_spec_id else ""
            fields = ", ".join(f"{pf.name}={pf.transform}({pf.source_id})" for pf in spec.fields) or "unpartitioned"
            lines.append(f"  [{spec.spec_id}]{default} {escape(fields)}")
        lines.append("")
        lines.append("[b]Sort Orders[/b]")
        for order in meta.sort_orders:
            default = " (default)" if order.order_id == meta.default_sort_order_id else ""
            fields = ", ".join(
                f"{sf.transform}({sf.source_id}) {sf.direction} {sf.null_order}" for sf in order.fields
            ) or "unsorted"
            lines.append(f"  [{order.order_id}]{default} {escape(fields)}")
        lines.append("")
        lines.append("[b]Properties[/b]")
        for key, value in view.sorted_properties():
            lines.append(f"  {escape(key)} = {escape(value)}")
        if view.viewed_snapshot_id is not None:
            lines.append("")
            lines.append(f"[b]Viewing Snapshot {view.viewed_snapshot_id}[/b]")
            snap = view.viewed_snapshot()
            if snap is None:
                lines.append("  [dim]Snapshot not found[/dim]")
            else:
                lines.append(f"  Operation: {escape(snap.operation)}")
                lines.append(f"  Timestamp: {format_timestamp_ms(snap.timestamp_ms)}")
                lines.append(f"  Sequence Number: {snap.sequence_number}")
                if snap.parent_id is not None:
                    lines.append(f"  Parent Snapshot: {snap.parent_id}")
                if snap.schema_id is not None:
                    lines.append(f"  Schema ID: {snap.schema_id}")
                for key, value in sorted(snap.summary.items()):
                    lines.append(f"  {escape(key)} = {escape(value)}")
        body.update("\n".join(lines))


def run_app(command: LoadCommand) -> None:
    """Run the viewer until the user quits."""
    IcepeekApp(command).run()
