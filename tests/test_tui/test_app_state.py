# SPDX-License-Identifier: MIT
"""Tests for TUI app state dataclasses."""

from dataclasses import FrozenInstanceError, is_dataclass

import pytest

from icepeek.tui.app_state import (
    COUNT,
    MANIFESTS,
    SCAN,
    AppState,
    Focus,
    GenerationLedger,
    SelectSnapshot,
    SwitchTab,
    Tab,
)


class TestTab:
    def test_order(self):
        assert [t.value for t in Tab] == [0, 1, 2, 3, 4]
        assert Tab(3) == Tab.FILES

    def test_pane_ids_round_trip(self):
        for tab in Tab:
            assert Tab.from_pane_id(tab.pane_id) == tab

    def test_titles(self):
        assert [t.title for t in Tab] == ["Data", "Schema", "Snapshots", "Files", "Properties"]


class TestActions:
    def test_actions_are_frozen(self):
        action = SwitchTab(2)
        with pytest.raises(FrozenInstanceError):
            action.index = 3

    def test_actions_compare_by_value(self):
        assert SelectSnapshot(5) == SelectSnapshot(5)


class TestGenerationLedger:
    def test_tokens_unique_across_channels(self):
        ledger = GenerationLedger()
        tokens = [ledger.issue(SCAN), ledger.issue(COUNT), ledger.issue(SCAN), ledger.issue(MANIFESTS)]
        assert tokens == [1, 2, 3, 4]
        assert ledger.latest == {SCAN: 3, COUNT: 2, MANIFESTS: 4}

    def test_staleness_is_per_channel(self):
        ledger = GenerationLedger()
        first_scan = ledger.issue(SCAN)
        count = ledger.issue(COUNT)
        second_scan = ledger.issue(SCAN)

        assert ledger.is_stale(SCAN, first_scan)
        assert not ledger.is_stale(SCAN, second_scan)
        assert not ledger.is_stale(COUNT, count)

    def test_unissued_channel_never_stale(self):
        assert not GenerationLedger().is_stale(MANIFESTS, 0)


class TestAppState:
    def test_is_dataclass(self):
        assert is_dataclass(AppState)

    def test_defaults(self):
        state = AppState()
        assert state.active_tab == Tab.DATA
        assert state.focus == Focus.LEFT
        assert state.selected_snapshot_id is None
        assert state.page_size == 500
        assert state.has_more is False
        assert state.filter_active is False
        assert state.is_time_traveling is False

    def test_viewed_snapshot(self):
        state = AppState(current_snapshot_id=3)
        assert state.viewed_snapshot_id == 3
        state.selected_snapshot_id = 1
        assert state.viewed_snapshot_id == 1
        assert state.is_time_traveling

    def test_independent_ledgers(self):
        a, b = AppState(), AppState()
        a.generations.issue(SCAN)
        assert b.generations.counter == 0
