"""Tests for the shared state view: cache invalidation and subscriptions."""

from __future__ import annotations

from sudsify.api.state import AppState
from sudsify.core.machine_store import MACHINES_TABLE, USAGE_TABLE


def test_subscribers_get_table_signal_and_refetch(state: AppState) -> None:
    view = state.view
    seen: list[str] = []
    snapshots: list[str] = []

    def on_change(table: str) -> None:
        seen.append(table)
        if table == MACHINES_TABLE:
            snapshots.append(next(m.status for m in view.list_machines() if m.id == "w1"))

    sub = view.subscribe(on_change)
    state.lifecycle.start_program("w1", "quick-30", "Sam", "A-15")

    assert seen == [MACHINES_TABLE, USAGE_TABLE]
    assert snapshots == ["in-use"]
    sub.unsubscribe()


def test_start_then_list_reflects_program(state: AppState) -> None:
    view = state.view
    assert next(m for m in view.list_machines() if m.id == "d1").status == "available"
    state.lifecycle.start_program("d1", "delicate-60", "Sam", "A-15")
    machine = next(m for m in view.list_machines() if m.id == "d1")
    assert machine.status == "in-use"
    assert machine.current_program.name == "Delicate Dry"
    assert machine.current_program.duration == 60


def test_listing_is_cached_until_a_change(state: AppState, monkeypatch) -> None:
    view = state.view
    view.list_machines()
    calls = []
    real = state.store.list_machines

    def counting():
        calls.append(1)
        return real()

    monkeypatch.setattr(state.store, "list_machines", counting)
    view.list_machines()
    view.list_machines()
    assert calls == []

    state.lifecycle.start_program("w3", "quick-30", "Sam", "A-15")
    view.list_machines()
    assert calls == [1]


def test_unsubscribe_is_idempotent_and_stops_delivery(state: AppState) -> None:
    view = state.view
    seen: list[str] = []
    sub = view.subscribe(seen.append)
    assert view.subscriber_count == 1
    sub.unsubscribe()
    sub.unsubscribe()
    assert not sub.active
    assert view.subscriber_count == 0

    state.lifecycle.start_program("w1", "quick-30", "Sam", "A-15")
    assert seen == []


def test_failing_subscriber_does_not_starve_others(state: AppState) -> None:
    view = state.view
    seen: list[str] = []

    def boom(table: str) -> None:
        raise RuntimeError("display crashed")

    view.subscribe(boom)
    view.subscribe(seen.append)
    state.lifecycle.start_program("w1", "quick-30", "Sam", "A-15")
    assert MACHINES_TABLE in seen


def test_get_machine_and_usage_are_fresh_reads(state: AppState, timers) -> None:
    view = state.view
    state.lifecycle.start_program("w1", "quick-30", "Sam", "A-15")
    timers.last.fire()
    assert view.get_machine("w1").status == "done"
    assert view.get_machine("nope") is None
    usage = view.list_usage(10, machine_id="w1")
    assert len(usage) == 1 and usage[0].end_time is not None


def test_cached_listing_hands_out_copies(state: AppState) -> None:
    view = state.view
    first = view.list_machines()
    first[0].status = "done"
    first[0].end_time = None
    again = view.list_machines()
    assert again[0].status == "available"
    assert again[0] is not first[0]
