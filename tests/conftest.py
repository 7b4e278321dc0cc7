"""Shared fixtures: fake clock, fake timers, in-memory store and app state."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from sudsify.api.state import AppState, set_state
from sudsify.core.machine_store import MachineStore

T0 = datetime(2026, 10, 18, 9, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, minutes: float) -> None:
        self.now = self.now + timedelta(minutes=minutes)


class FakeTimer:
    """Stands in for threading.Timer; tests call fire() instead of waiting."""

    def __init__(self, interval, function, args=None) -> None:
        self.interval = interval
        self.function = function
        self.args = tuple(args or ())
        self.daemon = False
        self.started = False
        self.cancelled = False

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self):
        """Run the callback even if cancelled (a late firing)."""
        return self.function(*self.args)


class FakeTimerFactory:
    def __init__(self) -> None:
        self.timers: list[FakeTimer] = []

    def __call__(self, interval, function, args=None) -> FakeTimer:
        timer = FakeTimer(interval, function, args)
        self.timers.append(timer)
        return timer

    @property
    def last(self) -> FakeTimer:
        return self.timers[-1]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def timers() -> FakeTimerFactory:
    return FakeTimerFactory()


@pytest.fixture
def store() -> MachineStore:
    s = MachineStore(":memory:")
    s.init_schema()
    s.seed_default_machines()
    yield s
    s.close()


@pytest.fixture
def state(clock, timers) -> AppState:
    st = AppState(":memory:", clock=clock, timer_factory=timers)
    st.start()
    yield st
    st.stop()


@pytest.fixture
def lifecycle(state):
    return state.lifecycle


@pytest.fixture
def client(state):
    set_state(state)
    from sudsify.api.app import app

    with TestClient(app) as c:
        yield c
    set_state(None)
