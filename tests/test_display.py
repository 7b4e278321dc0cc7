"""Tests for status labels and the client-clock countdown."""

from __future__ import annotations

from datetime import timedelta

from sudsify.core.display import status_text, time_remaining
from sudsify.models.machine import Machine
from sudsify.models.program import ProgramSnapshot

from conftest import T0


def _running(end_minutes: float) -> Machine:
    return Machine(
        id="w1",
        name="Washer 1",
        type="washer",
        status="in-use",
        current_program=ProgramSnapshot("Quick Wash", 30),
        end_time=T0 + timedelta(minutes=end_minutes),
        can_postpone=True,
        cycle=1,
    )


def test_status_text() -> None:
    assert status_text("available") == "Available"
    assert status_text("in-use") == "In Use"
    assert status_text("done") == "Ready to Unload"


def test_countdown_formats_minutes_and_seconds() -> None:
    assert time_remaining(_running(30), T0) == "30:00"
    assert time_remaining(_running(1.5), T0) == "1:30"
    assert time_remaining(_running(0.1), T0) == "0:06"


def test_countdown_reads_done_before_status_flips() -> None:
    machine = _running(30)
    assert time_remaining(machine, T0 + timedelta(minutes=31)) == "Done!"
    assert machine.status == "in-use"


def test_no_countdown_unless_in_use() -> None:
    idle = Machine(id="d1", name="Dryer 1", type="dryer", status="available")
    assert time_remaining(idle, T0) is None
    finished = _running(30)
    finished.status = "done"
    assert time_remaining(finished, T0) is None
