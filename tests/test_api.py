"""Tests for the HTTP API routes."""

from __future__ import annotations

import json

import pytest

from sudsify.api.routes.events import snapshot_event
from sudsify.api.state import AppState


@pytest.fixture
def admin_headers(state: AppState) -> dict:
    state.store.grant_role("boss", "admin")
    return {"X-User-Id": "boss"}


def _start(client, machine_id="w1", program_id="quick-30", name="Sam", room="A-15", headers=None):
    return client.post(
        f"/api/machines/{machine_id}/start",
        json={"program_id": program_id, "user_name": name, "room_number": room},
        headers=headers or {},
    )


def test_list_machines(client) -> None:
    resp = client.get("/api/machines")
    assert resp.status_code == 200
    body = resp.json()
    assert [m["id"] for m in body] == ["d1", "d2", "w1", "w2", "w3"]
    assert body[0]["status"] == "available"
    assert body[0]["status_text"] == "Available"
    assert body[0]["current_program_name"] is None
    assert body[0]["time_remaining"] is None


def test_get_machine_and_not_found(client) -> None:
    assert client.get("/api/machines/w2").json()["name"] == "Washer 2"
    assert client.get("/api/machines/zz").status_code == 404


def test_start_then_list_reflects_in_use(client) -> None:
    resp = _start(client, program_id="eco-90", headers={"X-User-Id": "sam"})
    assert resp.status_code == 200
    started = resp.json()
    assert started["status"] == "in-use"
    assert started["current_program_name"] == "Eco Wash"
    assert started["current_program_duration"] == 90
    assert started["end_time"] == "2026-10-18T10:30:00+00:00"
    assert started["time_remaining"] == "90:00"

    listed = {m["id"]: m for m in client.get("/api/machines").json()}
    assert listed["w1"]["status"] == "in-use"
    assert listed["w1"]["current_program_name"] == "Eco Wash"


def test_start_validation_errors_name_the_field(client) -> None:
    resp = _start(client, room="12 B")
    assert resp.status_code == 400
    assert resp.json()["detail"]["field"] == "room_number"

    resp = _start(client, name="")
    assert resp.status_code == 400
    assert resp.json()["detail"]["field"] == "user_name"


def test_start_conflict_and_unknowns(client) -> None:
    assert _start(client).status_code == 200
    resp = _start(client, name="Kim")
    assert resp.status_code == 409
    assert resp.json()["detail"] == "machine unavailable"
    assert _start(client, machine_id="w9").status_code == 404
    assert _start(client, machine_id="w2", program_id="nope").status_code == 404


def test_start_storage_failure_is_503(client, state: AppState) -> None:
    state.store._conn.execute("DROP TABLE machine_usage")
    resp = _start(client)
    assert resp.status_code == 503
    assert client.get("/api/machines/w1").json()["status"] == "available"


def test_stop_twice_is_ok(client) -> None:
    _start(client)
    first = client.post("/api/machines/w1/stop")
    second = client.post("/api/machines/w1/stop")
    assert first.status_code == 200 and second.status_code == 200
    assert first.json()["status"] == "available"
    assert second.json()["status"] == "available"


def test_timer_done_visible_over_api(client, timers) -> None:
    _start(client, machine_id="d1", program_id="quick-45")
    timers.last.fire()
    machine = client.get("/api/machines/d1").json()
    assert machine["status"] == "done"
    assert machine["status_text"] == "Ready to Unload"
    assert machine["current_program_name"] == "Quick Dry"


def test_programs_listing(client) -> None:
    assert len(client.get("/api/programs").json()) == 7
    dry = client.get("/api/programs", params={"type": "dryer"}).json()
    assert [p["id"] for p in dry] == ["quick-45", "normal-75", "delicate-60"]
    assert client.get("/api/programs", params={"type": "iron"}).status_code == 400


def test_admin_routes_require_admin(client) -> None:
    assert client.get("/api/admin/usage").status_code == 403
    assert client.get("/api/admin/usage", headers={"X-User-Id": "sam"}).status_code == 403
    assert client.post("/api/admin/machines/w1/stop").status_code == 403


def test_admin_usage_and_force_stop(client, admin_headers) -> None:
    _start(client, machine_id="w1", headers={"X-User-Id": "sam"})
    _start(client, machine_id="d2", program_id="normal-75", name="Kim", room="101")

    usage = client.get("/api/admin/usage", headers=admin_headers).json()
    assert len(usage) == 2
    assert all(u["end_time"] is None for u in usage)
    assert {u["user_name"] for u in usage} == {"Sam", "Kim"}

    only_w1 = client.get(
        "/api/admin/usage", params={"machine_id": "w1", "limit": 5}, headers=admin_headers
    ).json()
    assert [u["user_id"] for u in only_w1] == ["sam"]

    resp = client.post("/api/admin/machines/w1/stop", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["status"] == "available"
    closed = client.get("/api/admin/usage", params={"machine_id": "w1"}, headers=admin_headers).json()
    assert closed[0]["end_time"] is not None


def test_admin_usage_limit_bounds(client, admin_headers) -> None:
    assert client.get("/api/admin/usage", params={"limit": 0}, headers=admin_headers).status_code == 422


def test_snapshot_event_payload(state: AppState) -> None:
    state.lifecycle.start_program("w3", "quick-30", "Sam", "A-15")
    message = snapshot_event(state, ["machine_usage", "machines"])
    assert message.startswith("data: ") and message.endswith("\n\n")
    payload = json.loads(message[len("data: "):])
    assert payload["changed"] == ["machine_usage", "machines"]
    statuses = {m["id"]: m["status"] for m in payload["machines"]}
    assert statuses["w3"] == "in-use"
