"""Admin surface: usage history and force-stop."""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from sudsify.api.errors import to_http_exception
from sudsify.api.routes.machines import machine_to_dict
from sudsify.api.state import AppState, get_session, get_state
from sudsify.config import USAGE_DEFAULT_LIMIT, USAGE_MAX_LIMIT
from sudsify.core.errors import LaundryError
from sudsify.models.session import Session
from sudsify.models.usage import UsageRecord

router = APIRouter()


def require_admin(session: Session = Depends(get_session)) -> Session:
    if not session.is_admin:
        raise HTTPException(status_code=403, detail="Admin privileges required")
    return session


def _usage_to_dict(u: UsageRecord) -> dict:
    return {
        "id": u.id,
        "machine_id": u.machine_id,
        "user_id": u.user_id,
        "user_name": u.user_name,
        "room_number": u.room_number,
        "program_name": u.program_name,
        "program_duration": u.program_duration,
        "start_time": u.start_time.isoformat(),
        "end_time": u.end_time.isoformat() if u.end_time else None,
    }


@router.get("/usage")
def list_usage(
    limit: int = Query(USAGE_DEFAULT_LIMIT, ge=1, le=USAGE_MAX_LIMIT),
    machine_id: Optional[str] = None,
    state: AppState = Depends(get_state),
    session: Session = Depends(require_admin),
):
    """Usage history, newest first."""
    try:
        records = state.view.list_usage(limit, machine_id=machine_id)
    except LaundryError as e:
        raise to_http_exception(e) from e
    return [_usage_to_dict(u) for u in records]


@router.post("/machines/{machine_id}/stop")
def force_stop(
    machine_id: str,
    state: AppState = Depends(get_state),
    session: Session = Depends(require_admin),
):
    """Force-stop a machine regardless of who started it."""
    try:
        machine = state.lifecycle.force_stop(machine_id, session)
    except LaundryError as e:
        raise to_http_exception(e) from e
    return machine_to_dict(machine, state.clock())
