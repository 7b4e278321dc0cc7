"""Machine listing and self-service start/stop."""
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from sudsify.api.errors import to_http_exception
from sudsify.api.state import AppState, get_session, get_state
from sudsify.core.display import status_text, time_remaining
from sudsify.core.errors import LaundryError
from sudsify.models.machine import Machine
from sudsify.models.session import Session

router = APIRouter()


class StartProgramBody(BaseModel):
    program_id: str
    user_name: str
    room_number: str


def machine_to_dict(m: Machine, now: datetime) -> dict:
    return {
        "id": m.id,
        "name": m.name,
        "type": m.type,
        "status": m.status,
        "status_text": status_text(m.status),
        "current_program_name": m.current_program.name if m.current_program else None,
        "current_program_duration": m.current_program.duration if m.current_program else None,
        "end_time": m.end_time.isoformat() if m.end_time else None,
        "can_postpone": m.can_postpone,
        "time_remaining": time_remaining(m, now),
    }


@router.get("")
def list_machines(state: AppState = Depends(get_state)):
    """List all machines with status and countdown."""
    try:
        machines = state.view.list_machines()
    except LaundryError as e:
        raise to_http_exception(e) from e
    now = state.clock()
    return [machine_to_dict(m, now) for m in machines]


@router.get("/{machine_id}")
def get_machine(machine_id: str, state: AppState = Depends(get_state)):
    """Return one machine."""
    try:
        machine = state.view.get_machine(machine_id)
    except LaundryError as e:
        raise to_http_exception(e) from e
    if machine is None:
        raise HTTPException(status_code=404, detail="Machine not found")
    return machine_to_dict(machine, state.clock())


@router.post("/{machine_id}/start")
def start_program(
    machine_id: str,
    body: StartProgramBody,
    state: AppState = Depends(get_state),
    session: Session = Depends(get_session),
):
    """Start a program on an available machine."""
    try:
        machine = state.lifecycle.start_program(
            machine_id,
            body.program_id,
            body.user_name,
            body.room_number,
            session=session,
        )
    except LaundryError as e:
        raise to_http_exception(e) from e
    return machine_to_dict(machine, state.clock())


@router.post("/{machine_id}/stop")
def stop_program(
    machine_id: str,
    state: AppState = Depends(get_state),
    session: Session = Depends(get_session),
):
    """Stop a running cycle or acknowledge a finished one."""
    try:
        machine = state.lifecycle.stop_program(machine_id, session=session)
    except LaundryError as e:
        raise to_http_exception(e) from e
    return machine_to_dict(machine, state.clock())
