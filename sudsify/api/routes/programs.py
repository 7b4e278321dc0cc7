"""Program catalog."""
from typing import Optional

from fastapi import APIRouter, HTTPException

from sudsify.core.programs import ALL_PROGRAMS, programs_for_type
from sudsify.models.machine import MACHINE_TYPES

router = APIRouter()


@router.get("")
def list_programs(type: Optional[str] = None):
    """List programs, optionally only those for 'washer' or 'dryer'."""
    if type is None:
        programs = ALL_PROGRAMS
    elif type in MACHINE_TYPES:
        programs = programs_for_type(type)
    else:
        raise HTTPException(status_code=400, detail="type must be 'washer' or 'dryer'")
    return [
        {"id": p.id, "name": p.name, "duration": p.duration, "type": p.type}
        for p in programs
    ]
