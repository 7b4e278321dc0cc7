"""Machine state as stored in the shared machines table."""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sudsify.models.program import ProgramSnapshot

WASHER = "washer"
DRYER = "dryer"
MACHINE_TYPES = (WASHER, DRYER)

AVAILABLE = "available"
IN_USE = "in-use"
DONE = "done"
MACHINE_STATUSES = (AVAILABLE, IN_USE, DONE)


@dataclass
class Machine:
    """Point-in-time snapshot of one washer or dryer."""
    id: str
    name: str
    type: str  # "washer" | "dryer"
    status: str  # "available" | "in-use" | "done"
    current_program: Optional[ProgramSnapshot] = None
    end_time: Optional[datetime] = None
    can_postpone: Optional[bool] = None
    cycle: int = 0  # bumped on every start; completion timers check it
    started_by: Optional[str] = None
