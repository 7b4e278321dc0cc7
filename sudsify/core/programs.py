"""Static catalog of wash and dry programs."""
from typing import List, Optional

from sudsify.models.machine import DRYER, WASHER
from sudsify.models.program import Program

WASH_PROGRAMS: List[Program] = [
    Program("quick-30", "Quick Wash", 30, WASHER),
    Program("normal-60", "Normal Wash", 60, WASHER),
    Program("eco-90", "Eco Wash", 90, WASHER),
    Program("intensive-120", "Intensive Wash", 120, WASHER),
]

DRY_PROGRAMS: List[Program] = [
    Program("quick-45", "Quick Dry", 45, DRYER),
    Program("normal-75", "Normal Dry", 75, DRYER),
    Program("delicate-60", "Delicate Dry", 60, DRYER),
]

ALL_PROGRAMS: List[Program] = WASH_PROGRAMS + DRY_PROGRAMS


def programs_for_type(machine_type: str) -> List[Program]:
    """Return the programs selectable on a machine of this type."""
    return WASH_PROGRAMS if machine_type == WASHER else DRY_PROGRAMS


def get_program(program_id: str) -> Optional[Program]:
    """Return catalog program by id or None."""
    for p in ALL_PROGRAMS:
        if p.id == program_id:
            return p
    return None
