"""Status label and countdown text for display surfaces.

The countdown uses the caller's clock only: once end_time has passed it reads
"Done!" even if the authoritative status has not flipped to done yet.
"""
from datetime import datetime
from typing import Optional

from sudsify.models.machine import AVAILABLE, DONE, IN_USE, Machine

_STATUS_TEXT = {
    AVAILABLE: "Available",
    IN_USE: "In Use",
    DONE: "Ready to Unload",
}


def status_text(status: str) -> str:
    return _STATUS_TEXT.get(status, status)


def time_remaining(machine: Machine, now: datetime) -> Optional[str]:
    """'M:SS' while in use, 'Done!' once past end_time, None otherwise."""
    if machine.status != IN_USE or machine.end_time is None:
        return None
    diff_ms = int((machine.end_time - now).total_seconds() * 1000)
    if diff_ms <= 0:
        return "Done!"
    minutes = diff_ms // 60000
    seconds = (diff_ms % 60000) // 1000
    return f"{minutes}:{seconds:02d}"
