"""Usage ledger entry."""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class UsageRecord:
    """One cycle in the usage ledger; end_time is set once when the cycle ends or is stopped."""
    id: str
    machine_id: str
    user_id: Optional[str]
    user_name: str
    room_number: str
    program_name: str
    program_duration: int
    start_time: datetime
    end_time: Optional[datetime] = None
