"""Wall clock used for cycle start/end times (UTC, timezone-aware)."""
from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
