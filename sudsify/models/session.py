"""Caller identity passed explicitly into operations that need authorization."""
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Session:
    user_id: Optional[str] = None
    is_admin: bool = False


ANONYMOUS = Session()
