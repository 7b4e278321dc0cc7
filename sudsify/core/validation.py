"""User name and room number checks applied before any write."""
import re

from sudsify.core.errors import ValidationError

USER_NAME_MAX_LEN = 100
ROOM_NUMBER_MAX_LEN = 10

_ROOM_NUMBER_REGEX = re.compile(r"^[A-Za-z0-9-]+$")


def validate_user_name(value: str) -> str:
    """Return the trimmed name or raise ValidationError."""
    name = (value or "").strip()
    if not name:
        raise ValidationError("user_name", "Name is required")
    if len(name) > USER_NAME_MAX_LEN:
        raise ValidationError("user_name", f"Name must be at most {USER_NAME_MAX_LEN} characters")
    return name


def validate_room_number(value: str) -> str:
    """Return the trimmed room number (e.g. '201', 'A-15') or raise ValidationError."""
    room = (value or "").strip()
    if not room:
        raise ValidationError("room_number", "Room number is required")
    if len(room) > ROOM_NUMBER_MAX_LEN:
        raise ValidationError(
            "room_number", f"Room number must be at most {ROOM_NUMBER_MAX_LEN} characters"
        )
    if not _ROOM_NUMBER_REGEX.match(room):
        raise ValidationError(
            "room_number", "Room number can only contain letters, numbers, and hyphens"
        )
    return room
