"""Error taxonomy for machine operations. Routes map these to HTTP status codes."""


class LaundryError(Exception):
    """Base for all errors raised by the core."""


class ValidationError(LaundryError):
    """Bad user input; names the offending field."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class ConflictError(LaundryError):
    """Machine is not in the state the requested transition needs."""

    def __init__(self, message: str = "machine unavailable") -> None:
        super().__init__(message)


class NotFoundError(LaundryError):
    """Unknown machine or program id."""


class ForbiddenError(LaundryError):
    """Session is not allowed to perform the operation."""


class PersistenceError(LaundryError):
    """Shared backend unreachable or rejected the write."""
