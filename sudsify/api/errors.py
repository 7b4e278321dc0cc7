"""Map core errors to HTTP responses."""
from fastapi import HTTPException

from sudsify.core.errors import (
    ConflictError,
    ForbiddenError,
    LaundryError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)


def to_http_exception(err: LaundryError) -> HTTPException:
    if isinstance(err, ValidationError):
        return HTTPException(
            status_code=400, detail={"field": err.field, "message": err.message}
        )
    if isinstance(err, NotFoundError):
        return HTTPException(status_code=404, detail=str(err))
    if isinstance(err, ConflictError):
        return HTTPException(status_code=409, detail=str(err))
    if isinstance(err, ForbiddenError):
        return HTTPException(status_code=403, detail=str(err))
    if isinstance(err, PersistenceError):
        return HTTPException(status_code=503, detail="Storage unavailable, please retry")
    return HTTPException(status_code=500, detail=str(err))
