from fastapi import HTTPException, status

from slotbook.services.errors import (
    ConflictError,
    NotFoundError,
    SlotServiceError,
    SlotUnavailableError,
    ValidationError,
)

DATABASE_UNAVAILABLE_DETAIL = 'Database unavailable. Verify DATABASE_URL and database credentials.'

SERVICE_ERROR_STATUS = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ConflictError: status.HTTP_409_CONFLICT,
    SlotUnavailableError: status.HTTP_409_CONFLICT,
}


def to_http_exception(exc: SlotServiceError) -> HTTPException:
    status_code = SERVICE_ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST)
    return HTTPException(status_code=status_code, detail=exc.message)


def database_unavailable() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=DATABASE_UNAVAILABLE_DETAIL,
    )
