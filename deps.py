from fastapi import HTTPException, Request, status

from services.errors import (
    EnergyAccountingError,
    InvalidInputError,
    MeterDataMissingError,
    NotFoundError,
)
from services.report_cache import KeyedLocks, default_locks


def get_report_locks(request: Request) -> KeyedLocks:
    return getattr(request.app.state, "report_locks", None) or default_locks


def http_error(exc: EnergyAccountingError) -> HTTPException:
    """Map a service failure to the HTTP status the routers return."""
    if isinstance(exc, MeterDataMissingError):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": str(exc), **exc.notes},
        )
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, InvalidInputError):
        return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))
