from fastapi import HTTPException, status

from app.core.errors import InvalidTransitionError, ReferentialError, RouteLockedError, ValidationError


def http_error(exc: ValueError) -> HTTPException:
    if isinstance(exc, (RouteLockedError, InvalidTransitionError)):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=exc.detail)
    if isinstance(exc, (ValidationError, ReferentialError)):
        return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=exc.detail)
    return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))
