"""Translate barterguard errors into HTTP responses.

- ``ValidationError``  -> 422
- ``PolicyRejection``  -> 403, ``X-Rejection-Code`` carries the reason
- ``StoreError``       -> 404 for ``not_found``, 409 for ``duplicate``, else 503
"""

from __future__ import annotations

from fastapi import HTTPException, status

from barterguard.errors import BarterGuardError, PolicyRejection, StoreError, ValidationError


def to_http(exc: BarterGuardError) -> HTTPException:
    if isinstance(exc, ValidationError):
        return HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"message": str(exc), "fields": exc.fields},
        )
    if isinstance(exc, PolicyRejection):
        return HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"message": str(exc), "code": exc.code},
            headers={"X-Rejection-Code": exc.code},
        )
    if isinstance(exc, StoreError):
        if exc.code == "not_found":
            return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
        if exc.code == "duplicate":
            return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Storage is unavailable, try again later",
        )
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))
