from __future__ import annotations

from fastapi import HTTPException, status

from chronicle.lock import GameBusyError


def http_error(e: ValueError) -> HTTPException:
    """Map a domain ValueError to the HTTP error the caller should see."""

    if isinstance(e, GameBusyError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
