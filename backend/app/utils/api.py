"""
Route-side helpers shared by the API routers.

Service errors map onto HTTP status codes:
    PreconditionFailed / CapacityExceeded -> 400
    NotFound                              -> 404
    ConstraintViolation                   -> 409
    StoreError                            -> 500
"""

from typing import Any, Generator, Optional

from fastapi import Depends, HTTPException
from sqlmodel import Session

from app.database import get_session
from app.services.entity_store import EntityStore
from app.services.errors import DrawError


def get_store(session: Session = Depends(get_session)) -> Generator[EntityStore, None, None]:
    """EntityStore bound to the request's session"""
    yield EntityStore(session)


def to_http_exception(error: DrawError) -> HTTPException:
    return HTTPException(status_code=error.status_code, detail=error.message)


def require_ids(**identifiers: Optional[Any]) -> None:
    """400 for the first missing identifier, e.g. require_ids(tournament_id=None)."""
    for name, value in identifiers.items():
        if value is None:
            raise HTTPException(status_code=400, detail=f"{name} is required")
