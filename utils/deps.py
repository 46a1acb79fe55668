"""Dependency providers for shared application state."""

from __future__ import annotations

from fastapi import HTTPException, Request
from pydantic import ValidationError

from schemas.gatepass import Caller


def get_caller(request: Request) -> Caller:
    """Resolve the signed-in user stored in the session by the identity service.

    The session holds ``{"id", "employee_id", "role"}``; anything else is
    treated as unauthenticated.
    """
    user = request.session.get("user") if "session" in request.scope else None
    if not isinstance(user, dict):
        raise HTTPException(status_code=401, detail="not-authenticated")
    try:
        return Caller.model_validate(user)
    except ValidationError:
        raise HTTPException(status_code=401, detail="not-authenticated") from None
