"""Request-scoped caller identity and role guards."""
from __future__ import annotations

import uuid
from dataclasses import dataclass

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from ..models import User
from ..models.users import ROLE_ADMIN
from .db import get_session


@dataclass(frozen=True)
class RequestContext:
    """The authenticated caller, resolved once per request."""

    user_id: uuid.UUID
    email: str
    role: str
    is_blocked: bool

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


def _session_user_id(request: Request) -> uuid.UUID:
    raw_user_id = getattr(request.state, "user_id", None) or request.session.get("user_id")
    if not raw_user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    try:
        return uuid.UUID(str(raw_user_id))
    except (TypeError, ValueError) as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid session") from exc


def get_request_context(request: Request, session: Session = Depends(get_session)) -> RequestContext:
    """Load the caller's stored role and blocked flag; 401 if unknown."""

    user_id = _session_user_id(request)
    user = session.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return RequestContext(
        user_id=user.id,
        email=user.email,
        role=user.role,
        is_blocked=bool(user.is_blocked),
    )


def require_admin(context: RequestContext = Depends(get_request_context)) -> RequestContext:
    """Allow only callers whose stored role is ``admin``."""

    if not context.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden: Admin access required")
    return context
