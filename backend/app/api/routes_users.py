"""Administrative user management endpoints."""
from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..core.db import get_session
from ..core.security import RequestContext, require_admin
from ..events import store
from ..events.errors import UserNotFoundError
from ..models import User

logger = logging.getLogger(__name__)
router = APIRouter()


class UserResponse(BaseModel):
    id: uuid.UUID
    email: str
    display_name: str | None
    role: str
    is_blocked: bool


class UserListResponse(BaseModel):
    users: list[UserResponse]


def _serialize(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        display_name=user.display_name,
        role=user.role,
        is_blocked=bool(user.is_blocked),
    )


def _load_other_user(session: Session, user_id: uuid.UUID, context: RequestContext, action: str) -> User:
    if user_id == context.user_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"You cannot {action} your own account")
    try:
        return store.get_user(session, user_id)
    except UserNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.message) from None


@router.get("", response_model=UserListResponse, summary="List user accounts")
async def list_users(
    session: Session = Depends(get_session),
    _: RequestContext = Depends(require_admin),
) -> UserListResponse:
    users = session.execute(select(User).order_by(User.email.asc())).scalars().all()
    return UserListResponse(users=[_serialize(user) for user in users])


def _set_blocked(session: Session, user_id: uuid.UUID, context: RequestContext, blocked: bool) -> UserResponse:
    user = _load_other_user(session, user_id, context, "block" if blocked else "unblock")
    user.is_blocked = blocked
    session.commit()
    logger.info("User %s blocked=%s by=%s", user.id, blocked, context.user_id)
    return _serialize(user)


@router.post("/{user_id}/block", response_model=UserResponse, summary="Block a user")
async def block_user(
    user_id: uuid.UUID,
    session: Session = Depends(get_session),
    context: RequestContext = Depends(require_admin),
) -> UserResponse:
    """Blocked users keep their account but can no longer register for events."""

    return _set_blocked(session, user_id, context, True)


@router.post("/{user_id}/unblock", response_model=UserResponse, summary="Unblock a user")
async def unblock_user(
    user_id: uuid.UUID,
    session: Session = Depends(get_session),
    context: RequestContext = Depends(require_admin),
) -> UserResponse:
    return _set_blocked(session, user_id, context, False)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a user")
async def delete_user(
    user_id: uuid.UUID,
    session: Session = Depends(get_session),
    context: RequestContext = Depends(require_admin),
) -> Response:
    user = _load_other_user(session, user_id, context, "delete")
    session.delete(user)
    session.commit()
    logger.info("User %s deleted by=%s", user_id, context.user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
