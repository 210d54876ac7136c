"""Create or refresh local user rows after a successful login."""
from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..core.config import settings
from ..models import User
from ..models.users import ROLE_ADMIN, ROLE_USER

logger = logging.getLogger(__name__)


def upsert_user(session: Session, *, sub: str, email: str, display_name: str | None) -> User:
    """Match by subject, then by email; otherwise provision a new account.

    New accounts get the admin role when their email is listed in
    ``ADMIN_EMAILS``. Existing roles and blocked flags are never changed here.
    """

    user = session.execute(select(User).where(User.oidc_sub == sub)).scalar_one_or_none()
    if user is None:
        user = session.execute(select(User).where(User.email == email)).scalar_one_or_none()

    if user is None:
        role = ROLE_ADMIN if settings.is_admin_email(email) else ROLE_USER
        user = User(email=email, display_name=display_name, oidc_sub=sub, role=role, is_blocked=False)
        session.add(user)
        logger.info("Provisioned user email=%s role=%s", email, role)
    else:
        user.email = email
        user.display_name = display_name or user.display_name
        if not user.oidc_sub:
            user.oidc_sub = sub

    session.flush()
    return user
