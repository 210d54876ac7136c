"""User model definition."""
from __future__ import annotations

import uuid

from sqlalchemy import Boolean, Column, DateTime, String, func, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from . import Base

ROLE_ADMIN = "admin"
ROLE_USER = "user"
USER_ROLES = (ROLE_ADMIN, ROLE_USER)


class User(Base):
    """Account provisioned on first login through the identity provider."""

    __tablename__ = "users"

    id = Column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=func.gen_random_uuid(),
    )
    email = Column(String, nullable=False, unique=True, index=True)
    display_name = Column(String, nullable=True)
    oidc_sub = Column(String, nullable=True, unique=True, index=True)
    role = Column(String(16), nullable=False, default=ROLE_USER, server_default=ROLE_USER)
    is_blocked = Column(Boolean, nullable=False, default=False, server_default=text("false"))
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    registrations = relationship(
        "Registration",
        back_populates="user",
        cascade="all, delete-orphan",
    )
    created_events = relationship("Event", back_populates="creator")

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"User(id={self.id!s}, email={self.email!r}, role={self.role!r})"
