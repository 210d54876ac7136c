"""SQLAlchemy declarative base for the application models."""
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


# Imported after ``Base`` so the model modules can import it without a cycle.
from .events import Event  # noqa: F401
from .registrations import Registration  # noqa: F401
from .users import User  # noqa: F401


__all__ = [
    "Base",
    "Event",
    "Registration",
    "User",
]
