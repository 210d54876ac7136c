"""Query helpers over the events, registrations and users tables."""
from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Iterable, Literal

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..models import Event, Registration, User
from .dates import as_utc, utcnow
from .errors import (
    BlockedUserError,
    DuplicateRegistrationError,
    EventNotFoundError,
    RegistrationNotFoundError,
    UserNotFoundError,
)

logger = logging.getLogger(__name__)

EventScope = Literal["upcoming", "past", "all"]
EVENT_SCOPES: tuple[str, ...] = ("upcoming", "past", "all")


def coerce_uuid(raw: object) -> uuid.UUID | None:
    """Return ``raw`` as a UUID, or ``None`` if it is not one."""

    if isinstance(raw, uuid.UUID):
        return raw
    try:
        return uuid.UUID(str(raw).strip())
    except (TypeError, ValueError, AttributeError):
        return None


def get_event(session: Session, event_id: object) -> Event:
    """Load an event by id.

    Raises:
        EventNotFoundError: If the id is malformed or no row matches.
    """

    key = coerce_uuid(event_id)
    event = session.get(Event, key) if key is not None else None
    if event is None:
        raise EventNotFoundError(event_id)
    return event


def get_user(session: Session, user_id: object) -> User:
    """Load a user by id.

    Raises:
        UserNotFoundError: If no row matches.
    """

    key = coerce_uuid(user_id)
    user = session.get(User, key) if key is not None else None
    if user is None:
        raise UserNotFoundError(user_id)
    return user


def fetch_events(session: Session, scope: EventScope = "all", *, now: datetime | None = None) -> list[Event]:
    """Return events for ``scope``.

    Upcoming events are ordered soonest first, past events most recent first,
    and ``all`` is ordered by date ascending.
    """

    moment = now or utcnow()
    stmt = select(Event)
    if scope == "upcoming":
        stmt = stmt.where(Event.date >= moment).order_by(Event.date.asc())
    elif scope == "past":
        stmt = stmt.where(Event.date < moment).order_by(Event.date.desc())
    elif scope == "all":
        stmt = stmt.order_by(Event.date.asc())
    else:
        raise ValueError(f"Unknown event scope: {scope!r}")
    return list(session.execute(stmt).scalars().all())


def partition_events(
    events: Iterable[Event], *, now: datetime | None = None
) -> tuple[list[Event], list[Event]]:
    """Split events into ``(upcoming, past)`` preserving input order."""

    moment = now or utcnow()
    upcoming: list[Event] = []
    past: list[Event] = []
    for event in events:
        (upcoming if as_utc(event.date) >= moment else past).append(event)
    return upcoming, past


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def search_events_by_title(session: Session, name: str) -> list[Event]:
    """Case-insensitive substring match on event titles, ordered by date."""

    pattern = f"%{_escape_like(name.strip())}%"
    stmt = select(Event).where(Event.title.ilike(pattern, escape="\\")).order_by(Event.date.asc())
    return list(session.execute(stmt).scalars().all())


def count_registrations(session: Session, event_id: uuid.UUID) -> int:
    stmt = select(func.count(Registration.id)).where(Registration.event_id == event_id)
    return int(session.execute(stmt).scalar_one())


def list_registrations(session: Session, event_id: uuid.UUID) -> list[tuple[Registration, User]]:
    """Return ``(registration, user)`` pairs for an event, oldest sign-up first."""

    stmt = (
        select(Registration, User)
        .join(User, Registration.user_id == User.id)
        .where(Registration.event_id == event_id)
        .order_by(Registration.created_at.asc(), User.email.asc())
    )
    return [(row[0], row[1]) for row in session.execute(stmt).all()]


def is_registered(session: Session, user_id: uuid.UUID, event_id: uuid.UUID) -> bool:
    stmt = select(Registration.id).where(
        Registration.user_id == user_id,
        Registration.event_id == event_id,
    )
    return session.execute(stmt).first() is not None


def registered_events_for(session: Session, user_id: uuid.UUID) -> list[Event]:
    """Events the user signed up for, ordered by date ascending."""

    stmt = (
        select(Event)
        .join(Registration, Registration.event_id == Event.id)
        .where(Registration.user_id == user_id)
        .order_by(Event.date.asc())
    )
    return list(session.execute(stmt).scalars().all())


def register_user(session: Session, user: User, event_id: object) -> Registration:
    """Register ``user`` for an event and commit.

    Uniqueness is enforced by the ``(user_id, event_id)`` constraint; a
    violation is reported as :class:`DuplicateRegistrationError`.

    Raises:
        BlockedUserError: If the account is blocked.
        EventNotFoundError: If the event does not exist.
        DuplicateRegistrationError: If the user is already registered.
    """

    if user.is_blocked:
        raise BlockedUserError()
    event = get_event(session, event_id)

    registration = Registration(user_id=user.id, event_id=event.id)
    session.add(registration)
    try:
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        logger.info("Duplicate registration user=%s event=%s: %s", user.id, event.id, exc.orig)
        raise DuplicateRegistrationError() from exc
    return registration


def delete_registration(session: Session, event_id: uuid.UUID, user_id: uuid.UUID) -> None:
    stmt = select(Registration).where(
        Registration.event_id == event_id,
        Registration.user_id == user_id,
    )
    registration = session.execute(stmt).scalar_one_or_none()
    if registration is None:
        raise RegistrationNotFoundError()
    session.delete(registration)
    session.commit()
