"""Seed the development database with an admin, a regular user and sample events."""
from __future__ import annotations

import sys
from datetime import timedelta
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from sqlalchemy.orm import Session

from backend.app.core.config import settings
from backend.app.core.db import SessionLocal
from backend.app.events.dates import utcnow
from backend.app.models import Event, Registration, User
from backend.app.models.users import ROLE_ADMIN, ROLE_USER


def _get_or_create_user(session: Session, email: str, role: str) -> User:
    user = session.query(User).filter(User.email == email).one_or_none()
    if user is None:
        user = User(email=email, display_name=email.split("@")[0], role=role, oidc_sub=f"local:{email}")
        session.add(user)
        session.flush()
    return user


def _get_or_create_event(session: Session, title: str, days_from_now: int, creator: User) -> Event:
    event = session.query(Event).filter(Event.title == title).one_or_none()
    if event is None:
        event = Event(
            title=title,
            description=f"{title} (seeded for development)",
            date=(utcnow() + timedelta(days=days_from_now)).replace(second=0, microsecond=0),
            created_by=creator.id,
        )
        session.add(event)
        session.flush()
    return event


def main() -> None:
    """Entry point for seeding data."""

    with SessionLocal() as session:
        admin = _get_or_create_user(session, settings.LOCAL_LOGIN_EMAIL.strip().lower(), ROLE_ADMIN)
        member = _get_or_create_user(session, "member@example.com", ROLE_USER)
        upcoming = _get_or_create_event(session, "Autumn Meetup", 14, admin)
        _get_or_create_event(session, "Spring Retrospective", -30, admin)

        exists = (
            session.query(Registration)
            .filter(Registration.user_id == member.id, Registration.event_id == upcoming.id)
            .one_or_none()
        )
        if exists is None:
            session.add(Registration(user_id=member.id, event_id=upcoming.id))
        session.commit()

        print("Seeded development data:")
        print(f"  Admin: {admin.email} ({admin.id})")
        print(f"  Member: {member.email} ({member.id})")
        print(f"  Upcoming event: {upcoming.title} ({upcoming.id})")


if __name__ == "__main__":
    main()
