"""Turn an event id or free-text name into exactly one event id."""
from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..events import store
from ..events.dates import format_short

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Resolution:
    id: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.id is not None and self.error is None


def resolve_event_id(
    session: Session, event_id: str | None = None, event_name: str | None = None
) -> Resolution:
    """Resolve an event reference.

    An explicit id is returned untouched; the caller's own lookup reports a
    missing row. A name must match exactly one title (case-insensitive
    substring); several matches are listed back for the user to choose from
    instead of picking one.
    """

    if event_id and str(event_id).strip():
        return Resolution(id=str(event_id).strip())

    name = (event_name or "").strip()
    if not name:
        return Resolution(error="Either event_id or event_name must be provided.")

    try:
        matches = store.search_events_by_title(session, name)
    except SQLAlchemyError as exc:
        logger.exception("Event lookup failed for name=%r", name)
        session.rollback()
        return Resolution(error=f"Event lookup failed: {exc.__class__.__name__}: {getattr(exc, 'orig', None) or exc}")

    if not matches:
        return Resolution(error="No event found with that name.")
    if len(matches) > 1:
        options = "\n".join(
            f"• {event.title} ({format_short(event.date)}) [ID: {event.id}]" for event in matches
        )
        return Resolution(error=f"Multiple events found with that name. Please specify by ID:\n{options}")
    return Resolution(id=str(matches[0].id))
