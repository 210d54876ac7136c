"""Natural-language date parsing and display formatting for events."""
from __future__ import annotations

from datetime import datetime, timezone

import dateparser

from ..core.config import settings
from .errors import InvalidEventDateError

DATE_FORMAT_HINT = "'2025-10-20 20:00' or 'tomorrow at 5pm'"


def parse_event_date(raw: str | None, *, tz_name: str | None = None) -> datetime | None:
    """Parse free-form date text into an aware UTC datetime.

    Text without an explicit offset is read in ``EVENT_TIMEZONE``. Returns
    ``None`` when the text cannot be understood; callers must not substitute
    a default.
    """

    if raw is None:
        return None
    text = str(raw).strip()
    if not text:
        return None

    parsed = dateparser.parse(
        text,
        languages=["en"],
        settings={
            "TIMEZONE": tz_name or settings.EVENT_TIMEZONE,
            "TO_TIMEZONE": "UTC",
            "RETURN_AS_TIMEZONE_AWARE": True,
            "PREFER_DATES_FROM": "future",
        },
    )
    if parsed is None:
        return None
    return as_utc(parsed)


def require_event_date(raw: str | None) -> datetime:
    """Like :func:`parse_event_date` but raises :class:`InvalidEventDateError`."""

    parsed = parse_event_date(raw)
    if parsed is None:
        raise InvalidEventDateError(raw)
    return parsed


def as_utc(value: datetime) -> datetime:
    """Normalise a stored timestamp to an aware UTC datetime.

    SQLite hands back naive values; they are stored in UTC.
    """

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def is_upcoming(value: datetime, *, now: datetime | None = None) -> bool:
    return as_utc(value) >= (now or utcnow())


def format_long(value: datetime) -> str:
    """Detail view: ``Monday, October 20, 2025 at 08:00 PM UTC``."""

    return as_utc(value).strftime("%A, %B %d, %Y at %I:%M %p UTC")


def format_short(value: datetime) -> str:
    """List view: ``2025-10-20 20:00 UTC``."""

    return as_utc(value).strftime("%Y-%m-%d %H:%M UTC")
