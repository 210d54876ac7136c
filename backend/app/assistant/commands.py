"""Event operations invoked by the assistant.

Every executor returns a human-readable string, including for validation
problems and store failures, so the chat reply is always plain text.
"""
from __future__ import annotations

import inspect
import logging
import uuid
from typing import Any, Callable, Dict, Mapping

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..events import store
from ..events.dates import DATE_FORMAT_HINT, format_long, format_short, parse_event_date, utcnow
from ..models import Event
from ..models.events import EDITABLE_FIELDS
from .resolver import resolve_event_id

logger = logging.getLogger(__name__)


def _blank(value: Any) -> bool:
    return value is None or not str(value).strip()


def _store_failure(action: str, session: Session, exc: SQLAlchemyError) -> str:
    logger.exception("Store failure while trying to %s", action)
    session.rollback()
    detail = getattr(exc, "orig", None) or exc
    return f"Failed to {action}: {detail}"


def _load(session: Session, event_id: str) -> Event | None:
    key = store.coerce_uuid(event_id)
    if key is None:
        return None
    return session.get(Event, key)


def _not_found(event_id: str) -> str:
    return f"No event found with ID {event_id}."


def _list_entry(event: Event) -> str:
    return (
        f"• ID: {event.id}\n"
        f"  Title: {event.title}\n"
        f"  Date: {format_short(event.date)}\n"
        f"  Description: {event.description or 'N/A'}\n"
    )


def create_event(
    session: Session,
    title: str | None = None,
    description: str | None = None,
    date: str | None = None,
    banner_url: str | None = None,
    *,
    created_by: uuid.UUID | None = None,
) -> str:
    provided = {"title": title, "description": description, "date": date, "banner_url": banner_url}
    missing = [name for name, value in provided.items() if _blank(value)]
    if missing:
        return (
            f"Missing required fields: {', '.join(missing)}. "
            "Please provide them before I create the event."
        )

    parsed = parse_event_date(date)
    if parsed is None:
        return f"Sorry, I couldn't understand the event date. Please use a format like {DATE_FORMAT_HINT}."

    event = Event(
        title=str(title).strip(),
        description=str(description).strip(),
        date=parsed,
        banner_url=str(banner_url).strip(),
        created_by=created_by,
    )
    try:
        session.add(event)
        session.commit()
    except SQLAlchemyError as exc:
        return _store_failure("create event", session, exc)

    logger.info("Assistant created event id=%s title=%r", event.id, event.title)
    return f'Event "{event.title}" created successfully for {format_long(parsed)}.'


def update_event(
    session: Session,
    field: str | None = None,
    value: str | None = None,
    event_id: str | None = None,
    event_name: str | None = None,
) -> str:
    resolution = resolve_event_id(session, event_id, event_name)
    if not resolution.ok:
        return resolution.error or "Could not determine event ID."

    if field not in EDITABLE_FIELDS:
        return f"I can't update '{field}'. Allowed fields are: {', '.join(EDITABLE_FIELDS)}."

    new_value: Any = value
    if field == "date":
        new_value = parse_event_date(value)
        if new_value is None:
            return f"Couldn't parse the date. Use a format like {DATE_FORMAT_HINT}."
    elif field == "title":
        if _blank(value):
            return "The event title cannot be empty."
        new_value = str(value).strip()

    try:
        event = _load(session, resolution.id)
        if event is None:
            return _not_found(resolution.id)
        setattr(event, field, new_value)
        session.commit()
    except SQLAlchemyError as exc:
        return _store_failure("update event", session, exc)

    logger.info("Assistant updated event id=%s field=%s", event.id, field)
    return f'Event "{event.title}" updated: {field} changed successfully.'


def delete_event(session: Session, event_id: str | None = None, event_name: str | None = None) -> str:
    resolution = resolve_event_id(session, event_id, event_name)
    if not resolution.ok:
        return resolution.error or "Could not determine event ID."

    try:
        event = _load(session, resolution.id)
        if event is None:
            return _not_found(resolution.id)
        title = event.title
        session.delete(event)
        session.commit()
    except SQLAlchemyError as exc:
        return _store_failure("delete event", session, exc)

    logger.info("Assistant deleted event id=%s", resolution.id)
    return f'Event "{title}" deleted successfully.'


def list_events(session: Session, event_type: str | None = "upcoming") -> str:
    scope = (event_type or "upcoming").strip().lower()
    if scope not in store.EVENT_SCOPES:
        return f"Unknown event type '{event_type}'. Use upcoming, past, or all."

    now = utcnow()
    try:
        events = store.fetch_events(session, scope, now=now)  # type: ignore[arg-type]
    except SQLAlchemyError as exc:
        return _store_failure(f"load {scope} events", session, exc)

    if scope != "all":
        if not events:
            return f"There are no {scope} events."
        return f"Here are {scope} events ({len(events)} total):\n\n" + "\n".join(_list_entry(e) for e in events)

    if not events:
        return "There are no events in the system."
    upcoming, past = store.partition_events(events, now=now)
    sections = []
    if upcoming:
        sections.append(f"📅 UPCOMING EVENTS ({len(upcoming)}):\n" + "\n".join(_list_entry(e) for e in upcoming))
    if past:
        sections.append(f"🕒 PAST EVENTS ({len(past)}):\n" + "\n".join(_list_entry(e) for e in past))
    return f"Here are all events ({len(events)} total):\n\n" + "\n".join(sections)


def get_event_details(session: Session, event_id: str | None = None, event_name: str | None = None) -> str:
    resolution = resolve_event_id(session, event_id, event_name)
    if not resolution.ok:
        return resolution.error or "Could not determine event ID."

    try:
        event = _load(session, resolution.id)
        if event is None:
            return _not_found(resolution.id)
        registrations = store.count_registrations(session, event.id)
    except SQLAlchemyError as exc:
        return _store_failure("load event details", session, exc)

    lines = [
        f"📌 {event.title}",
        "",
        event.description or "No description provided.",
        "",
        f"📅 Date: {format_long(event.date)}",
        f"👥 Registrations: {registrations}",
    ]
    if event.banner_url:
        lines.append(f"🖼️ Banner: {event.banner_url}")
    lines.append(f"🆔 ID: {event.id}")
    return "\n".join(lines)


def get_event_registrations(
    session: Session, event_id: str | None = None, event_name: str | None = None
) -> str:
    resolution = resolve_event_id(session, event_id, event_name)
    if not resolution.ok:
        return resolution.error or "Could not determine event ID."

    try:
        event = _load(session, resolution.id)
        if event is None:
            return _not_found(resolution.id)
        rows = store.list_registrations(session, event.id)
    except SQLAlchemyError as exc:
        return _store_failure("load registrations", session, exc)

    if not rows:
        return f'No one has registered for "{event.title}" yet.'
    roster = "\n".join(f"{index}. {user.email} ({user.role})" for index, (_, user) in enumerate(rows, start=1))
    return f'Registrations for "{event.title}" ({len(rows)}):\n{roster}'


COMMANDS: Dict[str, Callable[..., str]] = {
    "create_event": create_event,
    "update_event": update_event,
    "delete_event": delete_event,
    "list_events": list_events,
    "get_event_details": get_event_details,
    "get_event_registrations": get_event_registrations,
}


def tool_parameters(name: str) -> set[str]:
    """Keyword parameters the model may fill for command ``name``."""

    signature = inspect.signature(COMMANDS[name])
    return {
        param.name
        for param in signature.parameters.values()
        if param.name != "session" and param.kind is inspect.Parameter.POSITIONAL_OR_KEYWORD
    }


def execute(
    session: Session,
    name: str,
    args: Mapping[str, Any],
    *,
    user_id: uuid.UUID | None = None,
) -> str:
    """Run the command the model selected and return its text result."""

    command = COMMANDS.get(name)
    if command is None:
        logger.warning("Model requested unknown function %r", name)
        return f"Sorry, I can't perform '{name}'."

    allowed = tool_parameters(name)
    kwargs = {key: (None if value is None else str(value)) for key, value in args.items() if key in allowed}
    ignored = sorted(set(args) - allowed)
    if ignored:
        logger.debug("Ignoring undeclared arguments for %s: %s", name, ignored)
    if name == "create_event":
        return command(session, created_by=user_id, **kwargs)
    return command(session, **kwargs)
