"""Event catalogue and registration endpoints."""
from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..core.db import get_session
from ..core.security import RequestContext, get_request_context, require_admin
from ..events import store
from ..events.dates import as_utc, is_upcoming, require_event_date, utcnow
from ..events.errors import (
    BlockedUserError,
    DuplicateRegistrationError,
    EventNotFoundError,
    InvalidEventDateError,
    RegistrationNotFoundError,
)
from ..models import Event, User

logger = logging.getLogger(__name__)
router = APIRouter()


class EventResponse(BaseModel):
    id: uuid.UUID
    title: str
    description: Optional[str]
    date: datetime
    banner_url: Optional[str]
    created_by: Optional[uuid.UUID]
    is_upcoming: bool


class EventDetailResponse(EventResponse):
    registration_count: int
    is_registered: bool


class EventListResponse(BaseModel):
    total: int
    upcoming: list[EventResponse]
    past: list[EventResponse]


class EventCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    date: str = Field(..., min_length=1, description="ISO timestamp or natural language")
    banner_url: Optional[str] = Field(default=None, max_length=2048)


class EventUpdateRequest(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    date: Optional[str] = None
    banner_url: Optional[str] = Field(default=None, max_length=2048)


class RegistrationResponse(BaseModel):
    user_id: uuid.UUID
    email: str
    role: str
    is_blocked: bool
    registered_at: Optional[datetime]


class RegistrationListResponse(BaseModel):
    event_id: uuid.UUID
    title: str
    registrations: list[RegistrationResponse]


def _serialize(event: Event) -> EventResponse:
    return EventResponse(
        id=event.id,
        title=event.title,
        description=event.description,
        date=as_utc(event.date),
        banner_url=event.banner_url,
        created_by=event.created_by,
        is_upcoming=is_upcoming(event.date),
    )


def _parse_date_or_422(raw: str) -> datetime:
    try:
        return require_event_date(raw)
    except InvalidEventDateError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=exc.message) from None


def _load_or_404(session: Session, event_id: uuid.UUID) -> Event:
    try:
        return store.get_event(session, event_id)
    except EventNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Event not found") from None


def _listing(events: list[Event]) -> EventListResponse:
    upcoming, past = store.partition_events(events, now=utcnow())
    return EventListResponse(
        total=len(events),
        upcoming=[_serialize(event) for event in upcoming],
        past=[_serialize(event) for event in past],
    )


@router.get("", response_model=EventListResponse, summary="Browse events")
async def list_events(
    scope: Literal["upcoming", "past", "all"] = Query(default="all"),
    session: Session = Depends(get_session),
    _: RequestContext = Depends(get_request_context),
) -> EventListResponse:
    """Return events split into upcoming (soonest first) and past groups."""

    return _listing(store.fetch_events(session, scope))


@router.get("/mine", response_model=EventListResponse, summary="Events the caller registered for")
async def my_events(
    session: Session = Depends(get_session),
    context: RequestContext = Depends(get_request_context),
) -> EventListResponse:
    return _listing(store.registered_events_for(session, context.user_id))


@router.post("", response_model=EventResponse, status_code=status.HTTP_201_CREATED, summary="Create an event")
async def create_event(
    payload: EventCreateRequest,
    session: Session = Depends(get_session),
    context: RequestContext = Depends(require_admin),
) -> EventResponse:
    title = payload.title.strip()
    if not title:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Title is required")

    event = Event(
        title=title,
        description=payload.description,
        date=_parse_date_or_422(payload.date),
        banner_url=payload.banner_url or None,
        created_by=context.user_id,
    )
    session.add(event)
    session.commit()
    logger.info("Event created id=%s by=%s", event.id, context.user_id)
    return _serialize(event)


@router.get("/{event_id}", response_model=EventDetailResponse, summary="Event details")
async def get_event(
    event_id: uuid.UUID,
    session: Session = Depends(get_session),
    context: RequestContext = Depends(get_request_context),
) -> EventDetailResponse:
    event = _load_or_404(session, event_id)
    return EventDetailResponse(
        **_serialize(event).model_dump(),
        registration_count=store.count_registrations(session, event.id),
        is_registered=store.is_registered(session, context.user_id, event.id),
    )


@router.patch("/{event_id}", response_model=EventResponse, summary="Edit an event")
async def update_event(
    event_id: uuid.UUID,
    payload: EventUpdateRequest,
    session: Session = Depends(get_session),
    context: RequestContext = Depends(require_admin),
) -> EventResponse:
    event = _load_or_404(session, event_id)
    changes = payload.model_dump(exclude_unset=True)
    if "title" in changes:
        if not (changes["title"] or "").strip():
            raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Title is required")
        changes["title"] = changes["title"].strip()
    if "date" in changes:
        changes["date"] = _parse_date_or_422(changes["date"] or "")

    for field, value in changes.items():
        setattr(event, field, value)
    session.commit()
    logger.info("Event updated id=%s fields=%s by=%s", event.id, sorted(changes), context.user_id)
    return _serialize(event)


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete an event")
async def delete_event(
    event_id: uuid.UUID,
    session: Session = Depends(get_session),
    context: RequestContext = Depends(require_admin),
) -> Response:
    event = _load_or_404(session, event_id)
    session.delete(event)
    session.commit()
    logger.info("Event deleted id=%s by=%s", event_id, context.user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{event_id}/register", status_code=status.HTTP_201_CREATED, summary="Register for an event")
async def register(
    event_id: uuid.UUID,
    session: Session = Depends(get_session),
    context: RequestContext = Depends(get_request_context),
) -> dict[str, str]:
    user = session.get(User, context.user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    try:
        store.register_user(session, user, event_id)
    except BlockedUserError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=exc.message) from None
    except EventNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Event not found") from None
    except DuplicateRegistrationError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=exc.message) from None
    return {"detail": "Registration successful!"}


@router.get(
    "/{event_id}/registrations",
    response_model=RegistrationListResponse,
    summary="Who registered for an event",
)
async def list_registrations(
    event_id: uuid.UUID,
    session: Session = Depends(get_session),
    _: RequestContext = Depends(require_admin),
) -> RegistrationListResponse:
    event = _load_or_404(session, event_id)
    rows = store.list_registrations(session, event.id)
    return RegistrationListResponse(
        event_id=event.id,
        title=event.title,
        registrations=[
            RegistrationResponse(
                user_id=user.id,
                email=user.email,
                role=user.role,
                is_blocked=bool(user.is_blocked),
                registered_at=registration.created_at,
            )
            for registration, user in rows
        ],
    )


@router.delete(
    "/{event_id}/registrations/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a user's registration",
)
async def delete_registration(
    event_id: uuid.UUID,
    user_id: uuid.UUID,
    session: Session = Depends(get_session),
    context: RequestContext = Depends(require_admin),
) -> Response:
    try:
        store.delete_registration(session, event_id, user_id)
    except RegistrationNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Registration not found") from None
    logger.info("Registration removed event=%s user=%s by=%s", event_id, user_id, context.user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
