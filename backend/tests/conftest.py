from __future__ import annotations

import base64
import json
import sys
import uuid
from collections.abc import Callable, Iterator
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import itsdangerous
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from backend.app.assistant import gemini_client
from backend.app.assistant.gemini_client import FunctionCall, ModelReply
from backend.app.core import db as db_module
from backend.app.core.config import settings
from backend.app.core.rate_limiter import limiter
from backend.app.main import create_app
from backend.app.models import Base, Event, Registration, User


@pytest.fixture()
def engine() -> Iterator:
    engine = create_engine(
        "sqlite://",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _register_functions(dbapi_connection, _):  # pragma: no cover - sqlite setup
        dbapi_connection.create_function("gen_random_uuid", 0, lambda: str(uuid.uuid4()))

    Base.metadata.create_all(engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture()
def session_factory(engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False, class_=Session)


@pytest.fixture()
def session(session_factory: sessionmaker) -> Iterator[Session]:
    with session_factory() as session:
        yield session


def _session_ctx(factory: sessionmaker):
    def _get_session() -> Iterator[Session]:
        session = factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    return _get_session


@pytest.fixture()
def client(monkeypatch: pytest.MonkeyPatch, session_factory: sessionmaker) -> TestClient:
    monkeypatch.setattr(db_module, "SessionLocal", session_factory)
    limiter.reset()

    app = create_app()
    app.dependency_overrides[db_module.get_session] = _session_ctx(session_factory)
    return TestClient(app)


@pytest.fixture()
def make_user(session_factory: sessionmaker) -> Callable[..., uuid.UUID]:
    def _make(email: str | None = None, *, role: str = "user", is_blocked: bool = False) -> uuid.UUID:
        user_id = uuid.uuid4()
        with session_factory() as session:
            session.add(
                User(
                    id=user_id,
                    email=email or f"{user_id.hex[:8]}@example.com",
                    role=role,
                    is_blocked=is_blocked,
                )
            )
            session.commit()
        return user_id

    return _make


@pytest.fixture()
def make_event(session_factory: sessionmaker) -> Callable[..., uuid.UUID]:
    def _make(
        title: str,
        *,
        days: float = 7,
        description: str | None = "Seeded event",
        banner_url: str | None = None,
    ) -> uuid.UUID:
        event_id = uuid.uuid4()
        when = (datetime.now(timezone.utc) + timedelta(days=days)).replace(microsecond=0)
        with session_factory() as session:
            session.add(
                Event(id=event_id, title=title, description=description, date=when, banner_url=banner_url)
            )
            session.commit()
        return event_id

    return _make


@pytest.fixture()
def register(session_factory: sessionmaker) -> Callable[[uuid.UUID, uuid.UUID], None]:
    def _register(user_id: uuid.UUID, event_id: uuid.UUID) -> None:
        with session_factory() as session:
            session.add(Registration(user_id=user_id, event_id=event_id))
            session.commit()

    return _register


def _signed_session_cookie(data: dict[str, Any]) -> str:
    signer = itsdangerous.TimestampSigner(str(settings.SESSION_SECRET))
    payload = base64.b64encode(json.dumps(data).encode("utf-8"))
    return signer.sign(payload).decode("utf-8")


@pytest.fixture()
def login(client: TestClient) -> Callable[[uuid.UUID], dict[str, str]]:
    """Attach a signed session for ``user_id``; returns the CSRF header to send."""

    def _login(user_id: uuid.UUID) -> dict[str, str]:
        csrf_token = f"csrf-{user_id.hex[:8]}"
        cookie = _signed_session_cookie({"user_id": str(user_id), "csrf_token": csrf_token})
        client.cookies.set(settings.SESSION_COOKIE_NAME, cookie)
        return {"X-CSRF-Token": csrf_token}

    return _login


class FakeModel:
    """Stands in for ``gemini_client.generate`` and records every call."""

    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []
        self.replies: list[ModelReply] = []

    def reply_text(self, text: str) -> None:
        self.replies.append(ModelReply(text=text))

    def call(self, name: str, **args: Any) -> None:
        self.replies.append(ModelReply(function_call=FunctionCall(name=name, args=args)))

    async def __call__(self, **kwargs: Any) -> ModelReply:
        self.calls.append(kwargs)
        if not self.replies:
            return ModelReply(text="")
        return self.replies.pop(0)


@pytest.fixture()
def fake_model(monkeypatch: pytest.MonkeyPatch) -> FakeModel:
    model = FakeModel()
    monkeypatch.setattr(settings, "GEMINI_API_KEY", "test-key")
    monkeypatch.setattr(gemini_client, "generate", model)
    return model
