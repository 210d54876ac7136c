from __future__ import annotations

import asyncio
import json
import uuid
from datetime import datetime, timezone

import httpx
import pytest
from sqlalchemy import func, select

from backend.app.assistant import commands, gemini_client, orchestrator
from backend.app.assistant.resolver import resolve_event_id
from backend.app.assistant.tools import TOOL_DECLARATIONS, declared_parameters
from backend.app.core.config import settings
from backend.app.events.dates import as_utc, parse_event_date
from backend.app.models import Event


def _count_events(session_factory) -> int:
    with session_factory() as session:
        return session.execute(select(func.count(Event.id))).scalar_one()


def test_create_event_stores_parsed_utc_date(session, session_factory) -> None:
    reply = commands.create_event(
        session,
        title="Team Dinner",
        description="End of quarter dinner",
        date="2025-10-20 20:00",
        banner_url="https://cdn.example.com/dinner.png",
    )

    assert reply == 'Event "Team Dinner" created successfully for Monday, October 20, 2025 at 08:00 PM UTC.'
    with session_factory() as check:
        event = check.execute(select(Event)).scalar_one()
        assert as_utc(event.date) == datetime(2025, 10, 20, 20, 0, tzinfo=timezone.utc)
        assert event.banner_url == "https://cdn.example.com/dinner.png"


def test_create_event_names_missing_fields_without_writing(session, session_factory) -> None:
    reply = commands.create_event(session, title="Picnic", description="  ", date="tomorrow at 5pm")

    assert reply.startswith("Missing required fields: description, banner_url.")
    assert _count_events(session_factory) == 0


def test_create_event_rejects_unparseable_date(session, session_factory) -> None:
    reply = commands.create_event(
        session, title="Picnic", description="Lunch", date="whenever", banner_url="https://x.example/p.png"
    )

    assert reply.startswith("Sorry, I couldn't understand the event date.")
    assert _count_events(session_factory) == 0


def test_update_event_refuses_unknown_field(session, make_event, session_factory) -> None:
    event_id = make_event("Quiz Night")

    reply = commands.update_event(session, field="location", value="Room 4", event_id=str(event_id))

    assert reply == "I can't update 'location'. Allowed fields are: title, description, date, banner_url."
    with session_factory() as check:
        assert check.get(Event, event_id).title == "Quiz Night"


def test_update_event_keeps_date_when_value_is_unparseable(session, make_event, session_factory) -> None:
    event_id = make_event("Quiz Night", days=3)
    with session_factory() as check:
        before = as_utc(check.get(Event, event_id).date)

    reply = commands.update_event(session, field="date", value="not a date", event_id=str(event_id))

    assert reply.startswith("Couldn't parse the date.")
    with session_factory() as check:
        assert as_utc(check.get(Event, event_id).date) == before


def test_update_event_by_name(session, make_event, session_factory) -> None:
    event_id = make_event("Quiz Night")

    reply = commands.update_event(session, field="title", value="Trivia Night", event_name="quiz")

    assert reply == 'Event "Trivia Night" updated: title changed successfully.'
    with session_factory() as check:
        assert check.get(Event, event_id).title == "Trivia Night"


def test_update_event_strips_title(session, make_event, session_factory) -> None:
    event_id = make_event("Quiz Night")

    reply = commands.update_event(session, field="title", value="  Trivia  ", event_id=str(event_id))

    assert reply == 'Event "Trivia" updated: title changed successfully.'
    with session_factory() as check:
        assert check.get(Event, event_id).title == "Trivia"


def test_update_event_reports_missing_id(session) -> None:
    missing = str(uuid.uuid4())
    reply = commands.update_event(session, field="title", value="X", event_id=missing)
    assert reply == f"No event found with ID {missing}."


def test_delete_event_by_name(session, make_event, session_factory) -> None:
    make_event("Farewell Party")

    assert commands.delete_event(session, event_name="farewell") == 'Event "Farewell Party" deleted successfully.'
    assert _count_events(session_factory) == 0


def test_resolver_requires_a_reference(session) -> None:
    resolution = resolve_event_id(session)
    assert not resolution.ok
    assert resolution.error == "Either event_id or event_name must be provided."


def test_resolver_reports_no_match(session, make_event) -> None:
    make_event("Book Club")
    resolution = resolve_event_id(session, event_name="Film Night")
    assert resolution.error == "No event found with that name."


def test_resolver_lists_ambiguous_matches(session, make_event, session_factory) -> None:
    first = make_event("Team Lunch", days=1)
    second = make_event("Team Lunch", days=8)

    resolution = resolve_event_id(session, event_name="team lunch")

    assert not resolution.ok
    assert resolution.error.startswith("Multiple events found with that name. Please specify by ID:")
    assert str(first) in resolution.error and str(second) in resolution.error

    reply = commands.delete_event(session, event_name="Team Lunch")
    assert reply == resolution.error
    assert _count_events(session_factory) == 2


def test_resolver_escapes_wildcards(session, make_event) -> None:
    make_event("Budget Review")
    assert resolve_event_id(session, event_name="%").error == "No event found with that name."


def test_list_events_groups_upcoming_and_past(session, make_event) -> None:
    make_event("Next Week", days=7)
    make_event("Tomorrow", days=1)
    make_event("Last Year", days=-365)

    upcoming = commands.list_events(session, "upcoming")
    assert upcoming.startswith("Here are upcoming events (2 total):")
    assert upcoming.index("Tomorrow") < upcoming.index("Next Week")
    assert "Last Year" not in upcoming

    everything = commands.list_events(session, "all")
    assert everything.startswith("Here are all events (3 total):")
    assert "📅 UPCOMING EVENTS (2):" in everything
    assert "🕒 PAST EVENTS (1):" in everything
    assert everything.index("Next Week") < everything.index("🕒 PAST EVENTS")
    assert everything.index("Last Year") > everything.index("🕒 PAST EVENTS")


def test_list_past_events_most_recent_first(session, make_event) -> None:
    make_event("Old A", days=-20)
    make_event("Old B", days=-2)
    make_event("Future", days=5)

    reply = commands.list_events(session, "past")

    assert reply.startswith("Here are past events (2 total):")
    assert "Future" not in reply
    assert reply.index("Old B") < reply.index("Old A")


def test_list_all_with_only_past_events(session, make_event) -> None:
    make_event("Archive", days=-3)

    reply = commands.list_events(session, "all")

    assert reply.startswith("Here are all events (1 total):\n\n🕒 PAST EVENTS (1):\n")
    assert "UPCOMING" not in reply


def test_list_events_empty_messages(session) -> None:
    assert commands.list_events(session, "past") == "There are no past events."
    assert commands.list_events(session, "all") == "There are no events in the system."


def test_event_details_and_registrations(session, make_user, make_event, register) -> None:
    event_id = make_event("Open Day", banner_url="https://cdn.example.com/open.png")
    assert commands.get_event_registrations(session, event_id=str(event_id)) == (
        'No one has registered for "Open Day" yet.'
    )

    register(make_user("guest@example.com"), event_id)

    details = commands.get_event_details(session, event_id=str(event_id))
    assert details.startswith("📌 Open Day")
    assert "👥 Registrations: 1" in details
    assert "🖼️ Banner: https://cdn.example.com/open.png" in details
    assert f"🆔 ID: {event_id}" in details

    roster = commands.get_event_registrations(session, event_name="open day")
    assert roster == 'Registrations for "Open Day" (1):\n1. guest@example.com (user)'


def test_tool_declarations_match_executors() -> None:
    names = [declaration["name"] for declaration in TOOL_DECLARATIONS]
    assert sorted(names) == sorted(commands.COMMANDS)
    for name in names:
        assert declared_parameters(name) == commands.tool_parameters(name), name


def test_execute_unknown_function(session) -> None:
    assert commands.execute(session, "drop_database", {}) == "Sorry, I can't perform 'drop_database'."


def test_execute_ignores_undeclared_arguments(session, make_user, session_factory) -> None:
    admin_id = make_user(role="admin")
    reply = commands.execute(
        session,
        "create_event",
        {
            "title": "Demo Day",
            "description": "Show and tell",
            "date": "2031-02-03 15:00",
            "banner_url": "https://cdn.example.com/demo.png",
            "created_by": str(uuid.uuid4()),
        },
        user_id=admin_id,
    )

    assert reply.startswith('Event "Demo Day" created successfully')
    with session_factory() as check:
        assert check.execute(select(Event)).scalar_one().created_by == admin_id


def test_build_history_drops_leading_greeting() -> None:
    turns = [
        orchestrator.ChatTurn("assistant", "Hello!"),
        orchestrator.ChatTurn("user", "list events"),
        orchestrator.ChatTurn("assistant", "Which ones?"),
        orchestrator.ChatTurn("user", "past"),
    ]
    assert orchestrator.build_history(turns) == [
        {"role": "user", "parts": [{"text": "list events"}]},
        {"role": "model", "parts": [{"text": "Which ones?"}]},
    ]


def test_process_chat_requires_api_key(session, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "GEMINI_API_KEY", None)
    with pytest.raises(orchestrator.AssistantUnavailableError):
        asyncio.run(orchestrator.process_chat(session, [orchestrator.ChatTurn("user", "hi")]))


def test_process_chat_runs_selected_command(session, make_event, fake_model) -> None:
    make_event("Lightning Talks")
    fake_model.call("get_event_details", event_name="lightning")

    reply = asyncio.run(orchestrator.process_chat(session, [orchestrator.ChatTurn("user", "details?")]))

    assert reply.startswith("📌 Lightning Talks")
    assert fake_model.calls[0]["system_instruction"] == orchestrator.SYSTEM_INSTRUCTION


def test_parse_event_date_handles_natural_language() -> None:
    parsed = parse_event_date("2025-10-20 20:00")
    assert parsed == datetime(2025, 10, 20, 20, 0, tzinfo=timezone.utc)
    assert parse_event_date("tomorrow at 5pm") is not None
    assert parse_event_date("   ") is None
    assert parse_event_date("not a date") is None


def test_generate_sends_key_in_header_and_parses_function_call() -> None:
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["key"] = request.headers.get("x-goog-api-key")
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "candidates": [
                    {
                        "content": {
                            "parts": [{"functionCall": {"name": "list_events", "args": {"event_type": "past"}}}]
                        }
                    }
                ]
            },
        )

    reply = asyncio.run(
        gemini_client.generate(
            system_instruction="be brief",
            history=[{"role": "user", "parts": [{"text": "hi"}]}],
            tools=TOOL_DECLARATIONS,
            message="show past events",
            model="gemini-test",
            api_key="secret-key",
            transport=httpx.MockTransport(handler),
        )
    )

    assert reply.function_call == gemini_client.FunctionCall(name="list_events", args={"event_type": "past"})
    assert seen["key"] == "secret-key"
    assert "secret-key" not in seen["url"]
    assert seen["url"].endswith("/models/gemini-test:generateContent")
    assert seen["body"]["contents"][-1] == {"role": "user", "parts": [{"text": "show past events"}]}
    assert len(seen["body"]["tools"][0]["functionDeclarations"]) == len(TOOL_DECLARATIONS)


def test_generate_wraps_http_errors_without_leaking_key() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(403, json={"error": {"message": "API key not valid"}})

    with pytest.raises(gemini_client.ModelClientError) as excinfo:
        asyncio.run(
            gemini_client.generate(
                system_instruction="",
                history=[],
                tools=[],
                message="hi",
                api_key="secret-key",
                transport=httpx.MockTransport(handler),
            )
        )

    assert "403" in str(excinfo.value)
    assert "API key not valid" in str(excinfo.value)
    assert "secret-key" not in str(excinfo.value)


def test_parse_reply_joins_text_parts() -> None:
    reply = gemini_client.parse_reply(
        {"candidates": [{"content": {"parts": [{"text": "Hello "}, {"text": "there"}]}}]}
    )
    assert reply == gemini_client.ModelReply(text="Hello there")

    with pytest.raises(gemini_client.ModelClientError):
        gemini_client.parse_reply({"promptFeedback": {"blockReason": "SAFETY"}})
