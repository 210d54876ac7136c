"""Function declarations advertised to the model.

Property names must match the keyword parameters of the executors in
``commands.py``; ``tests/test_assistant.py`` checks the two stay aligned.
"""
from __future__ import annotations

from typing import Any, Dict, List

from ..models.events import EDITABLE_FIELDS
from ..events.store import EVENT_SCOPES

_EVENT_REFERENCE = {
    "event_id": {
        "type": "STRING",
        "description": "The event ID (UUID)",
    },
    "event_name": {
        "type": "STRING",
        "description": "The event name/title, used when the ID is not known",
    },
}

TOOL_DECLARATIONS: List[Dict[str, Any]] = [
    {
        "name": "create_event",
        "description": "Creates a new event with title, description, date, and banner URL",
        "parameters": {
            "type": "OBJECT",
            "properties": {
                "title": {"type": "STRING", "description": "The event title"},
                "description": {"type": "STRING", "description": "The event description"},
                "date": {
                    "type": "STRING",
                    "description": "The event date in natural language (e.g. '2025-10-20 20:00' or 'tomorrow at 5pm')",
                },
                "banner_url": {"type": "STRING", "description": "The URL of the event banner image"},
            },
            "required": ["title", "description", "date", "banner_url"],
        },
    },
    {
        "name": "update_event",
        "description": "Updates one field of an existing event, identified by ID or name",
        "parameters": {
            "type": "OBJECT",
            "properties": {
                **_EVENT_REFERENCE,
                "field": {
                    "type": "STRING",
                    "description": "Field to update: title, description, date, or banner_url",
                    "enum": list(EDITABLE_FIELDS),
                },
                "value": {"type": "STRING", "description": "The new value for the field"},
            },
            "required": ["field", "value"],
        },
    },
    {
        "name": "delete_event",
        "description": "Deletes an event by ID or name",
        "parameters": {
            "type": "OBJECT",
            "properties": dict(_EVENT_REFERENCE),
        },
    },
    {
        "name": "list_events",
        "description": "Lists events based on time filter",
        "parameters": {
            "type": "OBJECT",
            "properties": {
                "event_type": {
                    "type": "STRING",
                    "description": "Type of events to list: 'upcoming' (default), 'past', or 'all'",
                    "enum": list(EVENT_SCOPES),
                },
            },
            "required": ["event_type"],
        },
    },
    {
        "name": "get_event_details",
        "description": "Shows full details of one event, including how many people registered",
        "parameters": {
            "type": "OBJECT",
            "properties": dict(_EVENT_REFERENCE),
        },
    },
    {
        "name": "get_event_registrations",
        "description": "Lists the users registered for an event",
        "parameters": {
            "type": "OBJECT",
            "properties": dict(_EVENT_REFERENCE),
        },
    },
]


def declared_parameters(name: str) -> set[str]:
    """Return the property names declared for tool ``name``."""

    for declaration in TOOL_DECLARATIONS:
        if declaration["name"] == name:
            return set(declaration["parameters"].get("properties", {}))
    raise KeyError(name)
