"""Turn a chat transcript into a single assistant reply."""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Sequence

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.metrics import record_tool_call
from . import commands, gemini_client
from .tools import TOOL_DECLARATIONS

logger = logging.getLogger(__name__)

SYSTEM_INSTRUCTION = (
    "You are a concise event management assistant helping administrators manage events. "
    "Keep responses SHORT and conversational. When creating events, gather ALL required information "
    "(title, description, date, banner_url) before calling create_event, asking for one piece at a time. "
    "When a request matches several events, ask the admin which one they mean. "
    "Use Markdown formatting with emojis."
)


class AssistantUnavailableError(RuntimeError):
    """Raised when the model credential is not configured."""


@dataclass(frozen=True)
class ChatTurn:
    role: str
    content: str


def build_history(messages: Sequence[ChatTurn]) -> List[Dict[str, Any]]:
    """Shape every message but the last into the model's history format.

    A leading assistant greeting is dropped so history starts with a user turn.
    """

    earlier = list(messages[:-1])
    if earlier and earlier[0].role != "user":
        earlier = earlier[1:]
    return [
        {"role": "user" if turn.role == "user" else "model", "parts": [{"text": turn.content}]}
        for turn in earlier
    ]


async def process_chat(
    session: Session,
    messages: Sequence[ChatTurn],
    *,
    user_id: uuid.UUID | None = None,
) -> str:
    """Run one chat turn and return the reply text.

    Raises:
        ValueError: If ``messages`` is empty.
        AssistantUnavailableError: If no model credential is configured.
        gemini_client.ModelClientError: If the model call fails.
    """

    if not messages:
        raise ValueError("Messages required")
    if not settings.GEMINI_API_KEY:
        raise AssistantUnavailableError("GEMINI_API_KEY not configured")

    history = build_history(messages)
    reply = await gemini_client.generate(
        system_instruction=SYSTEM_INSTRUCTION,
        history=history,
        tools=TOOL_DECLARATIONS,
        message=messages[-1].content,
    )

    if reply.function_call is None:
        return reply.text or ""

    call = reply.function_call
    logger.info("Assistant dispatching %s args=%s user=%s", call.name, sorted(call.args), user_id)
    try:
        result = commands.execute(session, call.name, call.args, user_id=user_id)
    except Exception:
        record_tool_call(call.name, "error")
        raise
    record_tool_call(call.name, "ok" if call.name in commands.COMMANDS else "unknown")
    return result
