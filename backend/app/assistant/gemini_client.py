"""HTTP client helpers for the Gemini ``generateContent`` API."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import httpx

from ..core.config import settings

logger = logging.getLogger(__name__)


class ModelClientError(RuntimeError):
    """Raised when the model service fails or returns an unusable payload."""


@dataclass(frozen=True)
class FunctionCall:
    name: str
    args: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ModelReply:
    """Either free text or a function call selected by the model."""

    text: str | None = None
    function_call: FunctionCall | None = None


def build_contents(history: Sequence[Dict[str, Any]], message: str) -> List[Dict[str, Any]]:
    """Append the live user turn to the already-shaped history."""

    contents = [dict(item) for item in history]
    contents.append({"role": "user", "parts": [{"text": message}]})
    return contents


def parse_reply(payload: Dict[str, Any]) -> ModelReply:
    """Extract the first function call, or the concatenated text, from a response."""

    candidates = payload.get("candidates") or []
    if not candidates:
        feedback = payload.get("promptFeedback") or {}
        reason = feedback.get("blockReason") or "no candidates returned"
        raise ModelClientError(f"Model returned no answer ({reason})")

    parts = (candidates[0].get("content") or {}).get("parts") or []
    for part in parts:
        call = part.get("functionCall")
        if call and call.get("name"):
            return ModelReply(function_call=FunctionCall(name=call["name"], args=dict(call.get("args") or {})))

    text = "".join(part.get("text", "") for part in parts if isinstance(part, dict))
    return ModelReply(text=text)


async def generate(
    *,
    system_instruction: str,
    history: Sequence[Dict[str, Any]],
    tools: Sequence[Dict[str, Any]],
    message: str,
    model: str | None = None,
    api_key: str | None = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ModelReply:
    """Send one chat turn with tool declarations and return the model's choice."""

    key = api_key or settings.GEMINI_API_KEY
    if not key:
        raise ModelClientError("GEMINI_API_KEY is not configured")

    model_name = model or settings.GEMINI_MODEL
    payload: Dict[str, Any] = {
        "systemInstruction": {"parts": [{"text": system_instruction}]},
        "contents": build_contents(history, message),
        "generationConfig": {"temperature": settings.GEMINI_TEMPERATURE},
    }
    if tools:
        payload["tools"] = [{"functionDeclarations": list(tools)}]

    # The key travels in a header so it never appears in URLs or error text.
    headers = {"x-goog-api-key": key}
    base_url = settings.GEMINI_API_BASE.rstrip("/")
    try:
        async with httpx.AsyncClient(
            base_url=base_url, timeout=settings.GEMINI_TIMEOUT, transport=transport
        ) as client:
            response = await client.post(f"/models/{model_name}:generateContent", json=payload, headers=headers)
            response.raise_for_status()
            data = response.json()
    except httpx.HTTPStatusError as exc:
        detail = _error_message(exc.response)
        logger.warning("Gemini request failed status=%s detail=%s", exc.response.status_code, detail)
        raise ModelClientError(f"Model request failed with status {exc.response.status_code}: {detail}") from exc
    except httpx.TransportError as exc:
        logger.warning("Gemini transport error: %s", exc.__class__.__name__)
        raise ModelClientError(f"Model service unreachable ({exc.__class__.__name__})") from exc
    except ValueError as exc:
        raise ModelClientError("Model returned malformed JSON") from exc

    return parse_reply(data)


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.reason_phrase or "unknown error"
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    return response.reason_phrase or "unknown error"
