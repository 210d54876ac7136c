"""Chat endpoint for the admin event assistant."""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, Field, ValidationError
from sqlalchemy.orm import Session

from ..assistant import orchestrator
from ..assistant.gemini_client import ModelClientError
from ..core.config import settings
from ..core.db import get_session
from ..core.rate_limiter import limiter
from ..core.security import RequestContext, require_admin

logger = logging.getLogger(__name__)

router = APIRouter()


class ChatMessage(BaseModel):
    role: str = Field(..., description="'user' or 'assistant'")
    content: str


class ChatRequest(BaseModel):
    messages: Optional[List[ChatMessage]] = None


class ChatResponse(BaseModel):
    reply: str


async def _read_payload(request: Request) -> ChatRequest:
    # Read inside the handler so the session and admin checks run before the body is parsed.
    try:
        body = await request.json()
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid JSON body") from None
    try:
        return ChatRequest.model_validate(body)
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=exc.errors(include_url=False, include_context=False),
        ) from None


@router.post(
    "",
    response_model=ChatResponse,
    summary="Send the transcript and get one reply",
    openapi_extra={"requestBody": {"content": {"application/json": {"schema": ChatRequest.model_json_schema()}}}},
)
@limiter.limit(settings.RATE_LIMIT_CHAT)
async def chat(
    request: Request,
    context: RequestContext = Depends(require_admin),
    session: Session = Depends(get_session),
) -> ChatResponse:
    """Let the model pick an event operation, run it and return the text result."""

    payload = await _read_payload(request)
    if not payload.messages:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Messages required")

    turns = [orchestrator.ChatTurn(role=m.role, content=m.content) for m in payload.messages]
    try:
        reply = await orchestrator.process_chat(session, turns, user_id=context.user_id)
    except orchestrator.AssistantUnavailableError:
        logger.error("Chat requested but GEMINI_API_KEY is not configured")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Service temporarily unavailable"
        ) from None
    except ModelClientError as exc:
        logger.error("Chat model call failed: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Internal server error: {exc}"
        ) from exc
    except Exception as exc:
        logger.exception("Chat API error")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Internal server error: {exc}"
        ) from exc

    return ChatResponse(reply=reply)
