"""Authentication endpoints leveraging OIDC."""
from __future__ import annotations

import logging
import secrets
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..auth import get_oidc_client, upsert_user
from ..core.config import settings
from ..core.db import get_session
from ..core.security import RequestContext, get_request_context

router = APIRouter()

logger = logging.getLogger(__name__)


class LocalLoginRequest(BaseModel):
    """Request payload for the development local login flow."""

    email: str
    password: str


def _start_session(request: Request, user_id: object) -> None:
    request.session.clear()
    request.session["user_id"] = str(user_id)
    request.session["csrf_token"] = secrets.token_urlsafe(32)


def _frontend(path: str) -> str:
    return f"{settings.FRONTEND_URL.rstrip('/')}{path}"


@router.get("/login", summary="Initiate OIDC login")
async def oidc_login(request: Request) -> Any:
    """Redirect the user to the OIDC provider for authentication."""

    oauth = get_oidc_client()
    return await oauth.oidc.authorize_redirect(request, settings.OIDC_REDIRECT_URI)


@router.get("/callback", summary="OIDC redirect URI")
async def oidc_callback(request: Request, session: Session = Depends(get_session)) -> RedirectResponse:
    """Exchange the authorization code, provision the user and start a session."""

    oauth = get_oidc_client()
    try:
        token = await oauth.oidc.authorize_access_token(request)
        claims = await _extract_claims(oauth, token)
    except Exception as exc:
        logger.exception("OIDC callback failed: %s", exc)
        return RedirectResponse(url=_frontend("/auth/login?error=oidc"), status_code=status.HTTP_303_SEE_OTHER)

    sub = claims.get("sub")
    email = claims.get("email")
    if not sub or not email:
        logger.error("OIDC callback missing required claims: sub=%s email=%s", sub, email)
        return RedirectResponse(url=_frontend("/auth/login?error=profile"), status_code=status.HTTP_303_SEE_OTHER)

    display_name = claims.get("name") or claims.get("preferred_username") or email
    user = upsert_user(session, sub=sub, email=email, display_name=display_name)
    session.commit()

    _start_session(request, user.id)
    return RedirectResponse(url=_frontend("/events"), status_code=status.HTTP_303_SEE_OTHER)


@router.get("/me", summary="Current user profile")
async def read_current_user(
    request: Request, context: RequestContext = Depends(get_request_context)
) -> dict[str, Any]:
    """Return the caller's profile, role and CSRF token."""

    csrf_token = request.session.get("csrf_token")
    if not csrf_token:
        csrf_token = secrets.token_urlsafe(32)
        request.session["csrf_token"] = csrf_token

    return {
        "user": {
            "id": str(context.user_id),
            "email": context.email,
            "role": context.role,
            "is_blocked": context.is_blocked,
        },
        "csrf_token": csrf_token,
    }


@router.post("/logout", summary="Terminate the current session")
async def logout(request: Request) -> JSONResponse:
    """Clear the session cookie."""

    request.session.clear()
    response = JSONResponse({"detail": "Logged out"})
    response.delete_cookie(
        settings.SESSION_COOKIE_NAME,
        path="/",
        secure=settings.SESSION_COOKIE_SECURE,
        httponly=True,
        samesite="lax",
    )
    return response


@router.post("/local-login", summary="Authenticate with a development account")
async def local_login(
    payload: LocalLoginRequest,
    request: Request,
    session: Session = Depends(get_session),
) -> JSONResponse:
    """Allow development logins using static credentials."""

    if not settings.LOCAL_LOGIN_ENABLED:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")

    expected_email = settings.LOCAL_LOGIN_EMAIL.strip().lower()
    provided_email = payload.email.strip().lower()
    if provided_email != expected_email or payload.password.strip() != settings.LOCAL_LOGIN_PASSWORD.strip():
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")

    user = upsert_user(session, sub=f"local:{expected_email}", email=expected_email, display_name=payload.email)
    session.commit()

    _start_session(request, user.id)
    return JSONResponse({"detail": "Logged in"})


async def _extract_claims(oauth: Any, token: dict[str, Any]) -> dict[str, Any]:
    """Prefer the ID token claims Authlib already parsed; fall back to userinfo."""

    userinfo = token.get("userinfo")
    if userinfo:
        return dict(userinfo)
    return dict(await oauth.oidc.userinfo(token=token))
