"""OIDC client configured from settings."""
from __future__ import annotations

from functools import lru_cache

from authlib.integrations.starlette_client import OAuth

from ..core.config import settings

PROVIDER_NAME = "oidc"


@lru_cache(maxsize=1)
def get_oidc_client() -> OAuth:
    """Return the Authlib registry with the identity provider registered."""

    oauth = OAuth()
    issuer = settings.OIDC_ISSUER.rstrip("/")
    oauth.register(
        name=PROVIDER_NAME,
        server_metadata_url=f"{issuer}/.well-known/openid-configuration",
        client_id=settings.OIDC_CLIENT_ID,
        client_secret=settings.OIDC_CLIENT_SECRET,
        client_kwargs={"scope": settings.OIDC_SCOPES},
    )
    return oauth
