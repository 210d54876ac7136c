"""Identity provider integration."""

from .oidc import get_oidc_client
from .provisioning import upsert_user

__all__ = ["get_oidc_client", "upsert_user"]
