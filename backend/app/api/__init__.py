"""API package exports."""
from . import routes_admin, routes_auth, routes_chat, routes_events, routes_users

__all__ = [
    "routes_admin",
    "routes_auth",
    "routes_chat",
    "routes_events",
    "routes_users",
]
