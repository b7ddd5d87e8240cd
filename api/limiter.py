"""
api/limiter.py -- Shared slowapi rate limiter instance.

Imported by api/main.py (to mount SlowAPIMiddleware) and api/routes/auth.py
(to apply per-route limits with @limiter.limit()). slowapi binds limits to
route functions when the route modules are imported, so there is exactly one
Limiter per process and every app shares its in-memory counter store.

That makes the limiter the one piece of process-wide state: create_app()
calls configure() with its Settings, which toggles limiter.enabled and sets
the limit string login_rate_limit() hands to slowapi on each request. The
last app built wins. Processes that build several apps (the test suite) must
call reset() when they are done with a rate-limited one.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")

DEFAULT_LOGIN_LIMIT = "10/minute"

_login_limit = DEFAULT_LOGIN_LIMIT


def login_rate_limit() -> str:
    """Dynamic limit provider for the credential endpoints (login, register)."""
    return _login_limit


def configure(enabled: bool, login_limit: str) -> None:
    """Apply Settings to the shared limiter."""
    global _login_limit
    limiter.enabled = enabled
    _login_limit = login_limit


def reset(enabled: bool = True) -> None:
    """Clear every counter and restore the default limit."""
    limiter.reset()
    configure(enabled, DEFAULT_LOGIN_LIMIT)
