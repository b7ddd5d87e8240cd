"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Requests authenticate with an `Authorization: Bearer <token>` header. The
token cookie set at login is not consulted here, so a browser cannot be
tricked into sending authenticated cross-site requests.

try_get_current_user() is the soft variant (returns None on failure).
get_current_user() wraps it and raises AuthenticationError (401).
require(action) wraps get_current_user() and raises AuthorizationError (403)
when the policy table denies a resource-independent action.

Both stores and the TokenService are read from request.app.state, where the
application lifespan put them.

Layer rule: no imports from api/ or tracker/.
  auth/dependencies.py may import from fastapi because this module is part of
  the FastAPI dependency injection system.
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import Request

from auth.models import User
from auth.policy import OWNERSHIP_ACTIONS, Action, Decision, authorize
from core.errors import AuthenticationError, AuthorizationError


def bearer_token(request: Request) -> str | None:
    """Extract the token from an `Authorization: Bearer <token>` header.

    Returns None for a missing header, another scheme, or an empty token.
    The scheme name is matched case-insensitively (RFC 7235).
    """
    auth_header = request.headers.get("Authorization", "")
    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() != "bearer":
        return None
    token = token.strip()
    return token or None


def try_get_current_user(request: Request) -> User | None:
    """Resolve the request's bearer token to a User, or None.

    Never raises -- callers that need a hard 401 should use get_current_user().
    """
    token = bearer_token(request)
    if token is None:
        return None
    user_id = request.app.state.tokens.verify(token)
    if user_id is None:
        return None
    return request.app.state.user_store.get_by_id(user_id)


def get_current_user(request: Request) -> User:
    """Require authentication. Raises AuthenticationError (401) otherwise.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(user: User = Depends(get_current_user)): ...
    """
    user = try_get_current_user(request)
    if user is None:
        raise AuthenticationError("You are not logged in.")
    return user


def require(action: Action) -> Callable[[Request], User]:
    """Build a dependency that authenticates and then checks action.

    Only for actions that do not depend on a specific task's assignee;
    ownership checks happen in the service once the task is loaded.

        @router.post("/projects")
        def route(user: User = Depends(require(Action.CREATE_PROJECT))): ...
    """
    if action in OWNERSHIP_ACTIONS:
        raise ValueError(f"{action.value} depends on task ownership; check it in the service")

    def dependency(request: Request) -> User:
        user = get_current_user(request)
        if authorize(user, action) is Decision.DENY:
            raise AuthorizationError("User is not authorized.")
        return user

    return dependency
