"""
api/routes/auth.py -- Registration, login and user listing endpoints.

Routes:
  POST /api/auth/register   -- create account; returns bearer token, sets cookie
  POST /api/auth/login      -- password login; returns bearer token, sets cookie
  POST /api/auth/logout     -- clears cookie
  GET  /api/auth/me         -- current user (requires auth)
  GET  /api/auth/users      -- all users (admin only)

Security:
  register and login are rate-limited per IP (Settings.login_rate_limit).
  authenticate_user() provides timing equalization -- use it, never inline
  get_by_email() + verify_password().
  Cache-Control: no-store on every response that carries a token.

@router.post sits outside @limiter.limit so the registered endpoint is the
slowapi wrapper that counts requests. Annotations stay evaluated (no
`from __future__ import annotations`): FastAPI reads them through that
wrapper, whose globals belong to slowapi.
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from api.limiter import limiter, login_rate_limit
from api.models import AuthResponse, LoginRequest, MessageResponse, RegisterRequest, UserResponse
from auth.dependencies import get_current_user, require
from auth.models import Role, User
from auth.policy import Action
from auth.store import UserStore
from auth.tokens import AUTH_COOKIE, authenticate_user, hash_password, set_auth_cookie
from core.errors import AuthenticationError, AuthorizationError, ConflictError

# Auth policy:
# - POST /api/auth/register: public
# - POST /api/auth/login:    public
# - POST /api/auth/logout:   public -- clearing a cookie needs no prior auth
# - GET  /api/auth/me:       requires auth (get_current_user)
# - GET  /api/auth/users:    Action.LIST_USERS (admin)
router = APIRouter()


def _token_response(request: Request, status_code: int, message: str, user_id: int) -> JSONResponse:
    settings = request.app.state.settings
    tokens = request.app.state.tokens
    token = tokens.issue(user_id)
    resp = JSONResponse(
        status_code=status_code,
        content=AuthResponse(message=message, token=token).model_dump(),
    )
    set_auth_cookie(resp, token, max_age=tokens.expire_seconds, secure=settings.secure_cookies)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/auth/register", response_model=AuthResponse, status_code=201)
@limiter.limit(login_rate_limit)
def register(request: Request, body: RegisterRequest) -> JSONResponse:
    """Create an account and log it in.

    The email must be unused. Registering with role "admin" is refused when
    Settings.allow_admin_registration is off.
    """
    user_store: UserStore = request.app.state.user_store

    if body.role is Role.admin and not request.app.state.settings.allow_admin_registration:
        raise AuthorizationError("Admin accounts cannot be self-registered.")
    if user_store.get_by_email(body.email) is not None:
        raise ConflictError("User already exists.")

    try:
        user_id = user_store.create_user(
            User(
                fullname=body.fullname,
                email=body.email,
                role=body.role,
                hashed_password=hash_password(body.password),
            )
        )
    except IntegrityError as exc:
        # A concurrent register for the same email won the race.
        raise ConflictError("User already exists.") from exc

    return _token_response(request, 201, "User registered successfully.", user_id)


@router.post("/auth/login", response_model=AuthResponse, status_code=201)
@limiter.limit(login_rate_limit)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Exchange email and password for a bearer token.

    Wrong email and wrong password produce the same 401 so the response does
    not reveal which accounts exist.
    """
    user = authenticate_user(request.app.state.user_store, body.email, body.password)
    if user is None:
        raise AuthenticationError("Invalid email or password.")
    return _token_response(request, 201, "User logged in successfully.", user.id)


@router.post("/auth/logout", response_model=MessageResponse)
def logout() -> JSONResponse:
    """Clear the token cookie. Bearer tokens stay valid until they expire."""
    resp = JSONResponse(content={"message": "Logged out."})
    resp.delete_cookie(AUTH_COOKIE)
    return resp


@router.get("/auth/me", response_model=UserResponse)
def me(current_user: User = Depends(get_current_user)) -> UserResponse:
    """Return the authenticated user's record."""
    return UserResponse.from_domain(current_user)


@router.get("/auth/users", response_model=list[UserResponse])
def list_users(
    request: Request,
    current_user: User = Depends(require(Action.LIST_USERS)),
) -> list[UserResponse]:
    """List all user accounts. Admin only."""
    user_store: UserStore = request.app.state.user_store
    return [UserResponse.from_domain(u) for u in user_store.list_users()]
