"""
Request gates, applied as view decorators.

Authentication walks NoToken -> TokenInvalid -> TokenValid/SessionInvalid -> Authenticated:
  1. bearer token from the Authorization header, else the "jwt" cookie
  2. signature / expiry / type via the TokenIssuer
  3. user from the token's sub, must be active and not blocked
  4. an active, unexpired session issued with this exact token
  5. touch the session (best effort)
  6. g.current_user / g.current_session for the view

resolve_identity() returns an AuthResult instead of raising, so the optional
variant can fall back to an anonymous request without catching anything.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import wraps
from typing import Iterable, Optional

from flask import g, request

from api.errors import (
    ApiError,
    Forbidden,
    InvalidSession,
    InvalidToken,
    NotFound,
    RateLimited,
    Unauthenticated,
    ValidationFailed,
)
from api.extensions import get_rate_limiter, get_session_registry, get_storage, get_token_issuer
from models.session import UserSession
from models.shop import Shop
from models.user import ROLE_ADMIN, ROLE_SUPERUSER, User
from utils.tokens import ACCESS, TokenError, TokenExpired

logger = logging.getLogger(__name__)

TOKEN_COOKIE = "jwt"


@dataclass(frozen=True)
class AuthResult:
    user: Optional[User] = None
    session: Optional[UserSession] = None
    token: Optional[str] = None
    error: Optional[ApiError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def extract_token() -> str:
    """Bearer token from the Authorization header, falling back to the jwt cookie."""
    parts = request.headers.get("Authorization", "").strip().split(" ", 1)
    if len(parts) == 2 and parts[0].lower() == "bearer" and parts[1].strip():
        return parts[1].strip()
    return (request.cookies.get(TOKEN_COOKIE) or "").strip()


def resolve_identity() -> AuthResult:
    token = extract_token()
    if not token:
        return AuthResult(error=Unauthenticated())

    try:
        claims = get_token_issuer().verify(token, expected_type=ACCESS)
    except TokenExpired:
        return AuthResult(error=InvalidToken("Token expired. Please log in again."))
    except TokenError:
        return AuthResult(error=InvalidToken())

    user = get_storage().get(User, claims["sub"])
    # same answer for unknown, deactivated and blocked users
    if user is None or not user.can_authenticate:
        return AuthResult(error=InvalidToken())

    registry = get_session_registry()
    user_session = registry.find_active_by_token(token, user_id=user.id)
    if user_session is None:
        return AuthResult(error=InvalidSession())

    registry.touch(user_session.id)
    return AuthResult(user=user, session=user_session, token=token)


def _bind(result: AuthResult) -> None:
    g.current_user = result.user
    g.current_session = result.session
    g.current_token = result.token


def jwt_required():
    """Reject the request unless it carries a valid access token with a live session."""
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            if getattr(g, "current_user", None) is None:
                result = resolve_identity()
                if not result.ok:
                    raise result.error
                _bind(result)
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def jwt_optional():
    """Attach the caller when authentication succeeds; otherwise continue anonymously."""
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            result = resolve_identity()
            _bind(result if result.ok else AuthResult())
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def roles_required(required_roles: Iterable[str]):
    """
    Allow access only if the caller's role is in the explicit allow-list.
    There is no role hierarchy: admin-only routes list {"admin", "superuser"} themselves.
    """
    allowed = frozenset(required_roles or ())

    def decorator(fn):
        @wraps(fn)
        @jwt_required()
        def wrapper(*args, **kwargs):
            if g.current_user.role not in allowed:
                raise Forbidden()
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def verified_required():
    def decorator(fn):
        @wraps(fn)
        @jwt_required()
        def wrapper(*args, **kwargs):
            if not g.current_user.is_verified:
                raise Forbidden("Please verify your email address to continue.")
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def owner_required(model, id_arg: str = "id", owner_field: str = "user_id",
                   bypass_roles: Iterable[str] = (ROLE_SUPERUSER,)):
    """
    Require the caller to own the resource named by the view argument id_arg.
    Missing resource -> 404; someone else's resource -> 403.
    The loaded resource is left in g.resource.
    """
    bypass = frozenset(bypass_roles or ())

    def decorator(fn):
        @wraps(fn)
        @jwt_required()
        def wrapper(*args, **kwargs):
            resource_id = kwargs.get(id_arg)
            if not resource_id:
                raise ValidationFailed("Resource ID is required")
            resource = get_storage().get(model, resource_id)
            if resource is None:
                raise NotFound()
            if getattr(resource, owner_field) != g.current_user.id and g.current_user.role not in bypass:
                raise Forbidden("You can only access your own resources")
            g.resource = resource
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def shop_owner_required():
    """Admins reach only their own shop (g.shop); superusers skip the check."""
    def decorator(fn):
        @wraps(fn)
        @jwt_required()
        def wrapper(*args, **kwargs):
            user = g.current_user
            g.shop = None
            if user.role == ROLE_SUPERUSER:
                return fn(*args, **kwargs)
            if user.role != ROLE_ADMIN:
                raise Forbidden("Admin access required")
            shop = get_storage().get_session().query(Shop).filter(Shop.admin_id == user.id).first()
            if shop is None:
                raise Forbidden("No shop assigned to this admin")
            g.shop = shop
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def client_ip() -> str:
    # remote_addr already reflects X-Forwarded-For when ProxyFix is installed
    return request.remote_addr or "unknown"


def check_rate_limit(name: str, message: str | None = None) -> None:
    limiter = get_rate_limiter(name)
    result = limiter.hit(f"{name}:{client_ip()}")
    g.setdefault("rate_limits", {})[name] = result
    if not result.allowed:
        logger.warning("rate limit %s exceeded by %s", name, client_ip())
        raise RateLimited(
            message,
            headers={"Retry-After": str(result.retry_after(limiter.now()))},
        )


def rate_limited(name: str, message: str | None = None):
    """Count the request against the named fixed-window limiter; 429 once over."""
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            check_rate_limit(name, message)
            return fn(*args, **kwargs)

        return wrapper

    return decorator
