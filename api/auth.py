"""
Authentication blueprint:
- POST   /auth/register
- POST   /auth/login
- POST   /auth/refresh-token
- POST   /auth/logout
- POST   /auth/forgot-password
- POST   /auth/reset-password
- GET    /auth/profile
- POST   /auth/change-password
- GET    /auth/sessions
- DELETE /auth/sessions/<session_id>

The implementation:
- Uses argon2 for password hashing (via utils.security)
- Issues short-lived access tokens and session-long refresh tokens (PyJWT, separate secrets)
- Records every token pair in a UserSession row so either can be revoked before it expires
- Groups multi-row changes (login rotation, password reset) in one transaction
"""
from __future__ import annotations

import logging
from datetime import timedelta

from flask import Blueprint, current_app, g, jsonify, request

from api.errors import Conflict, Forbidden, InvalidCredentials, Unauthenticated, ValidationFailed
from api.extensions import get_session_registry, get_storage, get_token_issuer
from models.base_model import utcnow
from models.password_reset import PasswordResetToken
from models.session import UserSession
from models.schemas.auth import (
    ChangePasswordSchema,
    ForgotPasswordSchema,
    RefreshTokenSchema,
    ResetPasswordSchema,
    SessionOutSchema,
    TokensOutSchema,
)
from models.schemas.user import UserCreateSchema, UserLoginSchema, UserOutSchema
from models.user import ROLE_CUSTOMER, User
from utils.decorators import client_ip, jwt_required, owner_required, rate_limited
from utils.security import (
    fingerprint,
    generate_reset_token,
    hash_password,
    verify_password,
)
from utils.tokens import REFRESH, TokenError

logger = logging.getLogger(__name__)

bp = Blueprint("auth", __name__, url_prefix="/auth")

user_create_schema = UserCreateSchema()
user_login_schema = UserLoginSchema()
user_out_schema = UserOutSchema()
refresh_schema = RefreshTokenSchema()
forgot_schema = ForgotPasswordSchema()
reset_schema = ResetPasswordSchema()
change_password_schema = ChangePasswordSchema()
session_list_out_schema = SessionOutSchema(many=True)
tokens_out_schema = TokensOutSchema()

AUTH_LIMIT_MESSAGE = "Too many authentication attempts, please try again later."


def _issue_token_pair(user: User, session_ttl: timedelta):
    """Sign a fresh access/refresh pair for user; the refresh token lives as long as its session."""
    issuer = get_token_issuer()
    claims = {"sub": user.id, "email": user.email, "role": user.role}
    access_ttl = current_app.config["ACCESS_TOKEN_EXPIRES"]
    access_token = issuer.issue_access_token(claims, access_ttl)
    refresh_token = issuer.issue_refresh_token({"sub": user.id}, session_ttl)
    return access_token, refresh_token, int(access_ttl.total_seconds())


def _tokens_payload(access_token: str, refresh_token: str, expires_in: int) -> dict:
    return tokens_out_schema.dump(
        {"access_token": access_token, "refresh_token": refresh_token, "expires_in": expires_in}
    )


def _user_agent() -> str | None:
    return request.headers.get("User-Agent")


@bp.post("/register")
@rate_limited("auth", AUTH_LIMIT_MESSAGE)
def register():
    """
    Register a new user and open their first session.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          required: [email, password]
          properties:
            email: { type: string }
            password: { type: string }
            firstName: { type: string }
            lastName: { type: string }
            username: { type: string }
            phoneNumber: { type: string }
    responses:
      201:
        description: Created (returns user and tokens)
      400:
        description: Validation error
      409:
        description: Email or username already taken
    """
    data = user_create_schema.load(request.get_json(silent=True) or {})

    storage = get_storage()
    session = storage.get_session()
    if session.query(User).filter(User.email == data["email"]).first():
        raise Conflict("User with this email already exists")
    if data.get("username") and session.query(User).filter(User.username == data["username"]).first():
        raise Conflict("Username is already taken")

    user = User(
        email=data["email"],
        password_hash=hash_password(data["password"]),
        first_name=data.get("first_name"),
        last_name=data.get("last_name"),
        username=data.get("username"),
        phone_number=data.get("phone_number"),
        role=ROLE_CUSTOMER,
        is_active=True,
        is_blocked=False,
        is_verified=False,
    )
    session_ttl = current_app.config["SESSION_EXPIRES"]
    access_token, refresh_token, expires_in = _issue_token_pair(user, session_ttl)

    with storage.transaction():
        storage.new(user)
        session.flush()
        get_session_registry().create_session(
            user.id,
            access_token,
            refresh_token,
            device_info=_user_agent(),
            ip_address=client_ip(),
            ttl=session_ttl,
        )

    logger.info("New user registered: %s", user.id)
    return jsonify(
        {
            "success": True,
            "message": "User registered successfully",
            "data": {
                "user": user_out_schema.dump(user),
                "tokens": _tokens_payload(access_token, refresh_token, expires_in),
            },
        }
    ), 201


@bp.post("/login")
@rate_limited("auth", AUTH_LIMIT_MESSAGE)
def login():
    """
    Login: return the user, an access token and a refresh token
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             email: { type: string }
             password: { type: string }
             rememberMe: { type: boolean }
    responses:
      200:
        description: OK (returns tokens)
      401:
        description: Invalid credentials
      403:
        description: Account deactivated or blocked
    """
    data = user_login_schema.load(request.get_json(silent=True) or {})

    storage = get_storage()
    session = storage.get_session()
    user = session.query(User).filter(User.email == data["email"]).first()
    if not verify_password(data["password"], user.password_hash if user else None):
        raise InvalidCredentials()
    if not user.is_active:
        raise Forbidden("Account is deactivated. Please contact support.")
    if user.is_blocked:
        raise Forbidden("Account is blocked. Please contact support.")

    remember_me = data["remember_me"]
    session_ttl = current_app.config["REMEMBER_ME_SESSION_EXPIRES" if remember_me else "SESSION_EXPIRES"]
    access_token, refresh_token, expires_in = _issue_token_pair(user, session_ttl)
    registry = get_session_registry()

    with storage.transaction():
        if current_app.config["SINGLE_SESSION_ON_LOGIN"]:
            registry.revoke_all_for_user(user.id)
        registry.create_session(
            user.id,
            access_token,
            refresh_token,
            device_info=_user_agent(),
            ip_address=client_ip(),
            ttl=session_ttl,
            remember_me=remember_me,
        )
        user.last_login_at = utcnow()

    logger.info("User logged in: %s", user.id)
    return jsonify(
        {
            "success": True,
            "message": "Login successful",
            "data": {
                "user": user_out_schema.dump(user),
                "tokens": _tokens_payload(access_token, refresh_token, expires_in),
            },
        }
    ), 200


@bp.post("/refresh-token")
@rate_limited("auth", AUTH_LIMIT_MESSAGE)
def refresh_token():
    """
    Exchange a refresh token for a new token pair (the session is rotated)
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             refreshToken: { type: string }
    responses:
      200:
        description: OK (returns new tokens)
      401:
        description: Invalid or expired refresh token
    """
    data = refresh_schema.load(request.get_json(silent=True) or {})
    token = data["refresh_token"]
    invalid = Unauthenticated("Invalid or expired refresh token")

    try:
        claims = get_token_issuer().verify(token, expected_type=REFRESH)
    except TokenError:
        raise invalid

    storage = get_storage()
    registry = get_session_registry()
    user_session = registry.find_active_by_refresh_token(token)
    if user_session is None or user_session.user_id != claims["sub"]:
        raise invalid
    user = storage.get(User, user_session.user_id)
    if user is None or not user.can_authenticate:
        raise invalid

    # the new refresh token expires with the session it belongs to
    remaining = max(user_session.expires_at - utcnow(), timedelta(seconds=1))
    access_token, new_refresh_token, expires_in = _issue_token_pair(user, remaining)
    with storage.transaction():
        # a concurrent refresh with the same token has already swapped the fingerprint
        if not registry.rotate(user_session, token, access_token, new_refresh_token):
            raise invalid

    return jsonify(
        {
            "success": True,
            "message": "Tokens refreshed successfully",
            "data": {
                "user": user_out_schema.dump(user),
                "tokens": _tokens_payload(access_token, new_refresh_token, expires_in),
            },
        }
    ), 200


@bp.post("/logout")
@jwt_required()
def logout():
    """
    Logout: revokes the session behind the current access token
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: Logged out
      401:
        description: Unauthorized
    """
    storage = get_storage()
    with storage.transaction():
        get_session_registry().revoke(g.current_session.id)

    logger.info("User logged out: %s", g.current_user.id)
    return jsonify({"success": True, "message": "Logged out successfully"}), 200


@bp.post("/forgot-password")
@rate_limited("auth", AUTH_LIMIT_MESSAGE)
def forgot_password():
    """
    Request a password reset token. Always answers 200.
    ---
    tags:
      - Auth
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             email: { type: string }
    responses:
      200:
        description: Accepted
    """
    data = forgot_schema.load(request.get_json(silent=True) or {})
    payload = {
        "success": True,
        "message": "If an account with that email exists, you will receive a password reset link.",
    }

    storage = get_storage()
    user = storage.get_session().query(User).filter(User.email == data["email"]).first()
    if user is None or not user.is_active:
        return jsonify(payload), 200

    raw_token = generate_reset_token()
    with storage.transaction():
        storage.new(
            PasswordResetToken(
                user_id=user.id,
                token_hash=fingerprint(raw_token),
                expires_at=utcnow() + current_app.config["RESET_TOKEN_EXPIRES"],
            )
        )

    # delivery (email) is handled outside this service
    logger.info("Password reset requested for user %s", user.id)
    if current_app.config["EXPOSE_DEBUG_TOKENS"]:
        payload["resetToken"] = raw_token
    return jsonify(payload), 200


@bp.post("/reset-password")
@rate_limited("auth", AUTH_LIMIT_MESSAGE)
def reset_password():
    """
    Set a new password with a reset token; every session of the user is revoked.
    ---
    tags:
      - Auth
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             token: { type: string }
             password: { type: string }
    responses:
      200:
        description: Password reset
      400:
        description: Invalid or expired reset token
    """
    data = reset_schema.load(request.get_json(silent=True) or {})
    invalid = ValidationFailed("Invalid or expired reset token")

    storage = get_storage()
    session = storage.get_session()
    now = utcnow()
    reset = (
        session.query(PasswordResetToken)
        .filter(
            PasswordResetToken.token_hash == fingerprint(data["token"]),
            PasswordResetToken.is_used.is_(False),
            PasswordResetToken.expires_at > now,
        )
        .first()
    )
    if reset is None:
        raise invalid

    with storage.transaction():
        # conditional update: a concurrent reset with the same token finds nothing to claim
        claimed = (
            session.query(PasswordResetToken)
            .filter(PasswordResetToken.id == reset.id, PasswordResetToken.is_used.is_(False))
            .update({PasswordResetToken.is_used: True, PasswordResetToken.used_at: now},
                    synchronize_session="fetch")
        )
        if claimed != 1:
            raise invalid
        user = storage.get(User, reset.user_id)
        user.password_hash = hash_password(data["password"])
        get_session_registry().revoke_all_for_user(user.id)

    logger.info("Password reset successful for user %s", reset.user_id)
    return jsonify(
        {"success": True, "message": "Password reset successful. Please log in with your new password."}
    ), 200


@bp.get("/profile")
@jwt_required()
def profile():
    """
    Current user profile
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
    """
    return jsonify({"success": True, "data": {"user": user_out_schema.dump(g.current_user)}}), 200


@bp.post("/change-password")
@jwt_required()
def change_password():
    """
    Change password (signs out every device, including this one)
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             currentPassword: { type: string }
             password: { type: string }
    responses:
      200:
        description: Password changed
      400:
        description: Current password is incorrect
    """
    data = change_password_schema.load(request.get_json(silent=True) or {})
    user = g.current_user
    if not verify_password(data["current_password"], user.password_hash):
        raise ValidationFailed("Current password is incorrect")

    storage = get_storage()
    with storage.transaction():
        user.password_hash = hash_password(data["password"])
        get_session_registry().revoke_all_for_user(user.id)

    logger.info("Password changed for user %s", user.id)
    return jsonify({"success": True, "message": "Password changed successfully. Please log in again."}), 200


@bp.get("/sessions")
@jwt_required()
def list_sessions():
    """
    Active sessions (devices) of the current user
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: OK
    """
    sessions = get_session_registry().list_active_for_user(g.current_user.id)
    items = session_list_out_schema.dump(sessions)
    for item in items:
        item["current"] = item["id"] == g.current_session.id
    return jsonify({"success": True, "data": {"sessions": items}}), 200


@bp.delete("/sessions/<session_id>")
@owner_required(UserSession, id_arg="session_id", bypass_roles=())
def revoke_session(session_id: str):
    """
    Sign out one device
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    parameters:
      - in: path
        name: session_id
        type: string
        required: true
    responses:
      200:
        description: Session revoked
      403:
        description: Not your session
      404:
        description: Unknown session
    """
    storage = get_storage()
    with storage.transaction():
        get_session_registry().revoke(session_id)
    return jsonify({"success": True, "message": "Session revoked"}), 200
