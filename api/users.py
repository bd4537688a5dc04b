from __future__ import annotations

import logging

from flask import Blueprint, g, jsonify, request

from api.errors import Conflict, Forbidden, NotFound, ValidationFailed
from api.extensions import get_session_registry, get_storage
from api.utils.pagination import paginate, parse_pagination
from models.user import ROLE_SUPERUSER, User
from models.schemas.user import (
    PublicUserOutSchema,
    UserAdminOutSchema,
    UserBlockSchema,
    UserListQuerySchema,
    UserOutSchema,
    UserUpdateSchema,
)
from utils.audit import record_admin_action
from utils.decorators import jwt_optional, jwt_required, roles_required

logger = logging.getLogger(__name__)

bp = Blueprint("users", __name__)

user_update_schema = UserUpdateSchema()
user_block_schema = UserBlockSchema()
user_list_query_schema = UserListQuerySchema()
user_out_schema = UserOutSchema()
public_user_out_schema = PublicUserOutSchema()
user_admin_out_schema = UserAdminOutSchema()
user_admin_list_out_schema = UserAdminOutSchema(many=True)


@bp.patch("/users/profile")
@jwt_required()
def update_profile():
    """
    Update the current user's profile
    ---
    tags:
      - Users
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             firstName: { type: string }
             lastName: { type: string }
             username: { type: string }
             phoneNumber: { type: string }
    responses:
      200: { description: OK }
      409: { description: Username already taken }
    """
    data = user_update_schema.load(request.get_json(silent=True) or {}, partial=True)
    user = g.current_user
    storage = get_storage()

    username = data.get("username")
    if username and username != user.username:
        taken = storage.get_session().query(User).filter(User.username == username, User.id != user.id).first()
        if taken:
            raise Conflict("Username is already taken")

    with storage.transaction():
        for key, value in data.items():
            setattr(user, key, value)

    return jsonify(
        {"success": True, "message": "Profile updated successfully", "data": {"user": user_out_schema.dump(user)}}
    ), 200


@bp.delete("/users/account")
@jwt_required()
def deactivate_account():
    """
    Deactivate the current account; every session is revoked
    ---
    tags:
      - Users
    security:
      - Bearer: []
    responses:
      200: { description: Account deactivated }
    """
    user = g.current_user
    storage = get_storage()
    with storage.transaction():
        user.is_active = False
        get_session_registry().revoke_all_for_user(user.id)

    logger.info("User deactivated their account: %s", user.id)
    return jsonify({"success": True, "message": "Account deactivated successfully"}), 200


@bp.get("/users/<user_id>")
@jwt_optional()
def get_user(user_id: str):
    """
    Public profile of a user
    ---
    tags:
      - Users
    parameters:
      - in: path
        name: user_id
        type: string
        required: true
    responses:
      200: { description: OK }
      404: { description: Not found }
    """
    user = get_storage().get(User, user_id)
    if user is None or not user.is_active:
        raise NotFound("User not found")

    viewer = g.current_user
    is_self = viewer is not None and viewer.id == user.id
    body = user_out_schema.dump(user) if is_self else public_user_out_schema.dump(user)
    body["isSelf"] = is_self
    return jsonify({"success": True, "data": {"user": body}}), 200


@bp.get("/users")
@roles_required([ROLE_SUPERUSER])
def list_users():
    """
    List users (superuser)
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      - in: query
        name: role
        type: string
        enum: [customer, admin, superuser]
      - in: query
        name: status
        type: string
        enum: [active, blocked]
      - in: query
        name: page
        type: integer
      - in: query
        name: limit
        type: integer
    responses:
      200: { description: OK }
      403: { description: Forbidden }
    """
    filters = user_list_query_schema.load(request.args.to_dict())
    page, limit = parse_pagination()

    query = get_storage().get_session().query(User)
    if "role" in filters:
        query = query.filter(User.role == filters["role"])
    if filters.get("status") == "blocked":
        query = query.filter(User.is_blocked.is_(True))
    elif filters.get("status") == "active":
        query = query.filter(User.is_blocked.is_(False))

    rows, meta = paginate(query.order_by(User.created_at.desc()), page, limit)
    return jsonify(
        {
            "success": True,
            "data": {"users": user_admin_list_out_schema.dump(rows), "pagination": meta},
        }
    ), 200


@bp.put("/users/<user_id>/block")
@roles_required([ROLE_SUPERUSER])
def toggle_block(user_id: str):
    """
    Block or unblock a user (superuser). Blocking signs the user out everywhere.
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      - in: path
        name: user_id
        type: string
        required: true
      - in: body
        name: body
        schema:
          type: object
          required: [isBlocked]
          properties:
            isBlocked: { type: boolean }
    responses:
      200: { description: OK }
      400: { description: Cannot block yourself }
      403: { description: Cannot block a superuser }
      404: { description: User not found }
    """
    data = user_block_schema.load(request.get_json(silent=True) or {})
    storage = get_storage()
    admin = g.current_user

    user = storage.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    if user.id == admin.id:
        raise ValidationFailed("You cannot block yourself")
    if user.role == ROLE_SUPERUSER:
        raise Forbidden("Superusers cannot be blocked")

    blocked = data["is_blocked"]
    with storage.transaction():
        user.is_blocked = blocked
        user.blocked_by_id = admin.id if blocked else None
        if blocked:
            get_session_registry().revoke_all_for_user(user.id)
        record_admin_action(
            storage,
            admin,
            "block_user" if blocked else "unblock_user",
            details=f"{'Blocked' if blocked else 'Unblocked'} user {user.email}",
            target_id=user.id,
            target_type="user",
        )

    return jsonify(
        {
            "success": True,
            "message": f"User {'blocked' if blocked else 'unblocked'} successfully",
            "data": {"user": user_admin_out_schema.dump(user)},
        }
    ), 200
