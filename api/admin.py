"""Shop admin and superuser views: dashboard, shop visibility, admin log."""
from __future__ import annotations

import logging

from flask import Blueprint, g, jsonify, request

from api.errors import NotFound
from api.extensions import get_storage
from api.utils.pagination import paginate, parse_pagination
from models.admin_log import AdminLog
from models.shop import Shop
from models.user import ROLE_ADMIN, ROLE_SUPERUSER
from models.schemas.admin_request import (
    AdminLogOutSchema,
    ShopListQuerySchema,
    ShopOutSchema,
    ShopVisibilitySchema,
)
from utils.audit import record_admin_action
from utils.decorators import roles_required, shop_owner_required

logger = logging.getLogger(__name__)

bp = Blueprint("admin", __name__, url_prefix="/admin")

shop_out_schema = ShopOutSchema()
shop_list_out_schema = ShopOutSchema(many=True)
log_list_out_schema = AdminLogOutSchema(many=True)
shop_list_query_schema = ShopListQuerySchema()
shop_visibility_schema = ShopVisibilitySchema()


@bp.get("/dashboard")
@roles_required([ROLE_ADMIN, ROLE_SUPERUSER])
@shop_owner_required()
def dashboard():
    """
    Shop dashboard: an admin sees their own shop, a superuser sees every shop
    ---
    tags:
      - Admin
    security:
      - Bearer: []
    responses:
      200: { description: OK }
      403: { description: Not an admin, or no shop assigned }
    """
    if g.shop is not None:
        return jsonify({"success": True, "data": {"shop": shop_out_schema.dump(g.shop)}}), 200

    shops = get_storage().get_session().query(Shop).order_by(Shop.created_at.desc()).all()
    return jsonify({"success": True, "data": {"shops": shop_list_out_schema.dump(shops)}}), 200


@bp.get("/shops")
@roles_required([ROLE_SUPERUSER])
def list_shops():
    """
    Every shop on the marketplace (superuser)
    ---
    tags:
      - Admin
    security:
      - Bearer: []
    parameters:
      - in: query
        name: status
        type: string
        enum: [visible, hidden]
      - in: query
        name: page
        type: integer
      - in: query
        name: limit
        type: integer
    responses:
      200: { description: OK }
      400: { description: Bad filter }
    """
    filters = shop_list_query_schema.load(request.args.to_dict())
    page, limit = parse_pagination()

    query = get_storage().get_session().query(Shop)
    if filters.get("status") == "visible":
        query = query.filter(Shop.is_visible.is_(True))
    elif filters.get("status") == "hidden":
        query = query.filter(Shop.is_visible.is_(False))

    rows, meta = paginate(query.order_by(Shop.created_at.desc()), page, limit)
    return jsonify({"success": True, "data": {"shops": shop_list_out_schema.dump(rows), "pagination": meta}}), 200


@bp.put("/shops/<shop_id>/visibility")
@roles_required([ROLE_SUPERUSER])
def update_shop_visibility(shop_id: str):
    """
    Show or hide a shop (superuser)
    ---
    tags:
      - Admin
    security:
      - Bearer: []
    parameters:
      - in: path
        name: shop_id
        type: string
        required: true
      - in: body
        name: body
        schema:
          type: object
          required: [isVisible]
          properties:
            isVisible: { type: boolean }
    responses:
      200: { description: OK }
      400: { description: Validation error }
      404: { description: Shop not found }
    """
    data = shop_visibility_schema.load(request.get_json(silent=True) or {})
    storage = get_storage()
    shop = storage.get(Shop, shop_id)
    if shop is None:
        raise NotFound("Shop not found")

    with storage.transaction():
        shop.is_visible = data["is_visible"]
        record_admin_action(
            storage,
            g.current_user,
            "update_shop_visibility",
            details=f"Shop {shop.name}: visible={shop.is_visible}",
            target_id=shop.id,
            target_type="shop",
        )

    logger.info("Shop %s visibility set to %s", shop.id, shop.is_visible)
    return jsonify(
        {"success": True, "message": "Shop updated successfully", "data": {"shop": shop_out_schema.dump(shop)}}
    ), 200


@bp.get("/logs")
@roles_required([ROLE_SUPERUSER])
def admin_logs():
    """
    Admin activity log (superuser)
    ---
    tags:
      - Admin
    security:
      - Bearer: []
    parameters:
      - in: query
        name: action
        type: string
      - in: query
        name: page
        type: integer
      - in: query
        name: limit
        type: integer
    responses:
      200: { description: OK }
    """
    page, limit = parse_pagination()
    query = get_storage().get_session().query(AdminLog)
    action = request.args.get("action")
    if action:
        query = query.filter(AdminLog.action == action)

    rows, meta = paginate(query.order_by(AdminLog.created_at.desc()), page, limit)
    return jsonify({"success": True, "data": {"logs": log_list_out_schema.dump(rows), "pagination": meta}}), 200
