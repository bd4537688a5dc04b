"""
Marketplace elevation flow: a customer asks to run a shop, a superuser decides.

Approval is one transaction: the request leaves "pending", the shop is
created, the requester becomes an admin and the decision is written to the
admin log. Any failure leaves all four untouched.
"""
from __future__ import annotations

import logging

from flask import Blueprint, g, jsonify, request
from sqlalchemy import func

from api.errors import Conflict, NotFound, ValidationFailed
from api.extensions import get_storage
from api.utils.pagination import paginate, parse_pagination
from models.admin_request import (
    STATUS_APPROVED,
    STATUS_PENDING,
    STATUS_REJECTED,
    STATUSES,
    AdminRequest,
)
from models.base_model import utcnow
from models.shop import Shop
from models.user import ROLE_ADMIN, ROLE_CUSTOMER, ROLE_SUPERUSER, ROLES, User
from models.schemas.admin_request import (
    AdminDecisionSchema,
    AdminRequestCreateSchema,
    AdminRequestOutSchema,
    AdminRequestQuerySchema,
    ShopOutSchema,
)
from utils.audit import record_admin_action
from utils.decorators import roles_required

logger = logging.getLogger(__name__)

bp = Blueprint("admin_requests", __name__, url_prefix="/admin-requests")

create_schema = AdminRequestCreateSchema()
decision_schema = AdminDecisionSchema()
query_schema = AdminRequestQuerySchema()
request_out_schema = AdminRequestOutSchema()
request_list_out_schema = AdminRequestOutSchema(many=True)
shop_out_schema = ShopOutSchema()


def _claim_pending(session, request_id: str, values: dict) -> None:
    """Move a pending request to its decided state, at most once."""
    updated = (
        session.query(AdminRequest)
        .filter(AdminRequest.id == request_id, AdminRequest.status == STATUS_PENDING)
        .update(values, synchronize_session="fetch")
    )
    if updated != 1:
        raise ValidationFailed("Request already processed")


def _load_pending(request_id: str) -> AdminRequest:
    admin_request = get_storage().get(AdminRequest, request_id)
    if admin_request is None:
        raise NotFound("Request not found")
    if admin_request.status != STATUS_PENDING:
        raise ValidationFailed("Request already processed")
    return admin_request


@bp.post("")
@roles_required(ROLES)
def create_request():
    """
    Ask to become a shop admin
    ---
    tags:
      - Admin requests
    security:
      - Bearer: []
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           required: [shopName]
           properties:
             shopName: { type: string }
             adminName: { type: string }
             description: { type: string }
             phone: { type: string }
             address: { type: string }
    responses:
      201: { description: Request submitted }
      400: { description: Caller is already an admin }
      409: { description: A pending request already exists }
    """
    data = create_schema.load(request.get_json(silent=True) or {})
    user = g.current_user
    if user.role != ROLE_CUSTOMER:
        raise ValidationFailed("You are already an admin")

    storage = get_storage()
    pending = storage.count(AdminRequest, AdminRequest.user_id == user.id, AdminRequest.status == STATUS_PENDING)
    if pending:
        raise Conflict("You already have a pending admin request")

    admin_request = AdminRequest(user_id=user.id, status=STATUS_PENDING, **data)
    # the partial unique index rejects a concurrent second pending request (409)
    with storage.transaction():
        storage.new(admin_request)

    logger.info("Admin request %s submitted by %s", admin_request.id, user.id)
    return jsonify(
        {
            "success": True,
            "message": "Admin request submitted successfully",
            "data": {"request": request_out_schema.dump(admin_request)},
        }
    ), 201


@bp.get("/my-requests")
@roles_required(ROLES)
def my_requests():
    """
    The caller's own admin requests, newest first
    ---
    tags:
      - Admin requests
    security:
      - Bearer: []
    responses:
      200: { description: OK }
    """
    rows = (
        get_storage()
        .get_session()
        .query(AdminRequest)
        .filter(AdminRequest.user_id == g.current_user.id)
        .order_by(AdminRequest.created_at.desc())
        .all()
    )
    return jsonify({"success": True, "data": {"requests": request_list_out_schema.dump(rows)}}), 200


@bp.get("")
@roles_required([ROLE_SUPERUSER])
def list_requests():
    """
    All admin requests (superuser)
    ---
    tags:
      - Admin requests
    security:
      - Bearer: []
    parameters:
      - in: query
        name: status
        type: string
        enum: [pending, approved, rejected]
      - in: query
        name: page
        type: integer
      - in: query
        name: limit
        type: integer
    responses:
      200: { description: OK }
    """
    filters = query_schema.load(request.args.to_dict())
    page, limit = parse_pagination()

    query = get_storage().get_session().query(AdminRequest)
    if "status" in filters:
        query = query.filter(AdminRequest.status == filters["status"])

    rows, meta = paginate(query.order_by(AdminRequest.created_at.desc()), page, limit)
    return jsonify(
        {"success": True, "data": {"requests": request_list_out_schema.dump(rows), "pagination": meta}}
    ), 200


@bp.get("/stats")
@roles_required([ROLE_SUPERUSER])
def request_stats():
    """
    Request counts by status (superuser)
    ---
    tags:
      - Admin requests
    security:
      - Bearer: []
    responses:
      200: { description: OK }
    """
    counts = dict(
        get_storage()
        .get_session()
        .query(AdminRequest.status, func.count(AdminRequest.id))
        .group_by(AdminRequest.status)
        .all()
    )
    stats = {status: counts.get(status, 0) for status in STATUSES}
    stats["total"] = sum(stats.values())
    return jsonify({"success": True, "data": {"stats": stats}}), 200


@bp.put("/<request_id>/approve")
@roles_required([ROLE_SUPERUSER])
def approve_request(request_id: str):
    """
    Approve a pending request: creates the shop and promotes the requester
    ---
    tags:
      - Admin requests
    security:
      - Bearer: []
    parameters:
      - in: path
        name: request_id
        type: string
        required: true
      - in: body
        name: body
        schema:
          type: object
          properties:
            reason: { type: string }
    responses:
      200: { description: Approved }
      400: { description: Request already processed }
      404: { description: Request not found }
      409: { description: Requester already owns a shop }
    """
    data = decision_schema.load(request.get_json(silent=True) or {})
    admin_request = _load_pending(request_id)
    superuser = g.current_user

    storage = get_storage()
    session = storage.get_session()
    if session.query(Shop).filter(Shop.admin_id == admin_request.user_id).first():
        raise Conflict("User already owns a shop")

    shop = Shop(
        name=admin_request.shop_name,
        description=admin_request.description,
        address=admin_request.address,
        phone=admin_request.phone,
        admin_id=admin_request.user_id,
        is_visible=True,
    )
    with storage.transaction():
        _claim_pending(
            session,
            admin_request.id,
            {
                AdminRequest.status: STATUS_APPROVED,
                AdminRequest.reason: data.get("reason") or "Request approved",
                AdminRequest.handled_by_id: superuser.id,
                AdminRequest.handled_at: utcnow(),
            },
        )
        storage.new(shop)
        requester = storage.get(User, admin_request.user_id)
        requester.role = ROLE_ADMIN
        record_admin_action(
            storage,
            superuser,
            "approved_admin_request",
            details=f"Approved admin request for {requester.email}. Shop: {admin_request.shop_name}",
            target_id=admin_request.id,
            target_type="admin_request",
        )

    logger.info("Admin request %s approved by %s", admin_request.id, superuser.id)
    return jsonify(
        {
            "success": True,
            "message": "Admin request approved successfully",
            "data": {
                "request": request_out_schema.dump(admin_request),
                "shop": shop_out_schema.dump(shop),
            },
        }
    ), 200


@bp.put("/<request_id>/reject")
@roles_required([ROLE_SUPERUSER])
def reject_request(request_id: str):
    """
    Reject a pending request; a reason is mandatory
    ---
    tags:
      - Admin requests
    security:
      - Bearer: []
    parameters:
      - in: path
        name: request_id
        type: string
        required: true
      - in: body
        name: body
        schema:
          type: object
          required: [reason]
          properties:
            reason: { type: string }
    responses:
      200: { description: Rejected }
      400: { description: Reason missing or request already processed }
      404: { description: Request not found }
    """
    data = decision_schema.load(request.get_json(silent=True) or {})
    reason = (data.get("reason") or "").strip()
    if not reason:
        raise ValidationFailed("Reason is required for rejection")

    admin_request = _load_pending(request_id)
    superuser = g.current_user
    storage = get_storage()
    with storage.transaction() as session:
        _claim_pending(
            session,
            admin_request.id,
            {
                AdminRequest.status: STATUS_REJECTED,
                AdminRequest.reason: reason,
                AdminRequest.handled_by_id: superuser.id,
                AdminRequest.handled_at: utcnow(),
            },
        )
        record_admin_action(
            storage,
            superuser,
            "rejected_admin_request",
            details=f"Rejected admin request {admin_request.id}: {reason}",
            target_id=admin_request.id,
            target_type="admin_request",
        )

    return jsonify(
        {
            "success": True,
            "message": "Admin request rejected",
            "data": {"request": request_out_schema.dump(admin_request)},
        }
    ), 200
