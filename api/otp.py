"""
Email verification by one-time code:
- POST /otp/send    stores a hashed 6-digit code for the address (delivery is simulated)
- POST /otp/verify  marks the logged-in user verified when the code matches
"""
from __future__ import annotations

import logging

from flask import Blueprint, current_app, g, jsonify, request

from api.errors import ValidationFailed
from api.extensions import get_storage
from models.base_model import utcnow
from models.otp import OtpVerification
from models.schemas.auth import OtpSendSchema, OtpVerifySchema
from utils.decorators import jwt_required, rate_limited
from utils.security import fingerprint, generate_otp

logger = logging.getLogger(__name__)

bp = Blueprint("otp", __name__, url_prefix="/otp")

otp_send_schema = OtpSendSchema()
otp_verify_schema = OtpVerifySchema()


@bp.post("/send")
@rate_limited("auth", "Too many verification requests, please try again later.")
def send_otp():
    """
    Send a verification code to an email address
    ---
    tags:
      - OTP
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             email: { type: string }
    responses:
      200: { description: Code sent }
    """
    data = otp_send_schema.load(request.get_json(silent=True) or {})
    email = data["email"]
    code = generate_otp()

    storage = get_storage()
    with storage.transaction() as session:
        # older unused codes for the address stop working
        session.query(OtpVerification).filter(
            OtpVerification.email == email, OtpVerification.is_used.is_(False)
        ).update({OtpVerification.is_used: True}, synchronize_session=False)
        storage.new(
            OtpVerification(
                email=email,
                code_hash=fingerprint(code),
                expires_at=utcnow() + current_app.config["OTP_EXPIRES"],
                is_used=False,
            )
        )

    logger.info("Verification code issued for %s", email)
    payload = {"success": True, "message": f"OTP sent to {email}"}
    if current_app.config["EXPOSE_DEBUG_TOKENS"]:
        payload["otp"] = code
    return jsonify(payload), 200


@bp.post("/verify")
@rate_limited("auth", "Too many verification attempts, please try again later.")
@jwt_required()
def verify_otp():
    """
    Verify the current user's email address
    ---
    tags:
      - OTP
    security:
      - Bearer: []
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             otp: { type: string }
    responses:
      200: { description: Email verified }
      400: { description: Invalid or expired OTP }
    """
    data = otp_verify_schema.load(request.get_json(silent=True) or {})
    user = g.current_user
    storage = get_storage()
    session = storage.get_session()

    record = (
        session.query(OtpVerification)
        .filter(
            OtpVerification.email == user.email,
            OtpVerification.code_hash == fingerprint(data["otp"]),
            OtpVerification.is_used.is_(False),
            OtpVerification.expires_at > utcnow(),
        )
        .first()
    )
    if record is None:
        raise ValidationFailed("Invalid or expired OTP")

    with storage.transaction():
        claimed = (
            session.query(OtpVerification)
            .filter(OtpVerification.id == record.id, OtpVerification.is_used.is_(False))
            .update({OtpVerification.is_used: True}, synchronize_session="fetch")
        )
        if claimed != 1:
            raise ValidationFailed("Invalid or expired OTP")
        user.is_verified = True

    logger.info("Email verified for user %s", user.id)
    return jsonify({"success": True, "message": "Email verified successfully"}), 200
