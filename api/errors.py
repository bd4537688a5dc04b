"""
Error taxonomy and the single terminal handler that renders it.

Handlers raise one of the ApiError subclasses below; register_error_handlers()
turns those (plus marshmallow, SQLAlchemy and werkzeug errors) into the uniform
envelope. Nothing else in the app builds error responses.
"""
import logging
import traceback
from datetime import datetime, timezone

from flask import current_app, g, has_request_context, jsonify, request
from marshmallow import ValidationError
from sqlalchemy.exc import IntegrityError, NoResultFound
from werkzeug.exceptions import HTTPException

logger = logging.getLogger(__name__)


class ApiError(Exception):
    status_code = 500
    error = "INTERNAL_ERROR"
    message = "An unexpected error occurred"

    def __init__(self, message: str | None = None, details: dict | None = None, headers: dict | None = None):
        super().__init__(message or self.message)
        self.message = message or self.message
        self.details = details
        self.headers = headers or {}


class ValidationFailed(ApiError):
    status_code = 400
    error = "VALIDATION_ERROR"
    message = "Invalid input"


class Unauthenticated(ApiError):
    status_code = 401
    error = "UNAUTHENTICATED"
    message = "You are not logged in! Please log in to get access."


class InvalidCredentials(Unauthenticated):
    error = "INVALID_CREDENTIALS"
    message = "Invalid email or password"


class InvalidToken(Unauthenticated):
    error = "INVALID_TOKEN"
    message = "Invalid token. Please log in again."


class InvalidSession(Unauthenticated):
    error = "INVALID_SESSION"
    message = "Invalid session. Please log in again."


class Forbidden(ApiError):
    status_code = 403
    error = "FORBIDDEN"
    message = "Access denied. Insufficient permissions."


class NotFound(ApiError):
    status_code = 404
    error = "NOT_FOUND"
    message = "Resource not found"


class Conflict(ApiError):
    status_code = 409
    error = "CONFLICT"
    message = "Conflict"


class RateLimited(ApiError):
    status_code = 429
    error = "RATE_LIMITED"
    message = "Too many requests, please try again later."


class Internal(ApiError):
    pass


_HTTP_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHENTICATED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    413: "PAYLOAD_TOO_LARGE",
    415: "UNSUPPORTED_MEDIA_TYPE",
    429: "RATE_LIMITED",
}


def error_response(error: str, message: str, status: int, details: dict | None = None,
                   exc: BaseException | None = None, headers: dict | None = None):
    payload = {
        "success": False,
        "error": error,
        "message": message,
        "status": status,
        "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "requestId": getattr(g, "request_id", None) if has_request_context() else None,
    }
    if details:
        payload["details"] = details
    if exc is not None and current_app and current_app.debug:
        payload["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    response = jsonify(payload)
    response.status_code = status
    for key, value in (headers or {}).items():
        response.headers[key] = value
    return response


def _log_context() -> dict:
    user = getattr(g, "current_user", None)
    return {
        "method": request.method,
        "path": request.path,
        "ip": request.remote_addr,
        "user": getattr(user, "id", None) or "anonymous",
    }


def register_error_handlers(app):
    @app.errorhandler(ApiError)
    def handle_api_error(err: ApiError):
        level = logging.ERROR if err.status_code >= 500 else logging.INFO
        logger.log(level, "%s %s: %s", err.status_code, err.error, err.message, extra=_log_context())
        return error_response(err.error, err.message, err.status_code, details=err.details,
                              exc=err, headers=err.headers)

    # Marshmallow validation errors map to 400
    @app.errorhandler(ValidationError)
    def handle_validation_error(err: ValidationError):
        messages = err.messages if isinstance(err.messages, dict) else {"_schema": err.messages}
        flat = []
        for field_errors in messages.values():
            if isinstance(field_errors, (list, tuple)):
                flat.extend(str(m) for m in field_errors)
            else:
                flat.append(str(field_errors))
        message = "Validation failed: " + ", ".join(flat) if flat else "Invalid input"
        return error_response("VALIDATION_ERROR", message, 400, details=messages, exc=err)

    # Integrity errors (unique constraints, FK violations, check constraints)
    @app.errorhandler(IntegrityError)
    def handle_integrity_error(err: IntegrityError):
        from api.extensions import get_storage

        get_storage().rollback()
        lower_msg = str(getattr(err, "orig", err)).lower()
        logger.warning("integrity error: %s", lower_msg, extra=_log_context())
        if "unique" in lower_msg or "duplicate" in lower_msg:
            return error_response("CONFLICT", "Duplicate value violates a unique constraint.", 409, exc=err)
        if "foreign key" in lower_msg:
            return error_response("BAD_REQUEST", "Foreign key constraint violation.", 400, exc=err)
        return error_response("BAD_REQUEST", "Invalid data provided.", 400, exc=err)

    @app.errorhandler(NoResultFound)
    def handle_no_result(err: NoResultFound):
        return error_response("NOT_FOUND", "Record not found", 404, exc=err)

    # Werkzeug HTTPExceptions map to their status codes
    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        code = err.code or 500
        message = err.description or err.name
        if code == 404:
            message = f"Route {request.path} not found"
        return error_response(_HTTP_CODES.get(code, "HTTP_ERROR"), message, code)

    # 500 Internal Error (catch-all)
    @app.errorhandler(Exception)
    def internal_error(err: Exception):
        from api.extensions import get_storage

        get_storage().rollback()
        logger.exception("Unhandled exception", extra=_log_context())
        details = None
        if current_app and current_app.debug:
            details = {"type": err.__class__.__name__, "message": str(err)}
        return error_response("INTERNAL_ERROR", "An unexpected error occurred", 500, details=details, exc=err)
