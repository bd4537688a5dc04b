import re

from marshmallow import EXCLUDE, Schema, ValidationError

TIME_FMT = "%Y-%m-%dT%H:%M:%S.%fZ"

PASSWORD_RE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)")
NAME_RE = re.compile(r"^[a-zA-Z\s]+$")
USERNAME_RE = re.compile(r"^[a-zA-Z0-9_]+$")
PHONE_RE = re.compile(r"^\+?[1-9]\d{1,14}$")


class RequestSchema(Schema):
    """Base for request payloads: unknown keys are dropped, not rejected."""

    class Meta:
        unknown = EXCLUDE


def norm_email(v):
    return v.strip().lower() if isinstance(v, str) else v


def validate_password_strength(value: str) -> None:
    if len(value) < 8:
        raise ValidationError("Password must be at least 8 characters long.")
    if not PASSWORD_RE.match(value):
        raise ValidationError(
            "Password must contain at least one uppercase letter, one lowercase letter, and one number."
        )
