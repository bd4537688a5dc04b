from marshmallow import Schema, fields, pre_load, validate, validates

from models.schemas.common import (
    NAME_RE,
    PHONE_RE,
    TIME_FMT,
    USERNAME_RE,
    RequestSchema,
    norm_email,
    validate_password_strength,
)
from models.user import ROLES

_first_name = dict(
    data_key="firstName",
    allow_none=True,
    validate=[
        validate.Length(min=2, max=50, error="First name must be between 2 and 50 characters"),
        validate.Regexp(NAME_RE, error="First name should only contain letters and spaces"),
    ],
)
_last_name = dict(
    data_key="lastName",
    allow_none=True,
    validate=[
        validate.Length(min=2, max=50, error="Last name must be between 2 and 50 characters"),
        validate.Regexp(NAME_RE, error="Last name should only contain letters and spaces"),
    ],
)
_username = dict(
    allow_none=True,
    validate=[
        validate.Length(min=3, max=30, error="Username must be between 3 and 30 characters"),
        validate.Regexp(USERNAME_RE, error="Username can only contain letters, numbers, and underscores"),
    ],
)
_phone = dict(
    data_key="phoneNumber",
    allow_none=True,
    validate=validate.Regexp(PHONE_RE, error="Please provide a valid phone number"),
)


class UserCreateSchema(RequestSchema):
    email = fields.Email(required=True)
    password = fields.String(required=True, load_only=True)
    first_name = fields.String(**_first_name)
    last_name = fields.String(**_last_name)
    username = fields.String(**_username)
    phone_number = fields.String(**_phone)

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and "email" in data:
            data = dict(data)
            data["email"] = norm_email(data["email"])
        return data

    @validates("password")
    def validate_password(self, value, **kwargs):
        validate_password_strength(value)


class UserLoginSchema(RequestSchema):
    email = fields.Email(required=True)
    password = fields.String(required=True, validate=validate.Length(min=1, error="Password is required"))
    remember_me = fields.Boolean(data_key="rememberMe", load_default=False)

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and "email" in data:
            data = dict(data)
            data["email"] = norm_email(data["email"])
        return data


class UserUpdateSchema(RequestSchema):
    first_name = fields.String(**_first_name)
    last_name = fields.String(**_last_name)
    username = fields.String(**_username)
    phone_number = fields.String(**_phone)


class UserBlockSchema(RequestSchema):
    is_blocked = fields.Boolean(data_key="isBlocked", required=True)


class UserOutSchema(Schema):
    id = fields.String()
    email = fields.String()
    username = fields.String(allow_none=True)
    first_name = fields.String(data_key="firstName", allow_none=True)
    last_name = fields.String(data_key="lastName", allow_none=True)
    phone_number = fields.String(data_key="phoneNumber", allow_none=True)
    role = fields.String()
    is_active = fields.Boolean(data_key="isActive")
    is_verified = fields.Boolean(data_key="isVerified")
    last_login_at = fields.DateTime(data_key="lastLoginAt", format=TIME_FMT, allow_none=True)
    created_at = fields.DateTime(data_key="createdAt", format=TIME_FMT)


class UserAdminOutSchema(UserOutSchema):
    """What a superuser sees in the user list."""

    is_blocked = fields.Boolean(data_key="isBlocked")
    shop = fields.Method("get_shop")

    def get_shop(self, obj):
        shop = getattr(obj, "shop", None)
        if shop is None:
            return None
        return {"id": shop.id, "name": shop.name}


class PublicUserOutSchema(Schema):
    id = fields.String()
    username = fields.String(allow_none=True)
    first_name = fields.String(data_key="firstName", allow_none=True)
    last_name = fields.String(data_key="lastName", allow_none=True)
    created_at = fields.DateTime(data_key="createdAt", format=TIME_FMT)


class UserListQuerySchema(RequestSchema):
    role = fields.String(validate=validate.OneOf(ROLES))
    status = fields.String(validate=validate.OneOf(("active", "blocked")))
