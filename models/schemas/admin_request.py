from marshmallow import Schema, fields, validate

from models.admin_request import STATUSES
from models.schemas.common import PHONE_RE, TIME_FMT, RequestSchema


class AdminRequestCreateSchema(RequestSchema):
    shop_name = fields.String(
        data_key="shopName",
        required=True,
        validate=validate.Length(min=2, max=120, error="Shop name must be between 2 and 120 characters"),
    )
    admin_name = fields.String(data_key="adminName", allow_none=True, validate=validate.Length(max=120))
    description = fields.String(allow_none=True, validate=validate.Length(max=2000))
    phone = fields.String(allow_none=True, validate=validate.Regexp(PHONE_RE, error="Please provide a valid phone number"))
    address = fields.String(allow_none=True, validate=validate.Length(max=255))


class AdminDecisionSchema(RequestSchema):
    reason = fields.String(allow_none=True, validate=validate.Length(max=1000))


class AdminRequestQuerySchema(RequestSchema):
    status = fields.String(validate=validate.OneOf(STATUSES))


class ShopListQuerySchema(RequestSchema):
    status = fields.String(validate=validate.OneOf(("visible", "hidden")))


class ShopVisibilitySchema(RequestSchema):
    is_visible = fields.Boolean(data_key="isVisible", required=True)


class _UserRefSchema(Schema):
    id = fields.String()
    email = fields.String()
    first_name = fields.String(data_key="firstName", allow_none=True)
    last_name = fields.String(data_key="lastName", allow_none=True)


class AdminRequestOutSchema(Schema):
    id = fields.String()
    user_id = fields.String(data_key="userId")
    shop_name = fields.String(data_key="shopName")
    admin_name = fields.String(data_key="adminName", allow_none=True)
    description = fields.String(allow_none=True)
    phone = fields.String(allow_none=True)
    address = fields.String(allow_none=True)
    status = fields.String()
    reason = fields.String(allow_none=True)
    handled_at = fields.DateTime(data_key="handledAt", format=TIME_FMT, allow_none=True)
    created_at = fields.DateTime(data_key="createdAt", format=TIME_FMT)
    user = fields.Nested(_UserRefSchema, allow_none=True)
    handled_by = fields.Nested(_UserRefSchema, data_key="handledBy", allow_none=True)


class ShopOutSchema(Schema):
    id = fields.String()
    name = fields.String()
    description = fields.String(allow_none=True)
    address = fields.String(allow_none=True)
    phone = fields.String(allow_none=True)
    is_visible = fields.Boolean(data_key="isVisible")
    admin_id = fields.String(data_key="adminId")
    created_at = fields.DateTime(data_key="createdAt", format=TIME_FMT)


class AdminLogOutSchema(Schema):
    id = fields.String()
    admin_id = fields.String(data_key="adminId", allow_none=True)
    action = fields.String()
    details = fields.String(allow_none=True)
    target_id = fields.String(data_key="targetId", allow_none=True)
    target_type = fields.String(data_key="targetType", allow_none=True)
    created_at = fields.DateTime(data_key="createdAt", format=TIME_FMT)
