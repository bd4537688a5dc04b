from marshmallow import Schema, fields, validate

from models.schemas.common import TIME_FMT, RequestSchema


class PostCreateSchema(RequestSchema):
    title = fields.String(
        allow_none=True,
        validate=validate.Length(min=1, max=200, error="Title must be between 1 and 200 characters"),
    )
    content = fields.String(
        required=True,
        validate=validate.Length(min=1, max=5000, error="Content must be between 1 and 5000 characters"),
    )


class PostUpdateSchema(PostCreateSchema):
    content = fields.String(
        validate=validate.Length(min=1, max=5000, error="Content must be between 1 and 5000 characters"),
    )


class PostOutSchema(Schema):
    id = fields.String()
    user_id = fields.String(data_key="userId")
    title = fields.String(allow_none=True)
    content = fields.String()
    created_at = fields.DateTime(data_key="createdAt", format=TIME_FMT)
    updated_at = fields.DateTime(data_key="updatedAt", format=TIME_FMT)
