from marshmallow import Schema, fields, pre_load, validate, validates

from models.schemas.common import TIME_FMT, RequestSchema, norm_email, validate_password_strength


class RefreshTokenSchema(RequestSchema):
    refresh_token = fields.String(
        data_key="refreshToken",
        required=True,
        validate=validate.Length(min=1),
        error_messages={"required": "Refresh token is required"},
    )


class ForgotPasswordSchema(RequestSchema):
    email = fields.Email(required=True, error_messages={"invalid": "Please provide a valid email address"})

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and "email" in data:
            data = dict(data)
            data["email"] = norm_email(data["email"])
        return data


class ResetPasswordSchema(RequestSchema):
    token = fields.String(required=True, validate=validate.Length(min=1))
    password = fields.String(required=True, load_only=True)

    @validates("password")
    def validate_password(self, value, **kwargs):
        validate_password_strength(value)


class ChangePasswordSchema(RequestSchema):
    current_password = fields.String(
        data_key="currentPassword",
        required=True,
        validate=validate.Length(min=1, error="Current password is required"),
    )
    password = fields.String(required=True, load_only=True)

    @validates("password")
    def validate_password(self, value, **kwargs):
        validate_password_strength(value)


class TokensOutSchema(Schema):
    access_token = fields.String(data_key="accessToken")
    refresh_token = fields.String(data_key="refreshToken")
    expires_in = fields.Integer(data_key="expiresIn")
    token_type = fields.String(data_key="tokenType", dump_default="bearer")


class SessionOutSchema(Schema):
    id = fields.String()
    device_info = fields.String(data_key="deviceInfo", allow_none=True)
    ip_address = fields.String(data_key="ipAddress", allow_none=True)
    remember_me = fields.Boolean(data_key="rememberMe")
    issued_at = fields.DateTime(data_key="issuedAt", format=TIME_FMT)
    expires_at = fields.DateTime(data_key="expiresAt", format=TIME_FMT)
    last_used_at = fields.DateTime(data_key="lastUsedAt", format=TIME_FMT, allow_none=True)


class OtpSendSchema(ForgotPasswordSchema):
    pass


class OtpVerifySchema(RequestSchema):
    otp = fields.String(required=True, validate=validate.Regexp(r"^\d{6}$", error="OTP must be 6 digits"))
