from marshmallow import Schema, fields, pre_load, post_dump, validate

from spotlight.models.schemas.common import (
    StrictSchema,
    norm_email,
    not_blank,
    validate_password_strength,
    PASSWORD_MIN_LENGTH,
    PASSWORD_MAX_LENGTH,
)


class _EmailNormalizingSchema(StrictSchema):
    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and "email" in data:
            data = dict(data)
            data["email"] = norm_email(data["email"])
        return data


class RegisterSchema(_EmailNormalizingSchema):
    name = fields.String(required=True, validate=[not_blank, validate.Length(max=100)])
    email = fields.Email(required=True, validate=validate.Length(max=255))
    password = fields.String(required=True, load_only=True, validate=validate_password_strength)
    area_activity = fields.String(
        data_key="areaActivity", allow_none=True, load_default=None, validate=validate.Length(max=100)
    )


class LoginSchema(_EmailNormalizingSchema):
    email = fields.Email(required=True, validate=validate.Length(max=255))
    password = fields.String(required=True, load_only=True, validate=not_blank)


class RefreshTokenSchema(StrictSchema):
    refresh_token = fields.String(data_key="refreshToken", required=True, validate=not_blank)


class ForgotPasswordSchema(_EmailNormalizingSchema):
    email = fields.Email(required=True, validate=validate.Length(max=255))
    url_callback = fields.String(data_key="urlCallback", required=True, validate=not_blank)


class ResetPasswordSchema(StrictSchema):
    token = fields.String(required=True, validate=not_blank)
    new_password = fields.String(data_key="newPassword", required=True, validate=validate_password_strength)


class UpdatePasswordSchema(StrictSchema):
    current_password = fields.String(data_key="currentPassword", required=True, validate=not_blank)
    new_password = fields.String(data_key="newPassword", required=True, validate=validate_password_strength)
    confirm_new_password = fields.String(
        data_key="confirmNewPassword",
        required=True,
        validate=validate.Length(min=PASSWORD_MIN_LENGTH, max=PASSWORD_MAX_LENGTH),
    )


# Composite authentication response (camelCase on the wire)

class TokenInfoSchema(Schema):
    access_token = fields.String(data_key="accessToken")
    refresh_token = fields.String(data_key="refreshToken")
    token_type = fields.String(data_key="tokenType")
    expires_in = fields.Integer(data_key="expiresIn")
    expires_at = fields.DateTime(data_key="expiresAt")


class UserInfoSchema(Schema):
    id = fields.String()
    name = fields.String()
    email = fields.String()
    area_activity = fields.String(data_key="areaActivity", allow_none=True)
    avatar = fields.String(allow_none=True)
    cover_image = fields.String(data_key="coverImage", allow_none=True)
    role = fields.String()


class AccountInfoSchema(Schema):
    status = fields.String()
    enabled = fields.Boolean()
    first_login = fields.Boolean(data_key="firstLogin")
    plan = fields.Raw(allow_none=True)
    is_pro = fields.Boolean(data_key="isPro")
    is_verified = fields.Boolean(data_key="isVerified")
    created_at = fields.DateTime(data_key="createdAt")


class DeviceInfoSchema(Schema):
    user_agent = fields.String(data_key="userAgent")
    platform = fields.String()


class SessionInfoSchema(Schema):
    authenticated_at = fields.DateTime(data_key="authenticatedAt")
    ip_address = fields.String(data_key="ipAddress", allow_none=True)
    requires_password_change = fields.Boolean(data_key="requiresPasswordChange")
    device_info = fields.Nested(DeviceInfoSchema, data_key="deviceInfo", allow_none=True)

    @post_dump
    def drop_missing_device(self, data, **kwargs):
        if data.get("deviceInfo") is None:
            data.pop("deviceInfo", None)
        return data


class AuthenticationResponseSchema(Schema):
    tokens = fields.Nested(TokenInfoSchema)
    user = fields.Nested(UserInfoSchema)
    account = fields.Nested(AccountInfoSchema)
    session = fields.Nested(SessionInfoSchema)
