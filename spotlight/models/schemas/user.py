from marshmallow import EXCLUDE, Schema, fields, validate

from spotlight.models.schemas.common import StrictSchema, not_blank


class UpdateProfileSchema(StrictSchema):
    name = fields.String(validate=[not_blank, validate.Length(max=100)])
    area_activity = fields.String(data_key="areaActivity", allow_none=True, validate=validate.Length(max=100))
    avatar = fields.String(allow_none=True, validate=validate.Length(max=512))
    cover_image = fields.String(data_key="coverImage", allow_none=True, validate=validate.Length(max=512))


class PreferencesSchema(StrictSchema):
    email_notifications = fields.Boolean(data_key="emailNotifications")
    push_notifications = fields.Boolean(data_key="pushNotifications")
    profile_visibility = fields.String(
        data_key="profileVisibility", validate=validate.OneOf(["PUBLIC", "PRIVATE"])
    )
    language = fields.String(validate=validate.Length(min=2, max=8))


class PreferencesOutSchema(Schema):
    email_notifications = fields.Boolean(data_key="emailNotifications")
    push_notifications = fields.Boolean(data_key="pushNotifications")
    profile_visibility = fields.String(data_key="profileVisibility")
    language = fields.String()
    updated_at = fields.DateTime(data_key="updatedAt")


class AccountOutSchema(Schema):
    id = fields.String()
    name = fields.String()
    email = fields.String()
    area_activity = fields.String(data_key="areaActivity", allow_none=True)
    avatar = fields.String(allow_none=True)
    cover_image = fields.String(data_key="coverImage", allow_none=True)
    role = fields.Method("get_role")
    enabled = fields.Boolean()
    is_pro = fields.Boolean(data_key="isPro")
    is_verified = fields.Boolean(data_key="isVerified")
    chat_availability = fields.Method("get_availability", data_key="chatAvailability")
    created_at = fields.DateTime(data_key="createdAt")
    preferences = fields.Nested(PreferencesOutSchema, allow_none=True)

    def get_role(self, obj):
        role = getattr(obj, "role", None)
        return getattr(role, "value", role)

    def get_availability(self, obj):
        availability = getattr(obj, "chat_availability", None)
        return getattr(availability, "value", availability)


class SearchUsersSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    search = fields.String(load_default=None, validate=validate.Length(max=100))
    page = fields.Integer(load_default=0, validate=validate.Range(min=0))
    size = fields.Integer(load_default=20, validate=validate.Range(min=1, max=100))


class FollowUserOutSchema(Schema):
    id = fields.String()
    name = fields.String()
    avatar = fields.String(allow_none=True)


class PublicUserOutSchema(Schema):
    """Dumps a PublicProfile; no email, role or preferences."""
    id = fields.String(attribute="account.id")
    name = fields.String(attribute="account.name")
    area_activity = fields.String(attribute="account.area_activity", data_key="areaActivity", allow_none=True)
    avatar = fields.String(attribute="account.avatar", allow_none=True)
    cover_image = fields.String(attribute="account.cover_image", data_key="coverImage", allow_none=True)
    is_pro = fields.Boolean(attribute="account.is_pro", data_key="isPro")
    is_verified = fields.Boolean(attribute="account.is_verified", data_key="isVerified")
    chat_availability = fields.Method("get_availability", data_key="chatAvailability")
    metrics = fields.Method("get_metrics")
    is_following = fields.Boolean(data_key="isFollowing")
    is_followed = fields.Boolean(data_key="isFollowed")

    def get_availability(self, profile):
        availability = profile.account.chat_availability
        return getattr(availability, "value", availability)

    def get_metrics(self, profile):
        return {"followers": profile.followers, "following": profile.following}
