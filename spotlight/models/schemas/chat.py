from marshmallow import EXCLUDE, Schema, fields, validate

from spotlight.models.chat import MessageType
from spotlight.models.schemas.common import StrictSchema, not_blank

MESSAGE_TYPES = [t.value for t in MessageType]


class CreateChatRoomSchema(StrictSchema):
    name = fields.String(allow_none=True, validate=validate.Length(max=128))
    user_ids = fields.List(fields.String(validate=not_blank), data_key="userIds", required=True)


class ChatMessageSchema(StrictSchema):
    content = fields.String(required=True, validate=[not_blank, validate.Length(max=5000)])
    type = fields.String(load_default=MessageType.TEXT.value, validate=validate.OneOf(MESSAGE_TYPES))


class GatewayMessageSchema(ChatMessageSchema):
    room_id = fields.String(data_key="roomId", required=True, validate=not_blank)


class PaginationSchema(Schema):
    """Query-string paging; unrelated parameters (cache busters) are ignored."""

    class Meta:
        unknown = EXCLUDE

    page = fields.Integer(load_default=0, validate=validate.Range(min=0))
    size = fields.Integer(load_default=20, validate=validate.Range(min=1, max=100))


class ChatMemberOutSchema(Schema):
    id = fields.String(attribute="account.id")
    name = fields.String(attribute="account.name")
    avatar = fields.String(attribute="account.avatar", allow_none=True)


class ChatMessageOutSchema(Schema):
    id = fields.String()
    room_id = fields.String(data_key="roomId")
    content = fields.String()
    sender = fields.String(attribute="sender_id")
    sender_name = fields.String(attribute="sender.name", data_key="senderName")
    type = fields.Method("get_type")
    created_at = fields.DateTime(data_key="createdAt")

    def get_type(self, obj):
        return getattr(obj.type, "value", obj.type)


class ChatRoomOutSchema(Schema):
    id = fields.String()
    name = fields.String(allow_none=True)
    is_group = fields.Boolean(data_key="isGroup")
    archived = fields.Boolean()
    created_at = fields.DateTime(data_key="createdAt")
    updated_at = fields.DateTime(data_key="updatedAt")
    members = fields.List(fields.Nested(ChatMemberOutSchema))
    last_message = fields.Method("get_last_message", data_key="lastMessage")

    def get_last_message(self, obj):
        messages = getattr(obj, "messages", None) or []
        if not messages:
            return None
        return ChatMessageOutSchema().dump(messages[-1])
