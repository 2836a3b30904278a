from __future__ import annotations

from flask import Blueprint, request, jsonify, g

from spotlight.models.schemas.chat import (
    CreateChatRoomSchema,
    ChatMessageSchema,
    PaginationSchema,
    ChatRoomOutSchema,
    ChatMessageOutSchema,
)
from spotlight.services import get_chat_service
from spotlight.utils.decorators import jwt_required

bp = Blueprint("chat", __name__, url_prefix="/chat")

create_room_schema = CreateChatRoomSchema()
chat_message_schema = ChatMessageSchema()
pagination_schema = PaginationSchema()
room_out_schema = ChatRoomOutSchema()
room_list_out_schema = ChatRoomOutSchema(many=True)
message_out_schema = ChatMessageOutSchema()
message_list_out_schema = ChatMessageOutSchema(many=True)


@bp.get("")
@jwt_required()
def list_rooms():
    """
    List the caller's active chat rooms, most recent activity first
    ---
    tags:
      - Chat
    security:
      - Bearer: []
    responses:
      200:
        description: OK
    """
    rooms = get_chat_service().list_rooms(g.principal)
    return jsonify({"data": room_list_out_schema.dump(rooms)}), 200


@bp.get("/<string:room_id>")
@jwt_required()
def get_room(room_id: str):
    """
    Get one room
    ---
    tags:
      - Chat
    security:
      - Bearer: []
    parameters:
      - in: path
        name: room_id
        type: string
        required: true
    responses:
      200:
        description: OK
      403:
        description: NOT_ROOM_MEMBER
      404:
        description: CHAT_ROOM_NOT_FOUND
    """
    room = get_chat_service().get_room(room_id, g.principal)
    return jsonify({"data": room_out_schema.dump(room)}), 200


@bp.get("/<string:room_id>/messages")
@jwt_required()
def get_messages(room_id: str):
    """
    Message history, one page at a time (page 0 is the newest)
    ---
    tags:
      - Chat
    security:
      - Bearer: []
    parameters:
      - in: path
        name: room_id
        type: string
        required: true
      - in: query
        name: page
        type: integer
        minimum: 0
      - in: query
        name: size
        type: integer
        minimum: 1
        maximum: 100
    responses:
      200:
        description: Messages in chronological order
    """
    paging = pagination_schema.load(request.args.to_dict())
    messages = get_chat_service().get_messages(room_id, g.principal, paging["page"], paging["size"])
    return jsonify(
        {
            "data": message_list_out_schema.dump(messages),
            "meta": {"page": paging["page"], "size": paging["size"]},
        }
    ), 200


@bp.post("/<string:room_id>/messages")
@jwt_required()
def post_message(room_id: str):
    """
    Send a message over HTTP (the socket gateway is the usual path)
    ---
    tags:
      - Chat
    security:
      - Bearer: []
    parameters:
      - in: body
        name: body
        schema:
          type: object
          required: [content]
          properties:
            content: { type: string }
            type: { type: string, enum: [TEXT, IMAGE, FILE] }
    responses:
      201:
        description: Created
    """
    data = chat_message_schema.load(request.get_json(silent=True) or {})
    message = get_chat_service().create_message(room_id, g.principal, data["content"], data["type"])
    return jsonify({"data": message_out_schema.dump(message)}), 201


@bp.post("/rooms")
@jwt_required()
def create_group_room():
    """
    Create a group room; the caller is always a member
    ---
    tags:
      - Chat
    security:
      - Bearer: []
    parameters:
      - in: body
        name: body
        schema:
          type: object
          required: [userIds]
          properties:
            name: { type: string }
            userIds: { type: array, items: { type: string } }
    responses:
      201:
        description: Created
      400:
        description: INVALID_CHAT_ROOM
    """
    data = create_room_schema.load(request.get_json(silent=True) or {})
    room = get_chat_service().create_group_room(g.principal, data.get("name"), data["user_ids"])
    return jsonify({"data": room_out_schema.dump(room)}), 201


@bp.post("/<string:user_id>")
@jwt_required()
def direct_room(user_id: str):
    """
    Find or create the one-on-one room with another user
    ---
    tags:
      - Chat
    security:
      - Bearer: []
    parameters:
      - in: path
        name: user_id
        type: string
        required: true
    responses:
      200:
        description: The direct room
      400:
        description: INVALID_CHAT_ROOM
      404:
        description: USER_NOT_FOUND
    """
    room = get_chat_service().get_or_create_direct_room(g.principal, user_id)
    return jsonify({"data": room_out_schema.dump(room)}), 200
