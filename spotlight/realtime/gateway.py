"""
Socket.IO chat gateway on the /ws namespace.

A connection authenticates once with the `token` query parameter (an access
token). Afterwards:
  - join(roomId) / leave(roomId)   membership-checked broadcast groups
  - message({roomId, content, type})  persisted, then sent to the room
  - typing({roomId, isTyping})        ephemeral, sent to the room except the sender
Handlers answer with an ack object: {"success": True, ...} or {"error": "..."}.

Server events: user_online, user_offline, message, typing.
"""
from __future__ import annotations

import logging
import threading

from flask import request
from flask_socketio import disconnect, emit, join_room, leave_room
from marshmallow import ValidationError

from spotlight.exceptions import ApiError
from spotlight.models.schemas.chat import ChatMessageOutSchema, GatewayMessageSchema
from spotlight.services import Principal, get_chat_service
from spotlight.utils.decorators import authenticate_token

logger = logging.getLogger(__name__)

NAMESPACE = "/ws"

gateway_message_schema = GatewayMessageSchema()
chat_message_out_schema = ChatMessageOutSchema()


def room_channel(room_id: str) -> str:
    return f"room:{room_id}"


def user_channel(account_id: str) -> str:
    return f"user:{account_id}"


class Presence:
    """accountId -> sid map (latest connection wins), plus the reverse lookup."""

    def __init__(self):
        self._lock = threading.Lock()
        self._by_account: dict[str, str] = {}
        self._by_sid: dict[str, Principal] = {}

    def add(self, principal: Principal, sid: str) -> None:
        with self._lock:
            self._by_account[principal.account_id] = sid
            self._by_sid[sid] = principal

    def remove(self, sid: str) -> tuple[Principal | None, bool]:
        """Drop a connection; the flag says whether the account went offline."""
        with self._lock:
            principal = self._by_sid.pop(sid, None)
            if principal is None:
                return None, False
            if self._by_account.get(principal.account_id) == sid:
                del self._by_account[principal.account_id]
                return principal, True
            return principal, False

    def principal(self, sid: str) -> Principal | None:
        with self._lock:
            return self._by_sid.get(sid)

    def sid_for(self, account_id: str) -> str | None:
        with self._lock:
            return self._by_account.get(account_id)

    def online(self) -> set[str]:
        with self._lock:
            return set(self._by_account)

    def clear(self) -> None:
        with self._lock:
            self._by_account.clear()
            self._by_sid.clear()


presence = Presence()


def _room_id(data, key: str = "roomId") -> str | None:
    if isinstance(data, str):
        return data.strip() or None
    if isinstance(data, dict):
        value = data.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


_registered_on: set = set()


def register_gateway(socketio):
    """
    Register the /ws handlers once per SocketIO instance.
    Call before `init_app`: handlers recorded then are attached to every
    server that `init_app` creates later.
    """
    if id(socketio) in _registered_on:
        return
    _registered_on.add(id(socketio))

    @socketio.on("connect", namespace=NAMESPACE)
    def handle_connect(auth=None):
        token = request.args.get("token")
        if not token and isinstance(auth, dict):
            token = auth.get("token")
        if not token:
            logger.info("Socket connection rejected: no token")
            return False
        try:
            principal = authenticate_token(token)
        except ApiError as exc:
            logger.info("Socket connection rejected: %s", exc.message)
            return False

        presence.add(principal, request.sid)
        join_room(user_channel(principal.account_id))
        emit("user_online", {"userId": principal.account_id}, broadcast=True, include_self=False)
        logger.info("Socket connected: %s (%s)", principal.account_id, request.sid)

    @socketio.on("disconnect", namespace=NAMESPACE)
    def handle_disconnect(*args):
        principal, went_offline = presence.remove(request.sid)
        if principal is None:
            return
        if went_offline:
            emit("user_offline", {"userId": principal.account_id}, broadcast=True, include_self=False)
        logger.info("Socket disconnected: %s (%s)", principal.account_id, request.sid)

    def _current() -> Principal | None:
        principal = presence.principal(request.sid)
        if principal is None:
            # handshake state lost (e.g. worker restart); force a reconnect
            disconnect()
        return principal

    @socketio.on("join", namespace=NAMESPACE)
    def handle_join(data=None):
        principal = _current()
        if principal is None:
            return {"error": "Unauthorized"}
        room_id = _room_id(data)
        if room_id is None:
            return {"error": "roomId is required"}
        try:
            get_chat_service().get_room(room_id, principal)
        except ApiError as exc:
            logger.warning("Join denied: %s -> %s (%s)", principal.account_id, room_id, exc.code)
            return {"error": exc.message}
        join_room(room_channel(room_id))
        return {"success": True, "roomId": room_id}

    @socketio.on("leave", namespace=NAMESPACE)
    def handle_leave(data=None):
        principal = _current()
        if principal is None:
            return {"error": "Unauthorized"}
        room_id = _room_id(data)
        if room_id is None:
            return {"error": "roomId is required"}
        leave_room(room_channel(room_id))
        return {"success": True, "roomId": room_id}

    @socketio.on("message", namespace=NAMESPACE)
    def handle_message(data=None):
        principal = _current()
        if principal is None:
            return {"error": "Unauthorized"}
        try:
            payload = gateway_message_schema.load(data if isinstance(data, dict) else {})
        except ValidationError as err:
            return {"error": "Invalid message", "details": err.messages}
        try:
            message = get_chat_service().create_message(
                payload["room_id"], principal, payload["content"], payload["type"]
            )
        except ApiError as exc:
            return {"error": exc.message}

        out = chat_message_out_schema.dump(message)
        emit("message", out, to=room_channel(payload["room_id"]))
        return {"success": True, "message": out}

    @socketio.on("typing", namespace=NAMESPACE)
    def handle_typing(data=None):
        principal = _current()
        if principal is None:
            return {"error": "Unauthorized"}
        room_id = _room_id(data)
        if room_id is None:
            return {"error": "roomId is required"}
        if not get_chat_service().is_member(room_id, principal.account_id):
            return {"error": "You are not a member of this room"}
        is_typing = bool(data.get("isTyping")) if isinstance(data, dict) else False
        emit(
            "typing",
            {"roomId": room_id, "userId": principal.account_id, "isTyping": is_typing},
            to=room_channel(room_id),
            include_self=False,
        )
        return {"success": True}
