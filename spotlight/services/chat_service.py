"""
Chat room / message store.

One-on-one rooms are found by exact membership-set equality: a non-group
room whose members are precisely {A, B}. The unique `direct_key` column keeps
it to one such room per unordered pair; group rooms never match.
"""
from __future__ import annotations

import logging

from sqlalchemy import case, func
from sqlalchemy.exc import IntegrityError

from spotlight.exceptions import ChatRoomNotFound, InvalidChatRoom, NotRoomMember, UserNotFound
from spotlight.models import storage
from spotlight.models.account import Account
from spotlight.models.base_model import utcnow
from spotlight.models.chat import ChatMessage, ChatRoom, ChatRoomMember, MessageType
from spotlight.services.principal import Principal

logger = logging.getLogger(__name__)


class ChatService:
    def list_rooms(self, principal: Principal) -> list[ChatRoom]:
        """Non-archived rooms the caller belongs to, most recent activity first."""
        session = storage.get_session()
        return (
            session.query(ChatRoom)
            .join(ChatRoomMember, ChatRoomMember.room_id == ChatRoom.id)
            .filter(ChatRoomMember.account_id == principal.account_id, ChatRoom.archived.is_(False))
            .order_by(ChatRoom.updated_at.desc())
            .all()
        )

    def get_room(self, room_id: str, principal: Principal) -> ChatRoom:
        room = storage.get(ChatRoom, room_id)
        if room is None:
            raise ChatRoomNotFound()
        if not self.is_member(room_id, principal.account_id):
            raise NotRoomMember()
        return room

    def is_member(self, room_id: str, account_id: str) -> bool:
        session = storage.get_session()
        return (
            session.query(ChatRoomMember.id)
            .filter(ChatRoomMember.room_id == room_id, ChatRoomMember.account_id == account_id)
            .first()
            is not None
        )

    def find_direct_room(self, first_id: str, second_id: str) -> ChatRoom | None:
        session = storage.get_session()
        pair = [first_id, second_id]
        exact_pair = (
            session.query(ChatRoomMember.room_id)
            .group_by(ChatRoomMember.room_id)
            .having(func.count(ChatRoomMember.id) == 2)
            .having(func.sum(case((ChatRoomMember.account_id.in_(pair), 1), else_=0)) == 2)
        )
        return (
            session.query(ChatRoom)
            .filter(ChatRoom.is_group.is_(False), ChatRoom.id.in_(exact_pair))
            .order_by(ChatRoom.created_at)
            .first()
        )

    def get_or_create_direct_room(self, principal: Principal, other_id: str) -> ChatRoom:
        if other_id == principal.account_id:
            raise InvalidChatRoom("Cannot start a chat with yourself")
        if storage.get(Account, other_id) is None:
            raise UserNotFound()

        room = self.find_direct_room(principal.account_id, other_id)
        if room is not None:
            return room

        room = ChatRoom(is_group=False, direct_key=ChatRoom.pair_key(principal.account_id, other_id))
        room.members = [
            ChatRoomMember(account_id=principal.account_id),
            ChatRoomMember(account_id=other_id),
        ]
        storage.new(room)
        try:
            storage.save()
        except IntegrityError:
            # a concurrent first contact created the pair's room
            existing = self.find_direct_room(principal.account_id, other_id)
            if existing is None:
                raise
            logger.info("Direct room for %s and %s created concurrently; reusing %s",
                        principal.account_id, other_id, existing.id)
            return existing
        logger.info("Direct room %s created for %s and %s", room.id, principal.account_id, other_id)
        return room

    def create_group_room(self, principal: Principal, name: str | None, member_ids: list[str]) -> ChatRoom:
        unique_ids = list(dict.fromkeys([principal.account_id, *member_ids]))
        if len(unique_ids) < 2:
            raise InvalidChatRoom()

        session = storage.get_session()
        known = {row[0] for row in session.query(Account.id).filter(Account.id.in_(unique_ids)).all()}
        if len(known) != len(unique_ids):
            raise UserNotFound()

        room = ChatRoom(name=(name or "").strip() or None, is_group=True)
        room.members = [ChatRoomMember(account_id=account_id) for account_id in unique_ids]
        storage.new(room)
        storage.save()
        logger.info("Group room %s created by %s with %d members", room.id, principal.account_id, len(unique_ids))
        return room

    def get_messages(self, room_id: str, principal: Principal, page: int = 0, size: int = 20) -> list[ChatMessage]:
        """One page of history counted back from the newest message, returned oldest first."""
        self.get_room(room_id, principal)
        session = storage.get_session()
        newest_first = (
            session.query(ChatMessage)
            .filter(ChatMessage.room_id == room_id)
            .order_by(ChatMessage.created_at.desc(), ChatMessage.id.desc())
            .offset(page * size)
            .limit(size)
            .all()
        )
        return list(reversed(newest_first))

    def create_message(
        self,
        room_id: str,
        principal: Principal,
        content: str,
        message_type: str | MessageType = MessageType.TEXT,
    ) -> ChatMessage:
        room = self.get_room(room_id, principal)
        message = ChatMessage(
            room=room,
            sender_id=principal.account_id,
            content=content,
            type=MessageType(message_type or MessageType.TEXT),
        )
        storage.new(message)
        room.updated_at = utcnow()
        storage.save()
        return message
