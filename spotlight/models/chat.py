from enum import Enum

from sqlalchemy import Column, String, Boolean, Text, DateTime, ForeignKey, UniqueConstraint, Index
from sqlalchemy.orm import relationship
from sqlalchemy.types import Enum as SAEnum

from spotlight.models.base_model import BaseModel, Base, utcnow


class MessageType(str, Enum):
    TEXT = "TEXT"
    IMAGE = "IMAGE"
    FILE = "FILE"


class ChatRoom(BaseModel, Base):
    __tablename__ = "chat_rooms"

    name = Column(String(128), nullable=True)
    is_group = Column(Boolean, nullable=False, default=False)
    archived = Column(Boolean, nullable=False, default=False)
    # "<low id>:<high id>" for one-on-one rooms, NULL for groups; one room per pair
    direct_key = Column(String(73), nullable=True, unique=True)

    members = relationship(
        "ChatRoomMember",
        back_populates="room",
        cascade="all, delete-orphan",
        order_by="ChatRoomMember.joined_at",
    )
    messages = relationship(
        "ChatMessage",
        back_populates="room",
        cascade="all, delete-orphan",
        order_by="ChatMessage.created_at",
    )

    @staticmethod
    def pair_key(first_id: str, second_id: str) -> str:
        return ":".join(sorted((first_id, second_id)))

    @property
    def member_ids(self) -> set:
        return {m.account_id for m in self.members}


class ChatRoomMember(BaseModel, Base):
    __tablename__ = "chat_room_members"

    room_id = Column(String(36), ForeignKey("chat_rooms.id", ondelete="CASCADE"), nullable=False, index=True)
    account_id = Column(String(36), ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True)
    joined_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    room = relationship("ChatRoom", back_populates="members")
    account = relationship("Account")

    __table_args__ = (
        UniqueConstraint("room_id", "account_id", name="uq_chat_room_member"),
    )


class ChatMessage(BaseModel, Base):
    __tablename__ = "chat_messages"

    room_id = Column(String(36), ForeignKey("chat_rooms.id", ondelete="CASCADE"), nullable=False)
    sender_id = Column(String(36), ForeignKey("accounts.id", ondelete="RESTRICT"), nullable=False)
    content = Column(Text, nullable=False)
    type = Column(SAEnum(MessageType, name="message_type", native_enum=False), nullable=False, default=MessageType.TEXT)

    room = relationship("ChatRoom", back_populates="messages")
    sender = relationship("Account")

    __table_args__ = (
        Index("ix_chat_messages_room_created", "room_id", "created_at"),
    )
