from enum import Enum

from sqlalchemy import Column, String, Boolean
from sqlalchemy.orm import relationship
from sqlalchemy.types import Enum as SAEnum

from spotlight.models.base_model import BaseModel, Base


class Role(str, Enum):
    USER = "USER"
    ADMIN = "ADMIN"


class HashAlgorithm(str, Enum):
    ARGON2ID = "ARGON2ID"
    BCRYPT = "BCRYPT"


class Availability(str, Enum):
    AVAILABLE = "AVAILABLE"
    BUSY = "BUSY"
    AWAY = "AWAY"
    OFFLINE = "OFFLINE"


class Account(BaseModel, Base):
    __tablename__ = "accounts"

    # Always stored trimmed + lowercase; uniqueness is therefore case-insensitive
    email = Column(String(255), nullable=False, unique=True, index=True)
    name = Column(String(100), nullable=False)
    password_hash = Column(String(255), nullable=False)
    password_algorithm = Column(
        SAEnum(HashAlgorithm, name="hash_algorithm", native_enum=False),
        nullable=False,
        default=HashAlgorithm.ARGON2ID,
    )
    role = Column(SAEnum(Role, name="account_role", native_enum=False), nullable=False, default=Role.USER)
    enabled = Column(Boolean, nullable=False, default=True)
    is_pro = Column(Boolean, nullable=False, default=False)
    is_verified = Column(Boolean, nullable=False, default=False)

    area_activity = Column(String(100), nullable=True)
    avatar = Column(String(512), nullable=True)
    cover_image = Column(String(512), nullable=True)
    chat_availability = Column(
        SAEnum(Availability, name="chat_availability", native_enum=False),
        nullable=False,
        default=Availability.AVAILABLE,
    )

    preferences = relationship(
        "UserPreferences",
        back_populates="account",
        uselist=False,
        cascade="all, delete-orphan",
    )
    refresh_tokens = relationship(
        "RefreshToken",
        back_populates="account",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def password(self):
        raise AttributeError("Password: Write-only field")

    def __repr__(self):
        return f"<Account {self.email}>"
