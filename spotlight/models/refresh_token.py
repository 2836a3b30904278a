"""
RefreshToken model: one row per issued refresh token.
Fields:
- token_digest (unique) - HMAC of the opaque token handed to the client
- account_id (String(36)) - FK to accounts.id
- expires_at, created_at

A row is single-use: rotation, logout, password change and lazy expiry
detection all delete it.
"""
from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from spotlight.models.base_model import BaseModel, Base


class RefreshToken(BaseModel, Base):
    __tablename__ = "refresh_tokens"

    token_digest = Column(String(64), nullable=False, unique=True, index=True)
    account_id = Column(String(36), ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)

    account = relationship("Account", back_populates="refresh_tokens")

    def __repr__(self):
        return f"<RefreshToken account_id={self.account_id}>"
