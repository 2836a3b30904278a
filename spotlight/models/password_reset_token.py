"""
PasswordResetToken model: pending password reset requests.
Only the digest of the emailed token is stored; rows are deleted on use,
on expiry detection, and when a newer reset is requested.
"""
from sqlalchemy import Column, String, DateTime, ForeignKey

from spotlight.models.base_model import BaseModel, Base


class PasswordResetToken(BaseModel, Base):
    __tablename__ = "password_reset_tokens"

    token_digest = Column(String(64), nullable=False, unique=True, index=True)
    account_id = Column(String(36), ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)

    def __repr__(self):
        return f"<PasswordResetToken account_id={self.account_id}>"
