from sqlalchemy import Column, String, Boolean, ForeignKey
from sqlalchemy.orm import relationship

from spotlight.models.base_model import BaseModel, Base


class UserPreferences(BaseModel, Base):
    __tablename__ = "user_preferences"

    account_id = Column(
        String(36),
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )
    email_notifications = Column(Boolean, nullable=False, default=True)
    push_notifications = Column(Boolean, nullable=False, default=True)
    profile_visibility = Column(String(16), nullable=False, default="PUBLIC")
    language = Column(String(8), nullable=False, default="en")

    account = relationship("Account", back_populates="preferences")
