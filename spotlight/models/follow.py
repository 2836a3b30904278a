from sqlalchemy import Column, String, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from spotlight.models.base_model import BaseModel, Base


class Follow(BaseModel, Base):
    """follower_id follows following_id; at most one row per ordered pair."""
    __tablename__ = "follows"

    follower_id = Column(String(36), ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True)
    following_id = Column(String(36), ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True)

    follower = relationship("Account", foreign_keys=[follower_id])
    following = relationship("Account", foreign_keys=[following_id])

    __table_args__ = (
        UniqueConstraint("follower_id", "following_id", name="uq_follow_pair"),
    )
