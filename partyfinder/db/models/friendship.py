from sqlalchemy import Column, DateTime, ForeignKey, Index, UniqueConstraint, Uuid, func
import uuid
from partyfinder.db.session import Base


class Friendship(Base):
    """One directed row per side; a friendship is always stored as a pair."""
    __tablename__ = "friendships"
    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=False)
    friend_id = Column(Uuid, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint('user_id', 'friend_id', name='uq_friendship_pair'),
        Index('idx_friendship_user', 'user_id'),
    )
