from sqlalchemy import Column, DateTime, ForeignKey, Index, UniqueConstraint, Uuid, func
import uuid
from sqlalchemy.orm import relationship
from partyfinder.db.session import Base


class CheckIn(Base):
    __tablename__ = "checkins"
    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=False)
    event_id = Column(Uuid, ForeignKey("events.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User")
    event = relationship("Event")

    # One check-in per user per event
    __table_args__ = (
        UniqueConstraint('user_id', 'event_id', name='uq_user_event_checkin'),
        Index('idx_checkin_user', 'user_id'),
        Index('idx_checkin_event', 'event_id'),
    )
