from sqlalchemy import Column, DateTime, Enum, ForeignKey, Index, String, Text, Uuid, func
import uuid
from partyfinder.db.session import Base
from partyfinder.schemas import MediaType


class EventMedia(Base):
    __tablename__ = "event_media"
    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    event_id = Column(Uuid, ForeignKey("events.id"), nullable=False)
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=True)
    media_type = Column(Enum(MediaType), nullable=False)
    content_type = Column(String(128), nullable=True)
    stored_name = Column(String(255), nullable=False)
    caption = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index('idx_media_event', 'event_id'),
    )
