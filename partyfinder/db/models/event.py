from sqlalchemy import Boolean, Column, DateTime, Enum, Float, ForeignKey, Index, JSON, String, Text, Uuid, func
import uuid
from sqlalchemy.orm import relationship
from partyfinder.db.session import Base
from partyfinder.schemas import HostType, Visibility


class Event(Base):
    __tablename__ = "events"
    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    host_type = Column(Enum(HostType), nullable=False, default=HostType.house)
    location_lat = Column(Float, nullable=False)
    location_lng = Column(Float, nullable=False)
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=True)
    tags = Column(JSON, nullable=True)
    theme = Column(String(255), nullable=True)
    music_type = Column(String(255), nullable=True)
    cover_charge = Column(String(64), nullable=True)
    is_byob = Column(Boolean, nullable=False, default=False)
    visibility = Column(Enum(Visibility), nullable=False, default=Visibility.everyone)
    is_active = Column(Boolean, nullable=False, default=True)
    is_archived = Column(Boolean, nullable=False, default=False)
    archived_at = Column(DateTime(timezone=True), nullable=True)
    created_by = Column(Uuid, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    creator = relationship("User")

    __table_args__ = (
        Index('idx_event_start_time', 'start_time'),
        Index('idx_event_creator', 'created_by'),
        Index('idx_event_archived', 'is_archived', 'archived_at'),
    )
