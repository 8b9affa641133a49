from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator
from typing import List, Optional
from uuid import UUID
from datetime import datetime, timezone
from enum import Enum


def _to_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Naive instants are read as UTC; aware ones are converted to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class HostType(str, Enum):
    fraternity = "fraternity"
    house = "house"
    club = "club"


class Visibility(str, Enum):
    everyone = "everyone"
    friends = "friends"


class ArchivedRole(str, Enum):
    host = "host"
    attended = "attended"


class MediaType(str, Enum):
    image = "image"
    video = "video"


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class RefreshTokenRequest(BaseModel):
    refresh_token: str


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class UserCreate(BaseModel):
    email: EmailStr
    password: str
    display_name: Optional[str] = None


class UserOut(BaseModel):
    id: UUID
    email: EmailStr
    display_name: Optional[str] = None

    class Config:
        from_attributes = True


class TokenResponse(BaseModel):
    """Login response carrying both tokens and the authenticated user."""
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: UserOut


class EventCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    host_type: HostType = HostType.house
    location_lat: float = Field(..., ge=-90, le=90)
    location_lng: float = Field(..., ge=-180, le=180)
    start_time: datetime
    end_time: Optional[datetime] = None
    tags: List[str] = Field(default_factory=list)
    theme: Optional[str] = None
    music_type: Optional[str] = None
    cover_charge: Optional[str] = None
    is_byob: bool = False
    visibility: Visibility = Visibility.everyone

    @field_validator("start_time", "end_time")
    @classmethod
    def normalise_utc(cls, value):
        return _to_utc(value)

    @field_validator("visibility", mode="before")
    @classmethod
    def default_visibility(cls, value):
        return value or Visibility.everyone

    @model_validator(mode="after")
    def check_time_window(self):
        if self.end_time is not None and self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class EventUpdate(BaseModel):
    """Partial update; only fields that were sent are applied."""
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    host_type: Optional[HostType] = None
    location_lat: Optional[float] = Field(None, ge=-90, le=90)
    location_lng: Optional[float] = Field(None, ge=-180, le=180)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    tags: Optional[List[str]] = None
    theme: Optional[str] = None
    music_type: Optional[str] = None
    cover_charge: Optional[str] = None
    is_byob: Optional[bool] = None
    visibility: Optional[Visibility] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def normalise_utc(cls, value):
        return _to_utc(value)

    @field_validator("visibility", mode="before")
    @classmethod
    def default_visibility(cls, value):
        return value or Visibility.everyone

    @field_validator("title", "host_type", "location_lat", "location_lng", "is_byob", mode="before")
    @classmethod
    def reject_null(cls, value, info):
        # omit a field to leave it unchanged; these columns cannot be cleared
        if value is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return value


class EventOut(BaseModel):
    id: UUID
    title: str
    description: Optional[str] = None
    host_type: HostType = HostType.house
    location_lat: float
    location_lng: float
    start_time: datetime
    end_time: Optional[datetime] = None
    tags: List[str] = Field(default_factory=list)
    theme: Optional[str] = None
    music_type: Optional[str] = None
    cover_charge: Optional[str] = None
    is_byob: bool = False
    visibility: Visibility = Visibility.everyone
    is_active: bool = True
    is_archived: bool = False
    archived_at: Optional[datetime] = None
    created_by: UUID
    created_at: Optional[datetime] = None
    checkin_count: int = 0
    distance_km: Optional[float] = None

    class Config:
        from_attributes = True

    @field_validator("start_time", "end_time", "archived_at", "created_at")
    @classmethod
    def normalise_utc(cls, value):
        return _to_utc(value)

    @field_validator("visibility", mode="before")
    @classmethod
    def default_visibility(cls, value):
        return value or Visibility.everyone

    @field_validator("tags", mode="before")
    @classmethod
    def default_tags(cls, value):
        return value or []


class CheckInCreate(BaseModel):
    event_id: UUID


class CheckInOut(BaseModel):
    id: UUID
    user_id: UUID
    event_id: UUID
    created_at: Optional[datetime] = None
    already_checked_in: bool = False

    class Config:
        from_attributes = True

    @field_validator("created_at")
    @classmethod
    def normalise_utc(cls, value):
        return _to_utc(value)


class FriendCreate(BaseModel):
    user_id: UUID


class FriendOut(BaseModel):
    user_id: UUID
    email: EmailStr
    display_name: Optional[str] = None
    created_at: Optional[datetime] = None


class EventMediaOut(BaseModel):
    id: UUID
    event_id: UUID
    user_id: Optional[UUID] = None
    media_type: MediaType
    content_type: Optional[str] = None
    caption: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @field_validator("created_at")
    @classmethod
    def normalise_utc(cls, value):
        return _to_utc(value)
