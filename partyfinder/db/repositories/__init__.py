"""
Repository layer for database operations.

Async CRUD helpers for users, events, check-ins, friendships and event
media. Event listings are returned as plain dicts so that they can be
cached in Redis.
"""
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple
import uuid

from sqlalchemy import select, func, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from partyfinder.cache.cache_decorators import cached
from partyfinder.cache.redis_client import cache
from partyfinder.core.logging import logger
from partyfinder.core.security import hash_password
from partyfinder.db.models import CheckIn, Event, EventMedia, Friendship, User
from partyfinder.schemas import EventCreate, EventUpdate, MediaType, UserCreate


async def create_user(db: AsyncSession, user_in: UserCreate) -> User:
    """
    Create a new user with hashed password.

    Args:
        db: Database session
        user_in: User registration data

    Returns:
        Created User object
    """
    user = User(
        email=user_in.email,
        hashed_password=hash_password(user_in.password),
        display_name=user_in.display_name,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    res = await db.execute(select(User).where(User.email == email))
    return res.scalars().first()


async def get_user(db: AsyncSession, user_id: uuid.UUID) -> Optional[User]:
    res = await db.execute(select(User).where(User.id == user_id))
    return res.scalars().first()


# Events

def serialize_event(ev: Event, checkin_count: int = 0) -> dict:
    """Convert an Event row to a cache-friendly dict."""
    return {
        'id': str(ev.id),
        'title': ev.title,
        'description': ev.description,
        'host_type': ev.host_type.value if ev.host_type else None,
        'location_lat': ev.location_lat,
        'location_lng': ev.location_lng,
        'start_time': ev.start_time.isoformat() if ev.start_time else None,
        'end_time': ev.end_time.isoformat() if ev.end_time else None,
        'tags': ev.tags or [],
        'theme': ev.theme,
        'music_type': ev.music_type,
        'cover_charge': ev.cover_charge,
        'is_byob': bool(ev.is_byob),
        'visibility': ev.visibility.value if ev.visibility else None,
        'is_active': bool(ev.is_active),
        'is_archived': bool(ev.is_archived),
        'archived_at': ev.archived_at.isoformat() if ev.archived_at else None,
        'created_by': str(ev.created_by),
        'created_at': ev.created_at.isoformat() if ev.created_at else None,
        'checkin_count': checkin_count,
    }


async def get_checkin_counts(db: AsyncSession, event_ids: Iterable[uuid.UUID]) -> Dict[uuid.UUID, int]:
    """Number of check-ins per event, for a batch of events."""
    ids = list(event_ids)
    if not ids:
        return {}
    q = (
        select(CheckIn.event_id, func.count(CheckIn.id))
        .where(CheckIn.event_id.in_(ids))
        .group_by(CheckIn.event_id)
    )
    res = await db.execute(q)
    return {event_id: count for event_id, count in res.all()}


async def get_event_checkin_count(db: AsyncSession, event_id: uuid.UUID) -> int:
    counts = await get_checkin_counts(db, [event_id])
    return counts.get(event_id, 0)


async def _serialize_all(db: AsyncSession, events: List[Event]) -> List[dict]:
    counts = await get_checkin_counts(db, [ev.id for ev in events])
    return [serialize_event(ev, counts.get(ev.id, 0)) for ev in events]


async def get_event(db: AsyncSession, event_id: uuid.UUID) -> Optional[Event]:
    res = await db.execute(select(Event).where(Event.id == event_id))
    return res.scalars().first()


@cached('events:detail', expire=60)
async def get_event_detail(db: AsyncSession, event_id: uuid.UUID) -> Optional[dict]:
    ev = await get_event(db, event_id)
    if ev is None:
        return None
    return serialize_event(ev, await get_event_checkin_count(db, ev.id))


@cached('events:list', expire=30)
async def list_live_events(db: AsyncSession) -> List[dict]:
    """
    Snapshot of every event that has not been archived.

    Visibility, activity and end-time filtering is left to the caller.
    """
    q = select(Event).where(Event.is_archived.is_(False)).order_by(Event.start_time.asc())
    res = await db.execute(q)
    return await _serialize_all(db, list(res.scalars().all()))


async def list_archived_hosted(db: AsyncSession, user_id: uuid.UUID) -> List[dict]:
    q = select(Event).where(Event.is_archived.is_(True), Event.created_by == user_id)
    res = await db.execute(q)
    return await _serialize_all(db, list(res.scalars().all()))


async def list_archived_attended(db: AsyncSession, user_id: uuid.UUID) -> List[dict]:
    q = (
        select(Event)
        .join(CheckIn, CheckIn.event_id == Event.id)
        .where(Event.is_archived.is_(True), CheckIn.user_id == user_id)
    )
    res = await db.execute(q)
    return await _serialize_all(db, list(res.scalars().all()))


async def invalidate_event_caches() -> None:
    await cache.delete_pattern("events:list:*")
    await cache.delete_pattern("events:detail:*")


async def create_event(db: AsyncSession, payload: EventCreate, creator_id: uuid.UUID) -> Event:
    """
    Create a new event and invalidate events cache.

    Args:
        db: Database session
        payload: Event creation data
        creator_id: UUID of user creating the event

    Returns:
        Created Event object
    """
    ev = Event(**payload.model_dump(), created_by=creator_id)
    db.add(ev)
    await db.commit()
    await db.refresh(ev)
    await invalidate_event_caches()
    return ev


async def update_event(db: AsyncSession, ev: Event, payload: EventUpdate) -> Event:
    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(ev, field, value)
    await db.commit()
    await db.refresh(ev)
    await invalidate_event_caches()
    return ev


async def archive_event(db: AsyncSession, ev: Event, archived_at: datetime) -> Event:
    ev.is_archived = True
    ev.archived_at = archived_at
    await db.commit()
    await db.refresh(ev)
    await invalidate_event_caches()
    return ev


async def deactivate_event(db: AsyncSession, ev: Event) -> Event:
    ev.is_active = False
    await db.commit()
    await db.refresh(ev)
    await invalidate_event_caches()
    return ev


# Check-ins

async def get_checkin(db: AsyncSession, user_id: uuid.UUID, event_id: uuid.UUID) -> Optional[CheckIn]:
    q = select(CheckIn).where(CheckIn.user_id == user_id, CheckIn.event_id == event_id)
    res = await db.execute(q)
    return res.scalars().first()


async def create_checkin(db: AsyncSession, user_id: uuid.UUID, event_id: uuid.UUID) -> Tuple[CheckIn, bool]:
    """
    Record a check-in, append-once per (user, event).

    Returns:
        The check-in row and whether it was created by this call. A
        duplicate returns the existing row with ``False``.
    """
    existing = await get_checkin(db, user_id, event_id)
    if existing:
        return existing, False

    checkin = CheckIn(user_id=user_id, event_id=event_id)
    db.add(checkin)
    try:
        await db.commit()
        await db.refresh(checkin)
    except IntegrityError:
        # Lost a race with a concurrent submission for the same pair
        await db.rollback()
        existing = await get_checkin(db, user_id, event_id)
        if existing is None:
            raise
        logger.info(f"Concurrent duplicate check-in for user {user_id} on event {event_id}")
        return existing, False

    await invalidate_event_caches()
    return checkin, True


async def list_checkins_for_user(
    db: AsyncSession, user_id: uuid.UUID, event_id: Optional[uuid.UUID] = None
) -> List[CheckIn]:
    q = select(CheckIn).where(CheckIn.user_id == user_id).order_by(CheckIn.created_at.desc())
    if event_id:
        q = q.where(CheckIn.event_id == event_id)
    res = await db.execute(q)
    return list(res.scalars().all())


# Friendships

async def list_friends(db: AsyncSession, user_id: uuid.UUID) -> List[Tuple[User, Friendship]]:
    q = (
        select(User, Friendship)
        .join(Friendship, Friendship.friend_id == User.id)
        .where(Friendship.user_id == user_id)
        .order_by(Friendship.created_at.desc())
    )
    res = await db.execute(q)
    return [(user, friendship) for user, friendship in res.all()]


async def get_friend_ids(db: AsyncSession, user_id: uuid.UUID) -> List[uuid.UUID]:
    res = await db.execute(select(Friendship.friend_id).where(Friendship.user_id == user_id))
    return list(res.scalars().all())


async def are_friends(db: AsyncSession, user_id: uuid.UUID, other_id: uuid.UUID) -> bool:
    q = select(Friendship.id).where(Friendship.user_id == user_id, Friendship.friend_id == other_id)
    res = await db.execute(q)
    return res.first() is not None


async def add_friendship(db: AsyncSession, user_id: uuid.UUID, friend_id: uuid.UUID) -> None:
    """Store both directions of the friendship; a no-op if it already exists."""
    if await are_friends(db, user_id, friend_id):
        return
    db.add_all([
        Friendship(user_id=user_id, friend_id=friend_id),
        Friendship(user_id=friend_id, friend_id=user_id),
    ])
    await db.commit()


async def remove_friendship(db: AsyncSession, user_id: uuid.UUID, friend_id: uuid.UUID) -> int:
    q = delete(Friendship).where(
        ((Friendship.user_id == user_id) & (Friendship.friend_id == friend_id))
        | ((Friendship.user_id == friend_id) & (Friendship.friend_id == user_id))
    )
    res = await db.execute(q)
    await db.commit()
    return res.rowcount or 0


# Event media

async def list_media(db: AsyncSession, event_id: uuid.UUID) -> List[EventMedia]:
    q = select(EventMedia).where(EventMedia.event_id == event_id).order_by(EventMedia.created_at.asc())
    res = await db.execute(q)
    return list(res.scalars().all())


async def get_media(db: AsyncSession, event_id: uuid.UUID, media_id: uuid.UUID) -> Optional[EventMedia]:
    q = select(EventMedia).where(EventMedia.id == media_id, EventMedia.event_id == event_id)
    res = await db.execute(q)
    return res.scalars().first()


async def create_media(
    db: AsyncSession,
    event_id: uuid.UUID,
    user_id: uuid.UUID,
    media_type: MediaType,
    stored_name: str,
    content_type: Optional[str],
    caption: Optional[str],
    media_id: Optional[uuid.UUID] = None,
) -> EventMedia:
    media = EventMedia(
        id=media_id or uuid.uuid4(),
        event_id=event_id,
        user_id=user_id,
        media_type=media_type,
        stored_name=stored_name,
        content_type=content_type,
        caption=caption,
    )
    db.add(media)
    await db.commit()
    await db.refresh(media)
    return media


async def delete_media(db: AsyncSession, media: EventMedia) -> None:
    await db.delete(media)
    await db.commit()
