from uuid import UUID
from typing import List
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from partyfinder.auth import get_current_user
from partyfinder.db.models.user import User
from partyfinder.db.session import get_session
from partyfinder.schemas import ArchivedRole, EventCreate, EventOut, EventUpdate
from partyfinder.services.event_service import EventService

router = APIRouter(prefix="/events", tags=["events"])


def get_event_service(session: AsyncSession = Depends(get_session)) -> EventService:
    return EventService(session)


@router.get("", response_model=List[EventOut])
async def list_events(event_service: EventService = Depends(get_event_service)):
    """
    Snapshot of every event that has not been archived.

    Clients apply activity, end-time and friends-only filtering themselves.
    """
    return await event_service.list_live_events()


@router.get("/archived", response_model=List[EventOut])
async def list_archived_events(
    role: ArchivedRole = Query(ArchivedRole.host, description="host: events you ended; attended: events you checked in to"),
    user: User = Depends(get_current_user),
    event_service: EventService = Depends(get_event_service)
):
    return await event_service.list_archived_events(role, user)


@router.post("", response_model=EventOut, status_code=status.HTTP_201_CREATED)
async def create_event(
    payload: EventCreate,
    user: User = Depends(get_current_user),
    event_service: EventService = Depends(get_event_service)
):
    return await event_service.create_event(payload, user)


@router.get("/{event_id}", response_model=EventOut)
async def get_event(event_id: UUID, event_service: EventService = Depends(get_event_service)):
    return await event_service.get_event(event_id)


@router.put("/{event_id}", response_model=EventOut)
async def update_event(
    event_id: UUID,
    payload: EventUpdate,
    user: User = Depends(get_current_user),
    event_service: EventService = Depends(get_event_service)
):
    """Edit a live event. Only its creator may do this."""
    return await event_service.update_event(event_id, payload, user)


@router.post("/{event_id}/archive", response_model=EventOut)
async def archive_event(
    event_id: UUID,
    user: User = Depends(get_current_user),
    event_service: EventService = Depends(get_event_service)
):
    """End an event. One-way; repeating the call changes nothing."""
    return await event_service.archive_event(event_id, user)


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event(
    event_id: UUID,
    user: User = Depends(get_current_user),
    event_service: EventService = Depends(get_event_service)
):
    await event_service.delete_event(event_id, user)
    return None
