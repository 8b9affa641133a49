import uuid
from datetime import datetime, timezone
from typing import List
from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from partyfinder.core.logging import logger
from partyfinder.db.models import Event, User
from partyfinder.db.repositories import (
    archive_event as db_archive_event,
    create_event as db_create_event,
    deactivate_event as db_deactivate_event,
    get_event as db_get_event,
    get_event_checkin_count,
    get_event_detail as db_get_event_detail,
    list_archived_attended as db_list_archived_attended,
    list_archived_hosted as db_list_archived_hosted,
    list_live_events as db_list_live_events,
    serialize_event,
    update_event as db_update_event,
)
from partyfinder.domain import is_host, order_archived_events
from partyfinder.domain.lifecycle import as_utc, has_ended
from partyfinder.schemas import ArchivedRole, EventCreate, EventOut, EventUpdate


class EventService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def _get_owned_event(self, event_id: uuid.UUID, user: User, action: str) -> Event:
        ev = await db_get_event(self.session, event_id)
        if not ev:
            raise HTTPException(status_code=404, detail="Event not found")
        if not is_host(ev, user.id):
            raise HTTPException(status_code=403, detail=f"You can only {action} your own events")
        return ev

    async def _to_dict(self, ev: Event) -> dict:
        return serialize_event(ev, await get_event_checkin_count(self.session, ev.id))

    async def create_event(self, payload: EventCreate, user: User) -> dict:
        ev = await db_create_event(self.session, payload, user.id)
        logger.info(f"User {user.id} created event {ev.id}")
        return serialize_event(ev)

    async def get_event(self, event_id: uuid.UUID) -> dict:
        ev = await db_get_event_detail(self.session, event_id)
        if not ev:
            raise HTTPException(status_code=404, detail="Event not found")
        return ev

    async def list_live_events(self) -> List[dict]:
        return await db_list_live_events(self.session)

    async def list_archived_events(self, role: ArchivedRole, user: User) -> List[EventOut]:
        """Archived events the user hosted or attended, most recently ended first."""
        if role == ArchivedRole.host:
            rows = await db_list_archived_hosted(self.session, user.id)
        else:
            rows = await db_list_archived_attended(self.session, user.id)
        return order_archived_events(EventOut.model_validate(row) for row in rows)

    async def update_event(self, event_id: uuid.UUID, payload: EventUpdate, user: User) -> dict:
        ev = await self._get_owned_event(event_id, user, "edit")
        if ev.is_archived:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Archived events can no longer be edited")
        if not ev.is_active or has_ended(EventOut.model_validate(ev), datetime.now(timezone.utc)):
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Only live events can be edited")

        changes = payload.model_dump(exclude_unset=True)
        start = changes.get("start_time", ev.start_time)
        end = changes.get("end_time", ev.end_time)
        if start is None:
            raise HTTPException(status_code=400, detail="start_time cannot be cleared")
        if end is not None and as_utc(end) <= as_utc(start):
            raise HTTPException(status_code=400, detail="end_time must be after start_time")

        ev = await db_update_event(self.session, ev, payload)
        logger.info(f"User {user.id} updated event {ev.id}")
        return await self._to_dict(ev)

    async def archive_event(self, event_id: uuid.UUID, user: User) -> dict:
        """End an event. Archiving twice keeps the original ``archived_at``."""
        ev = await self._get_owned_event(event_id, user, "end")
        if ev.is_archived:
            logger.debug(f"Event {ev.id} already archived at {ev.archived_at}")
            return await self._to_dict(ev)

        ev = await db_archive_event(self.session, ev, datetime.now(timezone.utc))
        logger.info(f"User {user.id} archived event {ev.id}")
        return await self._to_dict(ev)

    async def delete_event(self, event_id: uuid.UUID, user: User) -> None:
        ev = await self._get_owned_event(event_id, user, "delete")
        await db_deactivate_event(self.session, ev)
        logger.info(f"User {user.id} deactivated event {ev.id}")
