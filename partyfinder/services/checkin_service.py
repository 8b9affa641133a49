import uuid
from datetime import datetime, timezone
from typing import List, Optional, Tuple
from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from partyfinder.core.logging import logger
from partyfinder.db.models import CheckIn, User
from partyfinder.db.repositories import (
    create_checkin as db_create_checkin,
    get_checkin as db_get_checkin,
    get_event as db_get_event,
    list_checkins_for_user as db_list_checkins_for_user,
)
from partyfinder.domain import has_ended, has_started
from partyfinder.schemas import EventOut


class CheckInService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def check_in(self, event_id: uuid.UUID, user: User) -> Tuple[CheckIn, bool]:
        """
        Record that ``user`` attended ``event_id``.

        Submitting twice is harmless: the existing record is returned with
        ``created=False``.

        Returns:
            Tuple of (check-in, created)
        """
        existing = await db_get_checkin(self.session, user.id, event_id)
        if existing:
            logger.debug(f"User {user.id} already checked in to event {event_id}")
            return existing, False

        ev = await db_get_event(self.session, event_id)
        if not ev:
            raise HTTPException(status_code=404, detail="Event not found")

        event = EventOut.model_validate(ev)
        now = datetime.now(timezone.utc)
        if not event.is_active or event.is_archived:
            raise HTTPException(status_code=400, detail="Event is no longer live")
        if has_ended(event, now):
            raise HTTPException(status_code=400, detail="Event has already ended")
        if not has_started(event, now):
            raise HTTPException(status_code=400, detail="This event hasn't started yet!")

        checkin, created = await db_create_checkin(self.session, user.id, event_id)
        if created:
            logger.info(f"User {user.id} checked in to event {event_id}")
        return checkin, created

    async def list_checkins(self, user: User, event_id: Optional[uuid.UUID] = None) -> List[CheckIn]:
        return await db_list_checkins_for_user(self.session, user.id, event_id)
