"""
Per-user viewer session.

Caches what the app has fetched (live events, archived events, friends,
check-ins) and runs the event rules against it. One session per logged-in
user; nothing here is shared between users.
"""
import asyncio
from datetime import datetime, timezone
from typing import Dict, List, Optional, Set

from partyfinder.client.api import PartyFinderClient
from partyfinder.core.config import settings
from partyfinder.core.logging import logger
from partyfinder.domain import (
    AttendanceResolver,
    CheckInGuard,
    CheckInState,
    Coordinates,
    DistanceUnit,
    filter_live_events,
    has_ended,
    is_host,
    merge_archived,
    order_archived_events,
)
from partyfinder.domain.errors import ApiError, LoginRequired, PermissionDenied
from partyfinder.schemas import ArchivedRole, EventOut, EventUpdate


class ViewerSession:
    """
    Args:
        client: API client, logged in or anonymous
        coords: Last known device position; ``None`` when unavailable
        distance_unit: Unit used in user-facing distance messages
        include_own_friends_events: Show the viewer's own friends-only
            events in the live list
    """

    def __init__(
        self,
        client: PartyFinderClient,
        coords: Optional[Coordinates] = None,
        distance_unit: DistanceUnit = DistanceUnit.km,
        include_own_friends_events: Optional[bool] = None,
        checkin_radius_m: Optional[float] = None,
    ):
        self.client = client
        self.coords = coords
        self.distance_unit = distance_unit
        if include_own_friends_events is None:
            include_own_friends_events = settings.SHOW_OWN_FRIENDS_EVENTS
        self.include_own_friends_events = include_own_friends_events

        self.events: Dict[str, EventOut] = {}
        self.archived_events: List[EventOut] = []
        self.archived_attended_ids: Set[str] = set()
        self.friend_ids: Set[str] = set()

        self.guard = CheckInGuard(
            submit=self.client.submit_checkin,
            radius_m=checkin_radius_m or settings.CHECKIN_RADIUS_METERS,
            on_checked_in=self.refresh_event,
        )

    @property
    def viewer_id(self) -> Optional[str]:
        user = self.client.user
        return str(user.id) if user else None

    def update_location(self, coords: Optional[Coordinates]) -> None:
        self.coords = coords

    async def load(self) -> None:
        """Fetch friends and check-ins for a logged-in viewer."""
        if not self.client.is_authenticated:
            self.friend_ids = set()
            return
        await asyncio.gather(self.refresh_friends(), self.refresh_checkins())

    async def refresh_friends(self) -> Set[str]:
        friends = await self.client.list_friends()
        self.friend_ids = {str(f.user_id) for f in friends}
        return self.friend_ids

    async def refresh_checkins(self) -> None:
        checkins = await self.client.list_checkins()
        self.guard.seed(c.event_id for c in checkins)

    async def refresh_events(self) -> List[EventOut]:
        events = await self.client.list_events()
        self.events = {str(event.id): event for event in events}
        return events

    async def refresh_event(self, event_id) -> EventOut:
        """Re-read one event, e.g. to pick up a new ``checkin_count``."""
        event = await self.client.get_event(event_id)
        self.events[str(event.id)] = event
        return event

    def live_events(self, now: Optional[datetime] = None) -> List[EventOut]:
        """Live events from the last snapshot, filtered for this viewer."""
        return filter_live_events(
            self.events.values(),
            now or datetime.now(timezone.utc),
            friend_ids=self.friend_ids,
            viewer_id=self.viewer_id,
            coords=self.coords,
            include_own_friends_events=self.include_own_friends_events,
        )

    async def fetch_live_events(self, now: Optional[datetime] = None) -> List[EventOut]:
        await self.refresh_events()
        return self.live_events(now)

    async def fetch_archived_events(self) -> List[EventOut]:
        """
        Merge the hosted and attended archives, most recently ended first.

        Anonymous viewers have no archive.
        """
        if not self.client.is_authenticated:
            self.archived_events = []
            self.archived_attended_ids = set()
            return []

        hosted, attended = await asyncio.gather(
            self.client.list_archived(ArchivedRole.host),
            self.client.list_archived(ArchivedRole.attended),
            return_exceptions=True,
        )
        if isinstance(hosted, ApiError):
            logger.warning(f"Hosted archive unavailable: {hosted}")
            hosted = []
        if isinstance(attended, ApiError):
            logger.warning(f"Attended archive unavailable: {attended}")
            attended = []
        for result in (hosted, attended):
            if isinstance(result, BaseException):
                raise result

        self.archived_attended_ids = {str(event.id) for event in attended}
        self.archived_events = order_archived_events(merge_archived(hosted, attended))
        return self.archived_events

    # Actions

    def checkin_state(self, event_id) -> CheckInState:
        return self.guard.state(event_id)

    async def check_in(self, event: EventOut, now: Optional[datetime] = None) -> CheckInState:
        return await self.guard.check_in(event, self.coords, now, self.distance_unit)

    def _require_host(self, event: EventOut, action: str) -> None:
        if not self.client.is_authenticated:
            raise LoginRequired(f"Please login to {action} events")
        if not is_host(event, self.viewer_id):
            raise PermissionDenied(f"You can only {action} your own events")

    async def update_event(
        self, event: EventOut, changes: EventUpdate, now: Optional[datetime] = None
    ) -> EventOut:
        """Edit an event the viewer hosts; only live events can change."""
        self._require_host(event, "edit")
        if event.is_archived:
            raise PermissionDenied("Archived events can no longer be edited")
        if not event.is_active or has_ended(event, now or datetime.now(timezone.utc)):
            raise PermissionDenied("Only live events can be edited")
        updated = await self.client.update_event(event.id, changes)
        self.events[str(updated.id)] = updated
        return updated

    async def archive_event(self, event: EventOut) -> EventOut:
        self._require_host(event, "end")
        archived = await self.client.archive_event(event.id)
        self.events.pop(str(archived.id), None)
        return archived

    async def delete_event(self, event: EventOut) -> None:
        self._require_host(event, "delete")
        await self.client.delete_event(event.id)
        self.events.pop(str(event.id), None)

    def attendance_for(self, event: EventOut) -> AttendanceResolver:
        """Media permissions for an archived event; call ``verify()`` on the result."""
        event_id = str(event.id)
        known = event_id in self.archived_attended_ids or self.guard.is_checked_in(event_id)
        return AttendanceResolver(
            event,
            viewer_id=self.viewer_id,
            has_token=self.client.is_authenticated,
            known_attendee=known,
            lookup=self.client.has_checked_in,
        )
