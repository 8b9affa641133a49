"""
Geofenced check-in guard.

A check-in moves ``not_checked_in -> pending -> checked_in`` for each event.
``pending`` only lasts while the submission is in flight; a failed
submission drops back to ``not_checked_in`` so the user can try again.
Once ``checked_in`` the event stays that way for the rest of the session.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Awaitable, Callable, Iterable, Optional, Set

from partyfinder.core.logging import logger
from partyfinder.domain.errors import ApiError, LocationUnavailable, TooEarly, TooFar
from partyfinder.domain.geo import Coordinates, DistanceUnit, format_distance, haversine_km
from partyfinder.domain.lifecycle import has_started
from partyfinder.schemas import EventOut

CHECKIN_RADIUS_METERS = 100.0

SubmitCheckIn = Callable[[str], Awaitable[object]]
CheckedInHook = Callable[[str], Awaitable[object]]


class CheckInState(str, Enum):
    not_checked_in = "not_checked_in"
    pending = "pending"
    checked_in = "checked_in"


def check_preconditions(
    event: EventOut,
    coords: Optional[Coordinates],
    now: datetime,
    radius_m: float = CHECKIN_RADIUS_METERS,
    unit: DistanceUnit = DistanceUnit.km,
) -> float:
    """
    Validate a check-in attempt locally.

    Returns:
        Distance to the event in kilometres

    Raises:
        LocationUnavailable: The viewer's position is unknown
        TooEarly: The event has not started yet
        TooFar: The viewer is outside the geofence
    """
    if coords is None:
        raise LocationUnavailable()

    if not has_started(event, now):
        raise TooEarly()

    distance_km = haversine_km(coords.latitude, coords.longitude, event.location_lat, event.location_lng)
    if distance_km * 1000 > radius_m:
        raise TooFar(
            distance_km,
            f"You must be within {radius_m:g}m of the event to check in. "
            f"You are currently {format_distance(distance_km, unit)} away.",
        )
    return distance_km


class CheckInGuard:
    """
    Per-session check-in state for one user.

    Args:
        submit: Coroutine that records the check-in remotely. It must treat
            "already checked in" as success and raise ``ApiError`` for
            anything else that goes wrong.
        radius_m: Geofence radius around the event
        on_checked_in: Coroutine awaited after a successful check-in, used
            to refresh the event's ``checkin_count``
    """

    def __init__(
        self,
        submit: SubmitCheckIn,
        radius_m: float = CHECKIN_RADIUS_METERS,
        on_checked_in: Optional[CheckedInHook] = None,
    ):
        self._submit = submit
        self._on_checked_in = on_checked_in
        self.radius_m = radius_m
        self._checked_in: Set[str] = set()
        self._pending: Set[str] = set()

    @property
    def checked_in_ids(self) -> frozenset:
        return frozenset(self._checked_in)

    def is_checked_in(self, event_id) -> bool:
        return str(event_id) in self._checked_in

    def state(self, event_id) -> CheckInState:
        key = str(event_id)
        if key in self._checked_in:
            return CheckInState.checked_in
        if key in self._pending:
            return CheckInState.pending
        return CheckInState.not_checked_in

    def seed(self, event_ids: Iterable) -> None:
        """Mark events already known to be checked in, e.g. from ``GET /api/checkins``."""
        self._checked_in.update(str(event_id) for event_id in event_ids)

    async def check_in(
        self,
        event: EventOut,
        coords: Optional[Coordinates],
        now: Optional[datetime] = None,
        unit: DistanceUnit = DistanceUnit.km,
    ) -> CheckInState:
        key = str(event.id)
        current = self.state(key)
        if current is not CheckInState.not_checked_in:
            logger.debug(f"Check-in for event {key} ignored, state is {current.value}")
            return current

        now = now or datetime.now(timezone.utc)
        check_preconditions(event, coords, now, self.radius_m, unit)

        self._pending.add(key)
        try:
            await self._submit(key)
        except Exception:
            logger.warning(f"Check-in for event {key} failed, reverting to not_checked_in")
            raise
        else:
            self._checked_in.add(key)
            logger.info(f"Checked in to event {key}")
        finally:
            self._pending.discard(key)

        if self._on_checked_in is not None:
            try:
                await self._on_checked_in(key)
            except ApiError as e:
                logger.warning(f"Could not refresh check-in count for event {key}: {e}")

        return CheckInState.checked_in
