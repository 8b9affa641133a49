"""
Event lifecycle and visibility rules.

Decides which events belong on the live map/list for a given viewer, how
they are ordered, and how archived events are presented. Every function
here is pure: the same events, ``now`` and viewer context always give the
same answer.
"""
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Set

from partyfinder.domain.geo import Coordinates, haversine_km
from partyfinder.schemas import EventOut, Visibility

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def is_archived(event: EventOut) -> bool:
    return bool(event.is_archived)


def has_started(event: EventOut, now: datetime) -> bool:
    return as_utc(now) >= as_utc(event.start_time)


def has_ended(event: EventOut, now: datetime) -> bool:
    """Open-ended events never end on time grounds."""
    if event.end_time is None:
        return False
    return as_utc(event.end_time) <= as_utc(now)


def is_live_visible(
    event: EventOut,
    now: datetime,
    friend_ids: Set[str],
    viewer_id: Optional[str] = None,
    include_own_friends_events: bool = False,
) -> bool:
    """
    Whether ``event`` belongs on the viewer's live list at ``now``.

    Args:
        event: Event snapshot from the API
        now: Current instant
        friend_ids: Ids of the viewer's friends, as strings
        viewer_id: The viewer's user id, if authenticated
        include_own_friends_events: Also show the viewer's own
            friends-only events. Off by default, so a creator is not
            treated as their own friend.
    """
    if not event.is_active:
        return False
    if is_archived(event):
        return False
    if has_ended(event, now):
        return False

    visibility = event.visibility or Visibility.everyone
    if visibility == Visibility.friends:
        creator = str(event.created_by)
        if creator in friend_ids:
            return True
        return include_own_friends_events and viewer_id is not None and str(viewer_id) == creator

    return True


def with_distance(event: EventOut, coords: Optional[Coordinates]) -> EventOut:
    distance = None
    if coords is not None:
        distance = haversine_km(coords.latitude, coords.longitude, event.location_lat, event.location_lng)
    return event.model_copy(update={"distance_km": distance})


def filter_live_events(
    events: Iterable[EventOut],
    now: datetime,
    friend_ids: Iterable[str] = (),
    viewer_id: Optional[str] = None,
    coords: Optional[Coordinates] = None,
    include_own_friends_events: bool = False,
) -> List[EventOut]:
    """
    Live events for a viewer, soonest first, each annotated with its
    distance from ``coords`` (``None`` when the location is unknown).

    Sorting is stable, so events starting at the same instant keep the
    order the server returned them in.
    """
    friends = {str(f) for f in friend_ids}
    viewer = str(viewer_id) if viewer_id is not None else None

    live = [
        event for event in events
        if is_live_visible(event, now, friends, viewer, include_own_friends_events)
    ]
    live.sort(key=lambda event: as_utc(event.start_time))
    return [with_distance(event, coords) for event in live]


def order_archived_events(events: Iterable[EventOut]) -> List[EventOut]:
    """Most recently ended first; events without ``archived_at`` go last."""
    decorated = [event.model_copy(update={"distance_km": None}) for event in events]
    decorated.sort(key=lambda event: as_utc(event.archived_at) or _OLDEST, reverse=True)
    return decorated


def merge_archived(hosted: Iterable[EventOut], attended: Iterable[EventOut]) -> List[EventOut]:
    """Union of both archived listings, de-duplicated by id (first one wins)."""
    merged = {}
    for event in list(hosted) + list(attended):
        merged.setdefault(str(event.id), event)
    return list(merged.values())
