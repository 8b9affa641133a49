"""Event rules shared by the API service and the client session."""
from partyfinder.domain.attendance import (
    AttendanceResolver,
    ContributionStatus,
    can_contribute_media,
    can_delete_media,
    can_view_media,
    is_host,
)
from partyfinder.domain.checkin import CHECKIN_RADIUS_METERS, CheckInGuard, CheckInState, check_preconditions
from partyfinder.domain.geo import Coordinates, DistanceUnit, distance_between, format_distance, haversine_km
from partyfinder.domain.lifecycle import (
    filter_live_events,
    has_ended,
    has_started,
    is_live_visible,
    merge_archived,
    order_archived_events,
)

__all__ = [
    "AttendanceResolver",
    "CHECKIN_RADIUS_METERS",
    "CheckInGuard",
    "CheckInState",
    "ContributionStatus",
    "Coordinates",
    "DistanceUnit",
    "can_contribute_media",
    "can_delete_media",
    "can_view_media",
    "check_preconditions",
    "distance_between",
    "filter_live_events",
    "format_distance",
    "has_ended",
    "has_started",
    "haversine_km",
    "is_host",
    "is_live_visible",
    "merge_archived",
    "order_archived_events",
]
