"""
Who may view, contribute to, or prune the media gallery of an archived event.

Hosts can always contribute. Anyone else has to be a verified attendee,
and until that has been confirmed contribution stays disabled.
"""
from enum import Enum
from typing import Awaitable, Callable, Optional

from partyfinder.core.logging import logger
from partyfinder.domain.errors import ApiError
from partyfinder.schemas import EventOut

AttendanceLookup = Callable[[str], Awaitable[bool]]


class ContributionStatus(str, Enum):
    allowed = "allowed"
    verifying = "verifying"
    denied = "denied"


def is_host(event: EventOut, viewer_id) -> bool:
    return viewer_id is not None and str(viewer_id) == str(event.created_by)


def can_view_media(event: EventOut, viewer_id, is_attendee: bool, public_media: bool = True) -> bool:
    """
    Args:
        public_media: Let anyone list an event's media. When off, only the
            host and attendees may.
    """
    if is_host(event, viewer_id):
        return True
    return public_media or is_attendee


def can_contribute_media(event: EventOut, viewer_id, is_attendee: bool, has_token: bool) -> bool:
    if not has_token or not event.is_archived:
        return False
    return is_host(event, viewer_id) or is_attendee


def can_delete_media(event: EventOut, viewer_id) -> bool:
    return is_host(event, viewer_id)


class AttendanceResolver:
    """
    Contribution permission for one viewer on one archived event.

    ``known_attendee`` seeds the answer from an already loaded list (the
    ``role=attended`` archive or the user's check-ins). Otherwise
    ``verify()`` asks ``lookup`` and the status stays ``verifying`` until it
    answers.
    """

    def __init__(
        self,
        event: EventOut,
        viewer_id=None,
        has_token: bool = False,
        known_attendee: bool = False,
        lookup: Optional[AttendanceLookup] = None,
    ):
        self.event = event
        self.viewer_id = viewer_id
        self.has_token = has_token
        self.is_attendee = known_attendee
        self.verifying = False
        self._lookup = lookup

    @property
    def is_host(self) -> bool:
        return is_host(self.event, self.viewer_id)

    @property
    def can_contribute(self) -> bool:
        if self.verifying:
            return False
        return can_contribute_media(self.event, self.viewer_id, self.is_attendee, self.has_token)

    @property
    def can_delete(self) -> bool:
        return can_delete_media(self.event, self.viewer_id)

    @property
    def status(self) -> ContributionStatus:
        if self.verifying:
            return ContributionStatus.verifying
        if self.can_contribute:
            return ContributionStatus.allowed
        return ContributionStatus.denied

    def needs_verification(self) -> bool:
        return (
            self.has_token
            and self.event.is_archived
            and not self.is_host
            and not self.is_attendee
            and self._lookup is not None
        )

    async def verify(self) -> ContributionStatus:
        if not self.needs_verification():
            return self.status

        self.verifying = True
        try:
            self.is_attendee = bool(await self._lookup(str(self.event.id)))
        except ApiError as e:
            logger.warning(f"Attendance verification failed for event {self.event.id}: {e}")
        finally:
            self.verifying = False
        return self.status
