"""
Async REST client for the PartyFinder API.

Every mutating call needs a bearer token. Without one the client raises
``LoginRequired`` locally and never issues the request.
"""
from typing import Any, Dict, List, Optional, Union
from uuid import UUID

import httpx

from partyfinder.core.config import settings
from partyfinder.core.logging import logger
from partyfinder.domain.errors import ApiError, LoginRequired
from partyfinder.schemas import (
    ArchivedRole,
    CheckInOut,
    EventCreate,
    EventMediaOut,
    EventOut,
    EventUpdate,
    FriendOut,
    TokenResponse,
    UserOut,
)

EventId = Union[str, UUID]


def error_message(response: httpx.Response, fallback: str) -> str:
    """Prefer the server's ``error`` field, then ``detail``, then ``fallback``."""
    try:
        body = response.json()
    except ValueError:
        return fallback
    if isinstance(body, dict):
        for key in ("error", "detail"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    return fallback


class PartyFinderClient:
    """
    Thin wrapper around ``httpx.AsyncClient``.

    Args:
        base_url: API root, e.g. ``https://partyfinder.example.com``
        token: Bearer access token, if the user is logged in
        transport: Optional httpx transport (used to talk to an in-process app)
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.API_BASE_URL).rstrip("/")
        self.token = token
        self.user: Optional[UserOut] = None
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout or settings.HTTP_TIMEOUT_SECONDS,
            transport=transport,
        )

    async def __aenter__(self) -> "PartyFinderClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    def _auth_headers(self, required: bool) -> Dict[str, str]:
        if not self.token:
            if required:
                raise LoginRequired()
            return {}
        return {"Authorization": f"Bearer {self.token}"}

    async def _request(
        self,
        method: str,
        path: str,
        fallback: str,
        auth: bool = True,
        ok_statuses: tuple = (),
        **kwargs: Any,
    ) -> httpx.Response:
        headers = self._auth_headers(required=auth)
        try:
            response = await self._http.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"{method} {path} failed: {e}")
            raise ApiError(fallback) from e

        if response.is_success or response.status_code in ok_statuses:
            return response

        message = error_message(response, fallback)
        logger.warning(f"{method} {path} returned {response.status_code}: {message}")
        raise ApiError(message, status_code=response.status_code)

    @staticmethod
    def _json(response: httpx.Response, fallback: str) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise ApiError(fallback, status_code=response.status_code) from e

    # Auth

    async def login(self, email: str, password: str) -> UserOut:
        fallback = "Login failed"
        response = await self._request(
            "POST", "/api/auth/login", fallback, auth=False, json={"email": email, "password": password}
        )
        data = TokenResponse.model_validate(self._json(response, fallback))
        self.token = data.access_token
        self.user = data.user
        return data.user

    async def register(self, email: str, password: str, display_name: Optional[str] = None) -> UserOut:
        fallback = "Registration failed"
        response = await self._request(
            "POST",
            "/api/auth/register",
            fallback,
            auth=False,
            json={"email": email, "password": password, "display_name": display_name},
        )
        return UserOut.model_validate(self._json(response, fallback))

    async def logout(self) -> None:
        if self.token:
            await self._request("POST", "/api/auth/logout", "Logout failed")
        self.token = None
        self.user = None

    # Events

    async def list_events(self) -> List[EventOut]:
        fallback = "Failed to load events"
        response = await self._request("GET", "/api/events", fallback, auth=False)
        return [EventOut.model_validate(item) for item in self._json(response, fallback)]

    async def get_event(self, event_id: EventId) -> EventOut:
        fallback = "Failed to load event"
        response = await self._request("GET", f"/api/events/{event_id}", fallback, auth=False)
        return EventOut.model_validate(self._json(response, fallback))

    async def list_archived(self, role: ArchivedRole) -> List[EventOut]:
        fallback = "Failed to load archived events"
        response = await self._request(
            "GET", "/api/events/archived", fallback, params={"role": ArchivedRole(role).value}
        )
        return [EventOut.model_validate(item) for item in self._json(response, fallback)]

    async def create_event(self, payload: EventCreate) -> EventOut:
        fallback = "Failed to create event"
        response = await self._request("POST", "/api/events", fallback, json=payload.model_dump(mode="json"))
        return EventOut.model_validate(self._json(response, fallback))

    async def update_event(self, event_id: EventId, payload: EventUpdate) -> EventOut:
        fallback = "Failed to update event"
        response = await self._request(
            "PUT", f"/api/events/{event_id}", fallback, json=payload.model_dump(mode="json", exclude_unset=True)
        )
        return EventOut.model_validate(self._json(response, fallback))

    async def archive_event(self, event_id: EventId) -> EventOut:
        fallback = "Failed to archive event"
        response = await self._request("POST", f"/api/events/{event_id}/archive", fallback)
        return EventOut.model_validate(self._json(response, fallback))

    async def delete_event(self, event_id: EventId) -> None:
        await self._request("DELETE", f"/api/events/{event_id}", "Failed to delete event")

    # Check-ins

    async def submit_checkin(self, event_id: EventId) -> bool:
        """
        Record a check-in.

        Returns:
            True if a new record was created, False if the user was
            already checked in (which still counts as success)
        """
        fallback = "Failed to check in"
        response = await self._request(
            "POST", "/api/checkins", fallback, ok_statuses=(409,), json={"event_id": str(event_id)}
        )
        if response.status_code == 409:
            return False
        checkin = CheckInOut.model_validate(self._json(response, fallback))
        return not checkin.already_checked_in

    async def list_checkins(self, event_id: Optional[EventId] = None) -> List[CheckInOut]:
        fallback = "Failed to load check-ins"
        params = {"event_id": str(event_id)} if event_id else None
        response = await self._request("GET", "/api/checkins", fallback, params=params)
        return [CheckInOut.model_validate(item) for item in self._json(response, fallback)]

    async def has_checked_in(self, event_id: EventId) -> bool:
        checkins = await self.list_checkins(event_id)
        return any(str(c.event_id) == str(event_id) for c in checkins)

    # Friends

    async def list_friends(self) -> List[FriendOut]:
        fallback = "Failed to load friends"
        response = await self._request("GET", "/api/friends", fallback)
        return [FriendOut.model_validate(item) for item in self._json(response, fallback)]

    async def add_friend(self, user_id: EventId) -> FriendOut:
        fallback = "Failed to add friend"
        response = await self._request("POST", "/api/friends", fallback, json={"user_id": str(user_id)})
        return FriendOut.model_validate(self._json(response, fallback))

    async def remove_friend(self, user_id: EventId) -> None:
        await self._request("DELETE", f"/api/friends/{user_id}", "Failed to remove friend")

    # Media

    async def list_media(self, event_id: EventId) -> List[EventMediaOut]:
        fallback = "Failed to load media"
        response = await self._request("GET", f"/api/events/{event_id}/media", fallback, auth=False)
        return [EventMediaOut.model_validate(item) for item in self._json(response, fallback)]

    async def upload_media(
        self,
        event_id: EventId,
        content: bytes,
        filename: str,
        content_type: str,
        caption: Optional[str] = None,
    ) -> EventMediaOut:
        fallback = "Could not upload media"
        data = {"caption": caption} if caption else None
        response = await self._request(
            "POST",
            f"/api/events/{event_id}/media",
            fallback,
            files={"media": (filename, content, content_type)},
            data=data,
        )
        return EventMediaOut.model_validate(self._json(response, fallback))

    async def delete_media(self, event_id: EventId, media_id: EventId) -> None:
        await self._request("DELETE", f"/api/events/{event_id}/media/{media_id}", "Could not delete media")

    def media_file_url(self, event_id: EventId, media_id: EventId) -> str:
        return f"{self.base_url}/api/events/{event_id}/media/{media_id}/file"
