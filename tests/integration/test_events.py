"""
Integration tests for events endpoints.
Tests event creation, ownership checks, archiving and the archived listings.
"""
import uuid
import pytest
from httpx import AsyncClient
from datetime import datetime, timedelta, timezone

from partyfinder.schemas import Visibility


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.mark.integration
@pytest.mark.asyncio
class TestEventEndpoints:
    """Test event API endpoints."""

    async def test_create_event(self, client: AsyncClient, host_token, host_user):
        """Test creating an event as any logged-in user."""
        start = datetime.now(timezone.utc) + timedelta(hours=2)
        response = await client.post(
            "/api/events",
            headers=bearer(host_token),
            json={
                "title": "Halloween Bash",
                "description": "Costumes required",
                "host_type": "fraternity",
                "location_lat": 42.0267,
                "location_lng": -93.6465,
                "start_time": start.isoformat(),
                "end_time": (start + timedelta(hours=4)).isoformat(),
                "tags": ["costume", "dj"],
                "is_byob": True,
            },
        )

        assert response.status_code == 201
        data = response.json()
        assert data["title"] == "Halloween Bash"
        assert data["created_by"] == str(host_user.id)
        assert data["visibility"] == "everyone"
        assert data["tags"] == ["costume", "dj"]
        assert data["checkin_count"] == 0
        assert data["is_archived"] is False

    async def test_create_event_requires_login(self, client: AsyncClient):
        """Test that anonymous users cannot create events."""
        response = await client.post(
            "/api/events",
            json={"title": "Party", "location_lat": 0, "location_lng": 0, "start_time": "2030-01-01T20:00:00Z"},
        )

        assert response.status_code in (401, 403)

    async def test_create_event_end_before_start(self, client: AsyncClient, host_token):
        """Test that the time window is validated."""
        response = await client.post(
            "/api/events",
            headers=bearer(host_token),
            json={
                "title": "Backwards",
                "location_lat": 42.0,
                "location_lng": -93.6,
                "start_time": "2030-01-01T22:00:00Z",
                "end_time": "2030-01-01T20:00:00Z",
            },
        )

        assert response.status_code == 422
        assert "end_time" in response.json()["error"]

    async def test_create_event_bad_coordinates(self, client: AsyncClient, host_token):
        """Test that coordinates are range checked."""
        response = await client.post(
            "/api/events",
            headers=bearer(host_token),
            json={"title": "Nowhere", "location_lat": 120, "location_lng": 0, "start_time": "2030-01-01T20:00:00Z"},
        )

        assert response.status_code == 422

    async def test_list_events_excludes_archived(self, client: AsyncClient, live_event, archived_event):
        """Test that the live snapshot only holds non-archived events."""
        response = await client.get("/api/events")

        assert response.status_code == 200
        ids = [e["id"] for e in response.json()]
        assert ids == [str(live_event.id)]

    async def test_get_event(self, client: AsyncClient, live_event):
        """Test fetching a single event."""
        response = await client.get(f"/api/events/{live_event.id}")

        assert response.status_code == 200
        data = response.json()
        assert data["id"] == str(live_event.id)
        assert data["start_time"].endswith(("Z", "+00:00"))

    async def test_get_event_not_found(self, client: AsyncClient):
        """Test that unknown events answer 404 with an error message."""
        response = await client.get(f"/api/events/{uuid.uuid4()}")

        assert response.status_code == 404
        assert response.json()["error"] == "Event not found"

    async def test_update_event_as_owner(self, client: AsyncClient, host_token, live_event):
        """Test that the creator can edit a live event."""
        response = await client.put(
            f"/api/events/{live_event.id}",
            headers=bearer(host_token),
            json={"title": "Renamed Party", "visibility": "friends"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["title"] == "Renamed Party"
        assert data["visibility"] == "friends"
        assert data["description"] == live_event.description

    async def test_update_event_as_other_user(self, client: AsyncClient, guest_token, live_event):
        """Test that other users cannot edit the event."""
        response = await client.put(
            f"/api/events/{live_event.id}",
            headers=bearer(guest_token),
            json={"title": "Hijacked"},
        )

        assert response.status_code == 403
        assert response.json()["error"] == "You can only edit your own events"

    async def test_update_event_bad_window(self, client: AsyncClient, host_token, live_event):
        """Test that an update cannot end the event before it starts."""
        end = live_event.start_time - timedelta(hours=1)
        response = await client.put(
            f"/api/events/{live_event.id}",
            headers=bearer(host_token),
            json={"end_time": end.isoformat()},
        )

        assert response.status_code == 400

    async def test_update_archived_event(self, client: AsyncClient, host_token, archived_event):
        """Test that archived events are frozen."""
        response = await client.put(
            f"/api/events/{archived_event.id}",
            headers=bearer(host_token),
            json={"title": "Too late"},
        )

        assert response.status_code == 409

    async def test_update_null_visibility_means_everyone(self, client: AsyncClient, host_token, make_event, host_user):
        """Test that clearing visibility falls back to everyone."""
        event = await make_event(host_user, visibility=Visibility.friends)
        response = await client.put(
            f"/api/events/{event.id}",
            headers=bearer(host_token),
            json={"visibility": None},
        )

        assert response.status_code == 200
        assert response.json()["visibility"] == "everyone"

    @pytest.mark.parametrize("field", ["title", "host_type", "location_lat", "location_lng", "is_byob"])
    async def test_update_null_required_field(self, client: AsyncClient, host_token, live_event, field):
        """Test that required fields cannot be cleared."""
        response = await client.put(
            f"/api/events/{live_event.id}",
            headers=bearer(host_token),
            json={field: None},
        )

        assert response.status_code == 422

        response = await client.get(f"/api/events/{live_event.id}")
        assert response.json()["title"] == live_event.title

    async def test_update_deactivated_event(self, client: AsyncClient, host_token, live_event):
        """Test that a deleted event can no longer be edited."""
        await client.delete(f"/api/events/{live_event.id}", headers=bearer(host_token))

        response = await client.put(
            f"/api/events/{live_event.id}",
            headers=bearer(host_token),
            json={"title": "Back again"},
        )

        assert response.status_code == 409
        assert response.json()["error"] == "Only live events can be edited"

    async def test_update_ended_event(self, client: AsyncClient, host_token, make_event, host_user):
        """Test that an event past its end time can no longer be edited."""
        now = datetime.now(timezone.utc)
        event = await make_event(host_user, start_time=now - timedelta(hours=4), end_time=now - timedelta(hours=1))
        response = await client.put(
            f"/api/events/{event.id}",
            headers=bearer(host_token),
            json={"title": "After hours"},
        )

        assert response.status_code == 409

    async def test_delete_event_deactivates(self, client: AsyncClient, host_token, live_event):
        """Test that deleting hides the event without removing it."""
        response = await client.delete(f"/api/events/{live_event.id}", headers=bearer(host_token))
        assert response.status_code == 204

        response = await client.get(f"/api/events/{live_event.id}")
        assert response.status_code == 200
        assert response.json()["is_active"] is False

    async def test_delete_event_as_other_user(self, client: AsyncClient, guest_token, live_event):
        """Test that only the creator can delete."""
        response = await client.delete(f"/api/events/{live_event.id}", headers=bearer(guest_token))

        assert response.status_code == 403


@pytest.mark.integration
@pytest.mark.asyncio
class TestArchiveEndpoints:
    """Test ending events and the archived listings."""

    async def test_archive_event(self, client: AsyncClient, host_token, live_event):
        """Test that archiving ends the event for everyone."""
        response = await client.post(f"/api/events/{live_event.id}/archive", headers=bearer(host_token))

        assert response.status_code == 200
        data = response.json()
        assert data["is_archived"] is True
        assert data["archived_at"] is not None

        listing = await client.get("/api/events")
        assert listing.json() == []

    async def test_archive_is_idempotent(self, client: AsyncClient, host_token, live_event):
        """Test that archiving twice keeps the first timestamp."""
        first = await client.post(f"/api/events/{live_event.id}/archive", headers=bearer(host_token))
        second = await client.post(f"/api/events/{live_event.id}/archive", headers=bearer(host_token))

        assert second.status_code == 200
        assert second.json()["archived_at"] == first.json()["archived_at"]

    async def test_archive_as_other_user(self, client: AsyncClient, guest_token, live_event):
        """Test that only the creator can end an event."""
        response = await client.post(f"/api/events/{live_event.id}/archive", headers=bearer(guest_token))

        assert response.status_code == 403
        assert response.json()["error"] == "You can only end your own events"

    async def test_archived_hosted(self, client: AsyncClient, host_token, archived_event, make_event, host_user):
        """Test the host archive, most recently ended first."""
        now = datetime.now(timezone.utc)
        recent = await make_event(
            host_user,
            title="Yesterday",
            start_time=now - timedelta(days=1, hours=4),
            end_time=now - timedelta(days=1),
            is_archived=True,
            archived_at=now - timedelta(days=1),
        )

        response = await client.get("/api/events/archived?role=host", headers=bearer(host_token))

        assert response.status_code == 200
        data = response.json()
        assert [e["id"] for e in data] == [str(recent.id), str(archived_event.id)]
        assert all(e["distance_km"] is None for e in data)

    async def test_archived_attended(self, client: AsyncClient, guest_token, archived_event, guest_checkin):
        """Test the attended archive."""
        response = await client.get("/api/events/archived?role=attended", headers=bearer(guest_token))

        assert response.status_code == 200
        data = response.json()
        assert [e["id"] for e in data] == [str(archived_event.id)]
        assert data[0]["checkin_count"] == 1

    async def test_archived_hosted_empty_for_guest(self, client: AsyncClient, guest_token, archived_event):
        """Test that guests host nothing."""
        response = await client.get("/api/events/archived?role=host", headers=bearer(guest_token))

        assert response.json() == []

    async def test_archived_bad_role(self, client: AsyncClient, guest_token):
        """Test that unknown roles are rejected."""
        response = await client.get("/api/events/archived?role=bouncer", headers=bearer(guest_token))

        assert response.status_code == 422

    async def test_archived_requires_login(self, client: AsyncClient):
        """Test that archives are private."""
        response = await client.get("/api/events/archived?role=host")

        assert response.status_code in (401, 403)
