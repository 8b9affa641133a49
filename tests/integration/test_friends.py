"""
Integration tests for friendship endpoints.
"""
import uuid
import pytest
from httpx import AsyncClient


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.mark.integration
@pytest.mark.asyncio
class TestFriendEndpoints:
    """Test friend API endpoints."""

    async def test_add_friend(self, client: AsyncClient, guest_token, host_user):
        """Test adding a friend."""
        response = await client.post(
            "/api/friends", headers=bearer(guest_token), json={"user_id": str(host_user.id)}
        )

        assert response.status_code == 201
        data = response.json()
        assert data["user_id"] == str(host_user.id)
        assert data["email"] == host_user.email

    async def test_friendship_is_mutual(self, client: AsyncClient, guest_token, host_token, host_user, guest_user):
        """Test that both users see each other."""
        await client.post("/api/friends", headers=bearer(guest_token), json={"user_id": str(host_user.id)})

        mine = await client.get("/api/friends", headers=bearer(guest_token))
        theirs = await client.get("/api/friends", headers=bearer(host_token))

        assert [f["user_id"] for f in mine.json()] == [str(host_user.id)]
        assert [f["user_id"] for f in theirs.json()] == [str(guest_user.id)]

    async def test_add_friend_twice(self, client: AsyncClient, host_token, friend_user):
        """Test that re-adding a friend is harmless."""
        response = await client.post(
            "/api/friends", headers=bearer(host_token), json={"user_id": str(friend_user.id)}
        )
        assert response.status_code == 201

        listing = await client.get("/api/friends", headers=bearer(host_token))
        assert len(listing.json()) == 1

    async def test_add_self(self, client: AsyncClient, guest_token, guest_user):
        """Test that users cannot befriend themselves."""
        response = await client.post(
            "/api/friends", headers=bearer(guest_token), json={"user_id": str(guest_user.id)}
        )

        assert response.status_code == 400

    async def test_add_unknown_user(self, client: AsyncClient, guest_token):
        """Test that unknown users answer 404."""
        response = await client.post(
            "/api/friends", headers=bearer(guest_token), json={"user_id": str(uuid.uuid4())}
        )

        assert response.status_code == 404
        assert response.json()["error"] == "User not found"

    async def test_remove_friend(self, client: AsyncClient, friend_token, host_token, host_user, friend_user):
        """Test that removing a friend ends it for both sides."""
        response = await client.delete(f"/api/friends/{host_user.id}", headers=bearer(friend_token))
        assert response.status_code == 204

        theirs = await client.get("/api/friends", headers=bearer(host_token))
        assert theirs.json() == []

        again = await client.delete(f"/api/friends/{host_user.id}", headers=bearer(friend_token))
        assert again.status_code == 404
