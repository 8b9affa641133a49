import uuid
from typing import List
from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from partyfinder.core.logging import logger
from partyfinder.db.models import User
from partyfinder.db.repositories import (
    add_friendship as db_add_friendship,
    get_user as db_get_user,
    list_friends as db_list_friends,
    remove_friendship as db_remove_friendship,
)
from partyfinder.schemas import FriendOut


class FriendService:
    """Direct friendships, used to gate friends-only events."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_friends(self, user: User) -> List[FriendOut]:
        rows = await db_list_friends(self.session, user.id)
        return [
            FriendOut(
                user_id=friend.id,
                email=friend.email,
                display_name=friend.display_name,
                created_at=friendship.created_at,
            )
            for friend, friendship in rows
        ]

    async def add_friend(self, user: User, friend_id: uuid.UUID) -> FriendOut:
        if friend_id == user.id:
            raise HTTPException(status_code=400, detail="You cannot add yourself as a friend")

        friend = await db_get_user(self.session, friend_id)
        if not friend:
            raise HTTPException(status_code=404, detail="User not found")

        await db_add_friendship(self.session, user.id, friend.id)
        logger.info(f"User {user.id} is now friends with {friend.id}")
        return FriendOut(user_id=friend.id, email=friend.email, display_name=friend.display_name)

    async def remove_friend(self, user: User, friend_id: uuid.UUID) -> None:
        removed = await db_remove_friendship(self.session, user.id, friend_id)
        if not removed:
            raise HTTPException(status_code=404, detail="Friendship not found")
        logger.info(f"User {user.id} removed friend {friend_id}")
