from uuid import UUID
from typing import List
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from partyfinder.auth import get_current_user
from partyfinder.db.models.user import User
from partyfinder.db.session import get_session
from partyfinder.schemas import FriendCreate, FriendOut
from partyfinder.services.friend_service import FriendService

router = APIRouter(prefix="/friends", tags=["friends"])


def get_friend_service(session: AsyncSession = Depends(get_session)) -> FriendService:
    return FriendService(session)


@router.get("", response_model=List[FriendOut])
async def list_friends(
    user: User = Depends(get_current_user),
    friend_service: FriendService = Depends(get_friend_service)
):
    return await friend_service.list_friends(user)


@router.post("", response_model=FriendOut, status_code=status.HTTP_201_CREATED)
async def add_friend(
    payload: FriendCreate,
    user: User = Depends(get_current_user),
    friend_service: FriendService = Depends(get_friend_service)
):
    return await friend_service.add_friend(user, payload.user_id)


@router.delete("/{friend_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_friend(
    friend_id: UUID,
    user: User = Depends(get_current_user),
    friend_service: FriendService = Depends(get_friend_service)
):
    await friend_service.remove_friend(user, friend_id)
    return None
