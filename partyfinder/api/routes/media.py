from uuid import UUID
from typing import List, Optional
from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession
from partyfinder.auth import get_current_user, get_optional_user
from partyfinder.db.models.user import User
from partyfinder.db.session import get_session
from partyfinder.schemas import EventMediaOut
from partyfinder.services.media_service import MediaService

router = APIRouter(prefix="/events/{event_id}/media", tags=["media"])


def get_media_service(session: AsyncSession = Depends(get_session)) -> MediaService:
    return MediaService(session)


@router.get("", response_model=List[EventMediaOut])
async def list_media(
    event_id: UUID,
    user: Optional[User] = Depends(get_optional_user),
    media_service: MediaService = Depends(get_media_service)
):
    return await media_service.list_media(event_id, user)


@router.post("", response_model=EventMediaOut, status_code=status.HTTP_201_CREATED)
async def upload_media(
    event_id: UUID,
    media: UploadFile = File(...),
    caption: Optional[str] = Form(None),
    user: User = Depends(get_current_user),
    media_service: MediaService = Depends(get_media_service)
):
    """Add a photo or video to an archived event's gallery (host or attendees)."""
    return await media_service.upload(event_id, user, media, caption)


@router.get("/{media_id}/file")
async def get_media_file(
    event_id: UUID,
    media_id: UUID,
    user: Optional[User] = Depends(get_optional_user),
    media_service: MediaService = Depends(get_media_service)
):
    path, media = await media_service.get_media_file(event_id, media_id, user)
    return FileResponse(path, media_type=media.content_type)


@router.delete("/{media_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_media(
    event_id: UUID,
    media_id: UUID,
    user: User = Depends(get_current_user),
    media_service: MediaService = Depends(get_media_service)
):
    """Remove an item from the gallery. Host only."""
    await media_service.delete(event_id, media_id, user)
    return None
