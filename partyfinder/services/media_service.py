"""Post-event media gallery: listing, uploads and host moderation."""
import mimetypes
import uuid
from pathlib import Path
from typing import List, Optional, Tuple
from fastapi import HTTPException, UploadFile, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from partyfinder.core.config import settings
from partyfinder.core.logging import logger
from partyfinder.db.models import Event, EventMedia, User
from partyfinder.db.repositories import (
    create_media as db_create_media,
    delete_media as db_delete_media,
    get_checkin as db_get_checkin,
    get_event as db_get_event,
    get_media as db_get_media,
    list_media as db_list_media,
)
from partyfinder.domain import can_contribute_media, can_delete_media, can_view_media, is_host
from partyfinder.schemas import EventOut, MediaType

UPLOAD_CHUNK_BYTES = 1024 * 1024


def media_type_for(content_type: Optional[str]) -> Optional[MediaType]:
    if not content_type:
        return None
    if content_type.startswith("image/"):
        return MediaType.image
    if content_type.startswith("video/"):
        return MediaType.video
    return None


async def read_limited(upload: UploadFile, limit: int, chunk_size: int = UPLOAD_CHUNK_BYTES) -> bytes:
    """
    Read an upload, stopping as soon as it grows past ``limit``.

    Raises:
        HTTPException: 413 when the body is larger than ``limit``
    """
    chunks = []
    size = 0
    while True:
        chunk = await upload.read(chunk_size)
        if not chunk:
            break
        size += len(chunk)
        if size > limit:
            raise HTTPException(status_code=413, detail="File is too large")
        chunks.append(chunk)
    return b"".join(chunks)


class MediaService:
    def __init__(self, session: AsyncSession, media_root: Optional[Path] = None):
        self.session = session
        self.media_root = Path(media_root or settings.MEDIA_ROOT)

    async def _get_event(self, event_id: uuid.UUID) -> Tuple[Event, EventOut]:
        ev = await db_get_event(self.session, event_id)
        if not ev:
            raise HTTPException(status_code=404, detail="Event not found")
        return ev, EventOut.model_validate(ev)

    async def _is_attendee(self, event_id: uuid.UUID, user: Optional[User]) -> bool:
        if user is None:
            return False
        return await db_get_checkin(self.session, user.id, event_id) is not None

    async def _check_view(self, event: EventOut, user: Optional[User]) -> None:
        viewer_id = user.id if user else None
        public = settings.MEDIA_VIEW_PUBLIC
        is_attendee = False if public or is_host(event, viewer_id) else await self._is_attendee(event.id, user)
        if not can_view_media(event, viewer_id, is_attendee, public_media=public):
            raise HTTPException(status_code=403, detail="Only the host and attendees can view this gallery")

    def _path_for(self, media: EventMedia) -> Path:
        return self.media_root / str(media.event_id) / media.stored_name

    async def list_media(self, event_id: uuid.UUID, user: Optional[User]) -> List[EventMedia]:
        _, event = await self._get_event(event_id)
        await self._check_view(event, user)
        if not event.is_archived:
            return []
        return await db_list_media(self.session, event_id)

    async def get_media_file(self, event_id: uuid.UUID, media_id: uuid.UUID, user: Optional[User]) -> Tuple[Path, EventMedia]:
        _, event = await self._get_event(event_id)
        await self._check_view(event, user)
        media = await db_get_media(self.session, event_id, media_id)
        if not media:
            raise HTTPException(status_code=404, detail="Media not found")
        path = self._path_for(media)
        if not path.is_file():
            logger.error(f"Media file missing on disk: {path}")
            raise HTTPException(status_code=404, detail="Media file not found")
        return path, media

    async def upload(
        self, event_id: uuid.UUID, user: User, upload: UploadFile, caption: Optional[str] = None
    ) -> EventMedia:
        """
        Store a photo or video for an archived event.

        Raises:
            HTTPException: 404 unknown event, 409 event still live, 403 not
                host or attendee, 415 unsupported type, 413 too large
        """
        _, event = await self._get_event(event_id)
        if not event.is_archived:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Media can only be added once the event has ended",
            )

        is_attendee = await self._is_attendee(event_id, user)
        if not can_contribute_media(event, user.id, is_attendee, has_token=True):
            raise HTTPException(status_code=403, detail="Only the host or checked-in attendees can contribute")

        media_type = media_type_for(upload.content_type)
        if media_type is None:
            raise HTTPException(status_code=415, detail="Only images and videos can be uploaded")

        data = await read_limited(upload, settings.MAX_UPLOAD_BYTES)

        media_id = uuid.uuid4()
        suffix = Path(upload.filename or "").suffix or mimetypes.guess_extension(upload.content_type) or ""
        stored_name = f"{media_id}{suffix}"
        target = self.media_root / str(event_id) / stored_name
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)

        try:
            media = await db_create_media(
                self.session,
                event_id=event_id,
                user_id=user.id,
                media_type=media_type,
                stored_name=stored_name,
                content_type=upload.content_type,
                caption=caption,
                media_id=media_id,
            )
        except SQLAlchemyError:
            logger.error(f"Failed to record upload for event {event_id}; removing {target}")
            target.unlink(missing_ok=True)
            raise
        logger.info(f"User {user.id} uploaded {media_type.value} {media.id} to event {event_id}")
        return media

    async def delete(self, event_id: uuid.UUID, media_id: uuid.UUID, user: User) -> None:
        _, event = await self._get_event(event_id)
        if not can_delete_media(event, user.id):
            raise HTTPException(status_code=403, detail="Only the host can delete media")

        media = await db_get_media(self.session, event_id, media_id)
        if not media:
            raise HTTPException(status_code=404, detail="Media not found")

        path = self._path_for(media)
        await db_delete_media(self.session, media)
        path.unlink(missing_ok=True)
        logger.info(f"Host {user.id} deleted media {media_id} from event {event_id}")
