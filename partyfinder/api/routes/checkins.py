from uuid import UUID
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession
from partyfinder.auth import get_current_user
from partyfinder.core.rate_limit import limiter
from partyfinder.db.models.user import User
from partyfinder.db.session import get_session
from partyfinder.schemas import CheckInCreate, CheckInOut
from partyfinder.services.checkin_service import CheckInService

router = APIRouter(prefix="/checkins", tags=["checkins"])


def get_checkin_service(session: AsyncSession = Depends(get_session)) -> CheckInService:
    return CheckInService(session)


@router.post("", response_model=CheckInOut, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
async def create_checkin(
    request: Request,
    response: Response,
    payload: CheckInCreate,
    user: User = Depends(get_current_user),
    checkin_service: CheckInService = Depends(get_checkin_service)
):
    """
    Check in to an event that has started.

    Idempotent: a repeat submission answers 200 with the existing record
    and ``already_checked_in`` set.
    """
    checkin, created = await checkin_service.check_in(payload.event_id, user)
    if not created:
        response.status_code = status.HTTP_200_OK
    out = CheckInOut.model_validate(checkin)
    out.already_checked_in = not created
    return out


@router.get("", response_model=List[CheckInOut])
async def list_my_checkins(
    event_id: Optional[UUID] = Query(None, description="Only return the check-in for this event"),
    user: User = Depends(get_current_user),
    checkin_service: CheckInService = Depends(get_checkin_service)
):
    return await checkin_service.list_checkins(user, event_id)
