"""Account routes: register, login, token refresh, logout and ``/me``."""
from typing import Optional
from fastapi import APIRouter, Body, Depends, Request, status
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from partyfinder.auth import get_current_user, security
from partyfinder.core.rate_limit import limiter
from partyfinder.db.models.user import User
from partyfinder.db.session import get_session
from partyfinder.schemas import LoginRequest, RefreshTokenRequest, Token, TokenResponse, UserCreate, UserOut
from partyfinder.services.auth_service import AuthService

router = APIRouter(prefix="/auth", tags=["auth"])


def get_auth_service(session: AsyncSession = Depends(get_session)) -> AuthService:
    return AuthService(session)


@router.post("/register", response_model=UserOut, status_code=status.HTTP_201_CREATED)
@limiter.limit("3/minute")
async def register(request: Request, payload: UserCreate, auth_service: AuthService = Depends(get_auth_service)):
    return await auth_service.register(payload)


@router.post("/login", response_model=TokenResponse)
@limiter.limit("5/minute")
async def login(request: Request, payload: LoginRequest, auth_service: AuthService = Depends(get_auth_service)):
    return await auth_service.login(payload)


@router.post("/refresh", response_model=Token)
@limiter.limit("10/minute")
async def refresh(
    request: Request,
    payload: RefreshTokenRequest,
    auth_service: AuthService = Depends(get_auth_service)
):
    return await auth_service.refresh_access_token(payload.refresh_token)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    payload: Optional[RefreshTokenRequest] = Body(None),
    credentials: HTTPAuthorizationCredentials = Depends(security),
    current_user: User = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service)
):
    """
    Revoke the bearer token. Send ``{"refresh_token": ...}`` in the body to
    revoke the refresh token as well.
    """
    refresh_token = payload.refresh_token if payload else None
    await auth_service.logout(credentials.credentials, refresh_token)
    return None


@router.get("/me", response_model=UserOut)
async def me(current_user: User = Depends(get_current_user)):
    return current_user
