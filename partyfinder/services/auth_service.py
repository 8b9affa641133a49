"""Account registration, login and token lifecycle."""
import uuid
from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from partyfinder.core.logging import logger
from partyfinder.core.security import (
    REFRESH,
    create_access_token,
    create_refresh_token,
    decode_token,
    is_token_revoked,
    revoke_token,
    validate_password,
    verify_password,
)
from partyfinder.db.models import User
from partyfinder.db.repositories import (
    create_user as db_create_user,
    get_user as db_get_user,
    get_user_by_email as db_get_user_by_email,
)
from partyfinder.schemas import LoginRequest, UserCreate


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


class AuthService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def register(self, payload: UserCreate) -> User:
        """
        Raises:
            HTTPException: 400 for a weak password or an email in use
        """
        try:
            validate_password(payload.password)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

        if await db_get_user_by_email(self.session, payload.email):
            raise HTTPException(status_code=400, detail="Email already registered")

        user = await db_create_user(self.session, payload)
        logger.info(f"Registered user {user.id}")
        return user

    async def login(self, form_data: LoginRequest) -> dict:
        """
        Returns:
            Access and refresh tokens plus the user, so the client does not
            need a second round trip to learn who it is
        """
        user = await db_get_user_by_email(self.session, form_data.email)
        if not user or not verify_password(form_data.password, user.hashed_password):
            logger.info(f"Failed login for {form_data.email}")
            raise _unauthorized("Incorrect credentials")

        claims = {"sub": str(user.id)}
        return {
            "access_token": create_access_token(claims),
            "refresh_token": create_refresh_token(claims),
            "token_type": "bearer",
            "user": user,
        }

    async def refresh_access_token(self, refresh_token: str) -> dict:
        """
        Raises:
            HTTPException: 401 if the token is invalid, revoked, not a
                refresh token, or belongs to a deleted user
        """
        try:
            claims = decode_token(refresh_token)
        except ValueError:
            raise _unauthorized("Invalid refresh token")

        if claims.get("type") != REFRESH:
            raise _unauthorized("Invalid token type")
        if await is_token_revoked(refresh_token):
            raise _unauthorized("Token has been revoked")

        try:
            user = await db_get_user(self.session, uuid.UUID(str(claims["sub"])))
        except ValueError:
            user = None
        if user is None:
            raise _unauthorized("Invalid refresh token")

        return {"access_token": create_access_token({"sub": str(user.id)}), "token_type": "bearer"}

    async def logout(self, *tokens: str) -> None:
        """Revoke every token given (access and, optionally, refresh)."""
        for token in tokens:
            if token:
                await revoke_token(token)
