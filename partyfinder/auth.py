"""Bearer-token dependencies for routes that need (or may use) a user."""
import uuid
from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from partyfinder.core.logging import logger
from partyfinder.core.security import ACCESS, decode_token, is_token_revoked
from partyfinder.db.models.user import User
from partyfinder.db.repositories import get_user
from partyfinder.db.session import get_session

security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)


def _reject(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def user_from_token(token: str, session: AsyncSession) -> User:
    """
    Raises:
        HTTPException: 401 if the token is revoked, invalid, not an access
            token, or names an unknown user
    """
    if await is_token_revoked(token):
        raise _reject("Token has been revoked")

    try:
        claims = decode_token(token)
    except ValueError as e:
        logger.debug(f"Rejected bearer token: {e}")
        raise _reject()

    if claims.get("type") != ACCESS:
        raise _reject("Invalid token type")

    try:
        user_id = uuid.UUID(str(claims["sub"]))
    except ValueError:
        raise _reject()

    user = await get_user(session, user_id)
    if user is None:
        raise _reject()
    return user


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    session: AsyncSession = Depends(get_session)
) -> User:
    return await user_from_token(credentials.credentials, session)


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_security),
    session: AsyncSession = Depends(get_session)
) -> Optional[User]:
    """Anonymous requests resolve to ``None``; a bad token is still a 401."""
    if credentials is None:
        return None
    return await user_from_token(credentials.credentials, session)
