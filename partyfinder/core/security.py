"""
Password hashing, JWT access/refresh tokens and token revocation.

Tokens carry the user id in ``sub`` and their kind in ``type`` so that a
refresh token can never be presented as an access token.
"""
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional
from jose import jwt, JWTError
from passlib.context import CryptContext
from partyfinder.core.config import settings
from partyfinder.cache.redis_client import cache

ACCESS = "access"
REFRESH = "refresh"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

_PASSWORD_RULES = (
    (lambda p: len(p) >= 8, "Password must be at least 8 characters long"),
    (lambda p: any(c.isalpha() for c in p), "Password must contain at least one letter"),
    (lambda p: any(c.isdigit() for c in p), "Password must contain at least one digit"),
)


def validate_password(password: str) -> None:
    """
    Raises:
        ValueError: With the first rule the password breaks
    """
    for rule, message in _PASSWORD_RULES:
        if not rule(password):
            raise ValueError(message)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def _encode(data: Dict, token_type: str, lifetime: timedelta) -> str:
    claims = dict(data)
    claims["exp"] = datetime.now(timezone.utc) + lifetime
    claims["type"] = token_type
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def create_access_token(data: Dict, expires_delta: Optional[timedelta] = None) -> str:
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    return _encode(data, ACCESS, lifetime)


def create_refresh_token(data: Dict) -> str:
    return _encode(data, REFRESH, timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS))


def decode_token(token: str) -> Dict:
    """
    Verify a token's signature and expiry and return its claims.

    Raises:
        ValueError: Expired, malformed, badly signed, or missing ``sub``
    """
    try:
        claims = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise ValueError("Token has expired")
    except JWTError as e:
        raise ValueError(f"Invalid token: {e}")

    if "sub" not in claims:
        raise ValueError("Invalid token payload: missing 'sub' field")
    return claims


async def revoke_token(token: str) -> bool:
    """
    Deny-list a token until its natural expiry.

    Returns:
        False if the token is already invalid or expired
    """
    try:
        exp = decode_token(token).get("exp")
    except ValueError:
        return False

    ttl = int(exp or 0) - int(datetime.now(timezone.utc).timestamp())
    if ttl <= 0:
        return False
    return await cache.set(f"revoked_token:{token}", True, expire=ttl)


async def is_token_revoked(token: str) -> bool:
    return await cache.exists(f"revoked_token:{token}")
