import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt
from passlib.context import CryptContext

from opsdesk.core.config import settings

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        # unknown or malformed hash
        return False


def create_access_token(subject: str | int, expires_delta: timedelta | None = None) -> tuple[str, str, datetime]:
    """Return ``(token, jti, expires_at)`` for ``subject``.

    The ``jti`` claim is what sign-out records to revoke the token.
    """
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    jti = uuid.uuid4().hex
    claims = {
        "sub": str(subject),
        "exp": expire,
        "iat": now,
        "jti": jti,
        "type": "access",
    }
    token = jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return token, jti, expire


def decode_access_token(token: str) -> dict[str, Any] | None:
    try:
        claims = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
    if claims.get("type") != "access" or not claims.get("sub") or not claims.get("jti"):
        return None
    return claims
