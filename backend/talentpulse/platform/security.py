"""Access tokens and the internal service-role credential."""

import hmac
from datetime import timedelta
from typing import Optional

from jose import JWTError, jwt

from .config import settings
from ..shared.utils import utcnow


def create_access_token(subject: str, expires_minutes: Optional[int] = None) -> str:
    expire = utcnow() + timedelta(minutes=expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    return jwt.encode({"sub": subject, "exp": expire}, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Optional[str]:
    """Return the token subject (profile id), or None when the token is invalid or expired."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
    subject = payload.get("sub")
    return str(subject) if subject else None


def is_service_role_token(token: Optional[str]) -> bool:
    if not token or not settings.SERVICE_ROLE_KEY:
        return False
    return hmac.compare_digest(token.encode(), settings.SERVICE_ROLE_KEY.encode())
