from datetime import datetime, timedelta, timezone
from typing import Optional
from passlib.context import CryptContext
import jwt

from craps_api.core.config import settings

TOKEN_ALGORITHM = "HS256"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

def _salted(raw: str) -> str:
    return f"{raw}:{settings.PASSWORD_SALT}"

def hash_password(raw: str) -> str:
    return pwd_context.hash(_salted(raw))

def verify_password(raw: str, hashed: str) -> bool:
    return pwd_context.verify(_salted(raw), hashed)

def create_access_token(bettor_id: int, expires_minutes: Optional[int] = None) -> str:
    """Bearer token for one bettor; operator rights are read from the row, not the token."""
    now = datetime.now(timezone.utc)
    expire = now + timedelta(minutes=expires_minutes or settings.JWT_EXPIRE_MINUTES)
    payload = {
        "sub": str(bettor_id),
        "exp": int(expire.timestamp()),
        "iat": int(now.timestamp()),
        "iss": settings.APP_NAME,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=TOKEN_ALGORITHM)

def decode_access_token(token: str) -> int:
    """Bettor id of a valid token; raises ``jwt.PyJWTError`` or ``ValueError`` otherwise."""
    payload = jwt.decode(
        token,
        settings.JWT_SECRET,
        algorithms=[TOKEN_ALGORITHM],
        issuer=settings.APP_NAME,
        options={"require": ["exp", "iat", "sub", "iss"]},
    )
    return int(payload["sub"])
