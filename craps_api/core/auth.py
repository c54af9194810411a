from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
import jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from craps_api.core.security import decode_access_token
from craps_api.db.session import get_session
from craps_api.models.bettor import Bettor

security = HTTPBearer(auto_error=False)

async def get_current_bettor(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(security),
    session: AsyncSession = Depends(get_session),
) -> Bettor:
    if creds is None or creds.scheme.lower() != "bearer":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="not authenticated")
    try:
        bettor_id = decode_access_token(creds.credentials)
    except (jwt.PyJWTError, ValueError) as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid token") from e

    b = await session.scalar(select(Bettor).where(Bettor.id == bettor_id))
    if not b or b.status != 1:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="bettor missing or disabled")
    return b

async def require_operator(current: Bettor = Depends(get_current_bettor)) -> Bettor:
    if not current.is_operator:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="operator only")
    return current
