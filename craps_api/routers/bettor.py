from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from craps_api.core.config import settings
from craps_api.db.session import get_session
from craps_api.game.bets import q2
from craps_api.models.bettor import Bettor
from craps_api.schemas.bettor import RegisterIn, LoginIn, TokenOut, BettorOut
from craps_api.core.security import hash_password, verify_password, create_access_token
from craps_api.core.auth import get_current_bettor


router = APIRouter(prefix="/api/bettor", tags=["bettor"])


@router.post("/register", response_model=BettorOut, status_code=201)
async def register(data: RegisterIn, session: AsyncSession = Depends(get_session)):
    exists = await session.scalar(select(Bettor).where(Bettor.username == data.username))
    if exists:
        raise HTTPException(status_code=400, detail="username already taken")

    b = Bettor(
        username=data.username,
        password_hash=hash_password(data.password),
        nickname=data.nickname or data.username,
        status=1,
        is_operator=data.username in settings.OPERATOR_USERNAMES,
        balance=float(q2(Decimal(settings.STARTING_BALANCE))),
        total_won=0,
        total_lost=0,
        total_wagered=0,
        series_played=0,
    )
    session.add(b)
    await session.commit()
    await session.refresh(b)

    return BettorOut.model_validate(b)


@router.post("/login", response_model=TokenOut)
async def login(data: LoginIn, session: AsyncSession = Depends(get_session)):
    b = await session.scalar(select(Bettor).where(Bettor.username == data.username))
    if not b or not verify_password(data.password, b.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="wrong username or password")
    if b.status != 1:
        raise HTTPException(status_code=403, detail="bettor disabled")

    token = create_access_token(b.id)
    return TokenOut(access_token=token)


@router.get("/profile", response_model=BettorOut)
async def profile(current: Bettor = Depends(get_current_bettor)):
    return BettorOut.model_validate(current)
