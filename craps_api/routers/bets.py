from __future__ import annotations
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from craps_api.core.auth import get_current_bettor
from craps_api.core.errors import CrapsError
from craps_api.db.session import get_session
from craps_api.models.bettor import Bettor
from craps_api.schemas.bets import BetIn, BetOut, BetHistoryItem
from craps_api.services import bet_service
from craps_api.services.runtime import Runtime, get_runtime

router = APIRouter(prefix="/api/bets", tags=["bets"])


@router.post("/place", response_model=BetOut)
async def place_bet(
        payload: BetIn,
        current: Bettor = Depends(get_current_bettor),
        rt: Runtime = Depends(get_runtime),
):
    """
    Place one wager for the next series:
      - only while the betting window is open and no series is rolling
      - the stake is debited immediately
    """
    try:
        bet = await bet_service.place_bet(rt.table, current.id, payload)
        entry = await rt.ledger.balance(current.id)
    except CrapsError as e:
        raise HTTPException(e.status_code, str(e)) from e

    return BetOut(
        bet_id=bet.id,
        series_id=bet.series_id,
        target=bet.target_id,
        bet_type=bet.bet_type.value,
        amount=float(bet.amount),
        placed_during_phase=bet.placed_during_phase.value,
        balance=float(entry.balance),
    )


@router.get("/open", response_model=List[BetOut])
async def open_bets(
        current: Bettor = Depends(get_current_bettor),
        rt: Runtime = Depends(get_runtime),
):
    return [
        BetOut(
            bet_id=b.id,
            series_id=b.series_id,
            target=b.target_id,
            bet_type=b.bet_type.value,
            amount=float(b.amount),
            placed_during_phase=b.placed_during_phase.value,
        )
        for b in rt.table.book.open_bets(current.id)
    ]


@router.get("/history", response_model=List[BetHistoryItem])
async def history(
        limit: int = 20,
        session: AsyncSession = Depends(get_session),
        current: Bettor = Depends(get_current_bettor),
):
    rows = await bet_service.bet_history(session, current.id, limit)
    return [
        BetHistoryItem(
            id=r.id,
            series_id=r.series_id,
            target=r.target_id,
            bet_type=r.bet_type,
            amount=float(r.amount),
            status=int(r.status),
            payout=float(r.payout or 0),
        )
        for r in rows
    ]
