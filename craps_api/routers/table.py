from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from craps_api.core.auth import require_operator
from craps_api.core.errors import CrapsError
from craps_api.db.session import get_session
from craps_api.models.series import RollRecord
from craps_api.schemas.table import TableStateResp, RollHistoryResp, RollItem, TickResp
from craps_api.services.runtime import Runtime, get_runtime
from craps_api.tasks.scheduler import stop_scheduler

router = APIRouter(prefix="/api/table", tags=["table"])


def _state(rt: Runtime) -> TableStateResp:
    table = rt.table
    handle = rt.scheduler.in_flight
    return TableStateResp(
        series_id=table.series.id,
        next_series_id=table.next_series_id,
        phase=table.series.phase.value,
        point=table.series.point,
        scheduler_state=rt.scheduler.state.value,
        betting_open=table.betting_open,
        open_bets=len(table.book),
        rolls_this_series=len(table.series.rolls),
        roll_in_flight=handle.request_id if handle else None,
    )


@router.get("/state", response_model=TableStateResp)
async def table_state(rt: Runtime = Depends(get_runtime)):
    return _state(rt)


@router.get("/rolls", response_model=RollHistoryResp)
async def roll_history(limit: int = 30, session: AsyncSession = Depends(get_session)):
    rs = await session.execute(
        select(RollRecord).order_by(RollRecord.id.desc()).limit(limit)
    )
    items = [
        RollItem(
            series_id=r.series_id,
            sequence=r.sequence,
            die1=r.die1,
            die2=r.die2,
            total=r.total,
            outcome=r.outcome,
            source_ref=r.source_ref,
        )
        for r in rs.scalars().all()
    ]
    # newest first
    return {"list": items}


@router.post("/open", response_model=TableStateResp, dependencies=[Depends(require_operator)])
async def open_betting(rt: Runtime = Depends(get_runtime)):
    try:
        rt.scheduler.open_betting_window()
    except CrapsError as e:
        raise HTTPException(e.status_code, str(e)) from e
    return _state(rt)


@router.post("/start", response_model=TableStateResp, dependencies=[Depends(require_operator)])
async def start_series(rt: Runtime = Depends(get_runtime)):
    """Close the betting window and start rolling."""
    try:
        await rt.scheduler.start_series()
    except CrapsError as e:
        raise HTTPException(e.status_code, str(e)) from e
    return _state(rt)


@router.post("/roll", response_model=TickResp, dependencies=[Depends(require_operator)])
async def roll_now(rt: Runtime = Depends(get_runtime)):
    """Run one scheduler tick now."""
    event = await rt.scheduler.tick()
    return TickResp(fired=event is not None, event=event.to_dict() if event else None)


@router.post("/stop", response_model=TableStateResp, dependencies=[Depends(require_operator)])
async def stop(rt: Runtime = Depends(get_runtime)):
    stop_scheduler(rt.scheduler)
    return _state(rt)
