import logging
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from craps_api.db.session import engine, Base
from craps_api.game.bets import q2
from craps_api.models.bet import BetRecord, STATUS_OPEN, STATUS_VOID
from craps_api.models.bettor import Bettor
from craps_api.models.series import SeriesRecord
# registered on Base.metadata before create_all
from craps_api.models.series import RollRecord  # noqa: F401

logger = logging.getLogger(__name__)


async def init_db():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def void_open_bets(session: AsyncSession) -> int:
    """
    Bets still open at startup belong to a book that no longer exists:
    refund the stake and mark them void.

    Settled bets are never open (their row closes with the credit), so only
    unresolved stakes come back. An open row of a series that already ended
    is a failed settlement; it is left open for reconciliation.
    """
    ended = select(SeriesRecord.id).where(SeriesRecord.ended_at.is_not(None))
    rs = await session.execute(select(BetRecord).where(BetRecord.status == STATUS_OPEN))
    voided = 0
    for bet in rs.scalars().all():
        if await session.scalar(ended.where(SeriesRecord.id == bet.series_id)) is not None:
            logger.error(
                "bet %s of ended series %s is still open; left for reconciliation", bet.id, bet.series_id
            )
            continue
        b = await session.get(Bettor, bet.bettor_id, with_for_update=True)
        if b is not None:
            stake = Decimal(str(bet.amount))
            b.balance = float(q2(Decimal(str(b.balance or 0)) + stake))
            b.total_wagered = float(q2(Decimal(str(b.total_wagered or 0)) - stake))
        bet.status = STATUS_VOID
        voided += 1
    await session.commit()
    if voided:
        logger.warning("voided %s open bets left from a previous run", voided)
    return voided


async def next_ids(session: AsyncSession) -> tuple[int, int]:
    """First free (series id, bet id), so engine ids stay monotonic across restarts."""
    last_series = await session.scalar(select(func.max(SeriesRecord.id)))
    last_bet = await session.scalar(select(func.max(BetRecord.id)))
    last_bet_series = await session.scalar(select(func.max(BetRecord.series_id)))
    series_id = max(last_series or 0, last_bet_series or 0) + 1
    return series_id, (last_bet or 0) + 1
