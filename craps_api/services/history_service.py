# craps_api/services/history_service.py
import logging
from decimal import Decimal

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import async_sessionmaker

from craps_api.core.timeutil import now_local, to_naive
from craps_api.db.session import AsyncSessionLocal
from craps_api.game.bets import q2
from craps_api.game.table import Series, TickEvent
from craps_api.models.bet import BetRecord
from craps_api.models.bettor import Bettor
from craps_api.models.series import RollRecord, SeriesRecord

logger = logging.getLogger(__name__)


class HistoryRecorder:
    """
    Checkpoints series and rolls; subscribed to the roll scheduler.

    Bet rows are not touched here: the balance store closes each bet row in
    the same transaction as its credit, so a failed history write never
    leaves a paid bet looking open.
    """

    def __init__(self, session_factory: async_sessionmaker = AsyncSessionLocal):
        self.session_factory = session_factory

    async def record_series_start(self, series: Series) -> None:
        async with self.session_factory() as s:
            async with s.begin():
                count, wagered = (await s.execute(
                    select(func.count(BetRecord.id), func.coalesce(func.sum(BetRecord.amount), 0))
                    .where(BetRecord.series_id == series.id)
                )).one()
                s.add(SeriesRecord(
                    id=series.id,
                    phase=series.phase.value,
                    point=series.point,
                    bets_placed=int(count),
                    amount_wagered=float(q2(Decimal(str(wagered)))),
                    created_at=to_naive(series.created_at),
                ))
                bettor_ids = select(BetRecord.bettor_id).where(BetRecord.series_id == series.id).distinct()
                await s.execute(
                    update(Bettor)
                    .where(Bettor.id.in_(bettor_ids))
                    .values(series_played=Bettor.series_played + 1)
                )

    async def record_tick_event(self, event: TickEvent) -> None:
        if event.pending or event.roll is None:
            return
        roll = event.roll
        paid = Decimal("0")
        if event.settlement is not None:
            paid = event.settlement.total_paid
            for err in event.settlement.errors:
                # the bet row stays open for reconciliation
                logger.error("series %s: %s", event.series_id, err)
        now = to_naive(now_local())

        async with self.session_factory() as s:
            async with s.begin():
                s.add(RollRecord(
                    series_id=roll.series_id,
                    sequence=roll.sequence,
                    die1=roll.die1,
                    die2=roll.die2,
                    total=roll.total,
                    outcome=event.outcome.value,
                    source_ref=roll.source_ref,
                ))
                row = await s.get(SeriesRecord, event.series_id, with_for_update=True)
                if row is not None:
                    row.phase = event.phase.value
                    row.point = event.point
                    row.roll_count = roll.sequence
                    row.outcome = event.outcome.value
                    row.total_payouts = float(
                        q2(Decimal(str(row.total_payouts or 0)) + paid)
                    )
                    if event.series_ended:
                        row.ended_at = now

