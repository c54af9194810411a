# craps_api/services/ledger_store.py
from __future__ import annotations
import logging
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from craps_api.core.errors import InsufficientBalance, UnknownBet, UnknownBettor
from craps_api.core.timeutil import now_local, to_naive
from craps_api.db.session import AsyncSessionLocal
from craps_api.game.bets import Bet, q2
from craps_api.game.ledger import BalanceStore, LedgerEntry
from craps_api.models.bet import BetRecord, STATUS_LOST, STATUS_OPEN, STATUS_WON
from craps_api.models.bettor import Bettor

logger = logging.getLogger(__name__)


def _to_entry(b: Bettor) -> LedgerEntry:
    return LedgerEntry(
        bettor_id=b.id,
        balance=q2(Decimal(str(b.balance or 0))),
        total_won=q2(Decimal(str(b.total_won or 0))),
        total_lost=q2(Decimal(str(b.total_lost or 0))),
    )


class SqlBalanceStore(BalanceStore):
    """
    Ledger entries on the ``bettor`` table, bet rows on the ``bet`` table.

    Each call runs in its own session and transaction with the rows locked,
    so a failed credit never blocks crediting the others. The balance change
    and the bet row change commit together: a bet row is open exactly while
    its stake is held.
    """

    def __init__(self, session_factory: async_sessionmaker = AsyncSessionLocal):
        self.session_factory = session_factory

    async def _locked(self, s: AsyncSession, bettor_id: int) -> Bettor:
        b = await s.get(Bettor, bettor_id, with_for_update=True)
        if b is None:
            raise UnknownBettor(f"unknown bettor {bettor_id}")
        return b

    async def get_entry(self, bettor_id: int) -> LedgerEntry:
        async with self.session_factory() as s:
            b = await s.get(Bettor, bettor_id)
            if b is None:
                raise UnknownBettor(f"unknown bettor {bettor_id}")
            return _to_entry(b)

    async def debit(self, bet: Bet) -> LedgerEntry:
        async with self.session_factory() as s:
            async with s.begin():
                b = await self._locked(s, bet.bettor_id)
                bal = Decimal(str(b.balance or 0))
                if bal < bet.amount:
                    raise InsufficientBalance(f"balance {q2(bal)} is below {q2(bet.amount)}")
                b.balance = float(q2(bal - bet.amount))
                b.total_wagered = float(q2(Decimal(str(b.total_wagered or 0)) + bet.amount))
                s.add(BetRecord(
                    id=bet.id,
                    bettor_id=bet.bettor_id,
                    series_id=bet.series_id,
                    target_id=bet.target_id,
                    bet_type=bet.bet_type.value,
                    amount=float(bet.amount),
                    placed_during_phase=bet.placed_during_phase.value,
                    status=STATUS_OPEN,
                ))
            return _to_entry(b)

    async def _settle(self, bet: Bet, won: bool, payout: Decimal, profit: Decimal) -> LedgerEntry:
        async with self.session_factory() as s:
            async with s.begin():
                rec = await s.get(BetRecord, bet.id, with_for_update=True)
                if rec is None:
                    raise UnknownBet(f"bet {bet.id} has no row")
                b = await self._locked(s, bet.bettor_id)
                # voided or settled elsewhere
                if int(rec.status) != STATUS_OPEN:
                    logger.warning("bet %s already closed with status %s; skipped", bet.id, rec.status)
                    return _to_entry(b)

                if won:
                    b.balance = float(q2(Decimal(str(b.balance or 0)) + payout))
                    b.total_won = float(q2(Decimal(str(b.total_won or 0)) + profit))
                else:
                    b.total_lost = float(q2(Decimal(str(b.total_lost or 0)) + bet.amount))
                rec.status = STATUS_WON if won else STATUS_LOST
                rec.payout = float(payout)
                rec.settled_at = to_naive(now_local())
            return _to_entry(b)

    async def credit_win(self, bet: Bet, payout: Decimal, profit: Decimal) -> LedgerEntry:
        return await self._settle(bet, True, payout, profit)

    async def record_loss(self, bet: Bet) -> LedgerEntry:
        return await self._settle(bet, False, Decimal("0.00"), Decimal("0.00"))
