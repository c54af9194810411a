# craps_api/game/ledger.py
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, List, Set

from craps_api.core.errors import (
    InsufficientBalance,
    SettlementPartialFailure,
    UnknownBettor,
)
from craps_api.game.bets import Bet, ResolutionResult, q2

logger = logging.getLogger(__name__)


@dataclass
class LedgerEntry:
    bettor_id: int
    balance: Decimal
    total_won: Decimal = Decimal("0.00")
    total_lost: Decimal = Decimal("0.00")


class BalanceStore(ABC):
    """
    Where ledger entries live. Every call is one independent unit of work
    and receives the bet it is for, so a store that also keeps bet rows
    updates the row in the same unit as the balance.
    """

    @abstractmethod
    async def get_entry(self, bettor_id: int) -> LedgerEntry: ...

    @abstractmethod
    async def debit(self, bet: Bet) -> LedgerEntry: ...

    @abstractmethod
    async def credit_win(self, bet: Bet, payout: Decimal, profit: Decimal) -> LedgerEntry: ...

    @abstractmethod
    async def record_loss(self, bet: Bet) -> LedgerEntry: ...


class MemoryBalanceStore(BalanceStore):
    def __init__(self, balances: Dict[int, Decimal] | None = None):
        self._entries: Dict[int, LedgerEntry] = {}
        for bettor_id, bal in (balances or {}).items():
            self.open_account(bettor_id, bal)

    def open_account(self, bettor_id: int, balance) -> LedgerEntry:
        entry = LedgerEntry(bettor_id, q2(Decimal(str(balance))))
        self._entries[bettor_id] = entry
        return entry

    def _entry(self, bettor_id: int) -> LedgerEntry:
        entry = self._entries.get(bettor_id)
        if entry is None:
            raise UnknownBettor(f"unknown bettor {bettor_id}")
        return entry

    async def get_entry(self, bettor_id: int) -> LedgerEntry:
        e = self._entry(bettor_id)
        return LedgerEntry(e.bettor_id, e.balance, e.total_won, e.total_lost)

    async def debit(self, bet: Bet) -> LedgerEntry:
        e = self._entry(bet.bettor_id)
        if e.balance < bet.amount:
            raise InsufficientBalance(f"balance {e.balance} is below {bet.amount}")
        e.balance = q2(e.balance - bet.amount)
        return await self.get_entry(bet.bettor_id)

    async def credit_win(self, bet: Bet, payout: Decimal, profit: Decimal) -> LedgerEntry:
        e = self._entry(bet.bettor_id)
        e.balance = q2(e.balance + payout)
        e.total_won = q2(e.total_won + profit)
        return await self.get_entry(bet.bettor_id)

    async def record_loss(self, bet: Bet) -> LedgerEntry:
        e = self._entry(bet.bettor_id)
        e.total_lost = q2(e.total_lost + bet.amount)
        return await self.get_entry(bet.bettor_id)


@dataclass
class SettlementLine:
    bet_id: int
    bettor_id: int
    won: bool
    stake: Decimal
    payout: Decimal


@dataclass
class SettlementSummary:
    lines: List[SettlementLine] = field(default_factory=list)
    errors: List[SettlementPartialFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def total_paid(self) -> Decimal:
        return sum((l.payout for l in self.lines), Decimal("0.00"))


class SettlementLedger:
    """
    Sole mutator of bettor balances.

    - ``reserve`` debits a stake at placement time.
    - ``apply`` credits ``amount * multiplier`` for a win (net gain
      ``amount * (multiplier - 1)``) and only books ``total_lost`` for a
      loss, since the stake is already gone.
    Each result is applied on its own; a failed one is reported in the
    summary and does not stop the rest. A bet id is never applied twice;
    settled ids are kept per series and dropped by ``forget_series``.
    """

    def __init__(self, store: BalanceStore, payout_multiplier=Decimal("2")):
        self.store = store
        self.payout_multiplier = Decimal(str(payout_multiplier))
        self._settled: Dict[int, Set[int]] = {}

    async def balance(self, bettor_id: int) -> LedgerEntry:
        return await self.store.get_entry(bettor_id)

    async def reserve(self, bet: Bet) -> LedgerEntry:
        return await self.store.debit(bet)

    def forget_series(self, series_id: int) -> None:
        self._settled.pop(series_id, None)

    async def apply(self, results: Iterable[ResolutionResult]) -> SettlementSummary:
        summary = SettlementSummary()
        for res in results:
            bet = res.bet
            settled = self._settled.setdefault(bet.series_id, set())
            if bet.id in settled:
                continue
            try:
                if res.won:
                    payout = q2(bet.amount * self.payout_multiplier)
                    await self.store.credit_win(bet, payout, q2(payout - bet.amount))
                else:
                    payout = Decimal("0.00")
                    await self.store.record_loss(bet)
            except Exception as e:
                logger.exception("settlement failed bet_id=%s bettor=%s: %s", bet.id, bet.bettor_id, e)
                summary.errors.append(SettlementPartialFailure(bet.id, bet.bettor_id, e))
                continue
            settled.add(bet.id)
            summary.lines.append(SettlementLine(bet.id, bet.bettor_id, res.won, bet.amount, payout))
            logger.info(
                "series %s: bettor %s %s %s on %s, stake %.2f, paid %.2f (bet %s)",
                bet.series_id, bet.bettor_id, "won" if res.won else "lost",
                bet.bet_type.value, bet.target_id, bet.amount, payout, bet.id,
            )
        return summary
