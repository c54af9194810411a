# craps_api/game/table.py
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from craps_api.core.errors import BettingWindowClosed, SchedulerStateError
from craps_api.core.timeutil import now_local
from craps_api.game.bets import Bet, BetBook, BetType, ResolutionResult
from craps_api.game.ledger import SettlementLedger, SettlementSummary
from craps_api.game.phase import Outcome, Phase, PhaseState, advance

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Roll:
    die1: int
    die2: int
    series_id: int
    sequence: int
    source_ref: str

    @property
    def total(self) -> int:
        return self.die1 + self.die2


@dataclass
class Series:
    id: int = 0
    phase: Phase = Phase.IDLE
    point: Optional[int] = None
    created_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    rolls: List[Roll] = field(default_factory=list)

    @property
    def state(self) -> PhaseState:
        return PhaseState(self.phase, self.point)

    @property
    def active(self) -> bool:
        return self.created_at is not None and self.ended_at is None


@dataclass(frozen=True)
class TickEvent:
    series_id: int
    phase: Phase
    point: Optional[int]
    roll: Optional[Roll] = None
    outcome: Optional[Outcome] = None
    outcomes: Tuple[ResolutionResult, ...] = ()
    series_ended: bool = False
    pending: bool = False
    settlement: Optional[SettlementSummary] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "series_id": self.series_id,
            "phase": self.phase.value,
            "point": self.point,
            "roll": None if self.roll is None else {
                "die1": self.roll.die1,
                "die2": self.roll.die2,
                "total": self.roll.total,
                "sequence": self.roll.sequence,
                "source_ref": self.roll.source_ref,
            },
            "outcome": self.outcome.value if self.outcome else None,
            "outcomes": [
                {
                    "bet_id": r.bet.id,
                    "bettor_id": r.bet.bettor_id,
                    "target_id": r.bet.target_id,
                    "bet_type": r.bet.bet_type.value,
                    "amount": float(r.bet.amount),
                    "won": r.won,
                }
                for r in self.outcomes
            ],
            "series_ended": self.series_ended,
            "pending": self.pending,
            "settlement_errors": len(self.settlement.errors) if self.settlement else 0,
        }


class GameTable:
    """
    One game instance: the current series, its bet book and the ledger.

    The series is the only writer of phase/point. ``lock`` guards the
    in-memory transitions (bet placement, series start, applying a roll);
    settlement and oracle calls are made outside of it. While a roll is
    being settled, placements are turned away without waiting.
    """

    def __init__(self, ledger: SettlementLedger, first_series_id: int = 1, first_bet_id: int = 1):
        self.ledger = ledger
        self.book = BetBook(ledger, first_bet_id=first_bet_id)
        self.series = Series()
        self.next_series_id = first_series_id
        self.lock = asyncio.Lock()
        self._resolving = False

    @property
    def betting_open(self) -> bool:
        return self.book.window_open and self.series.phase is Phase.IDLE and not self._resolving

    def open_betting_window(self) -> None:
        if self.series.phase is not Phase.IDLE:
            raise SchedulerStateError("cannot open betting while a series is rolling")
        self.book.open_window()

    async def place_bet(self, bettor_id: int, target_id: str, bet_type: BetType | str, amount) -> Bet:
        if self._resolving:
            raise BettingWindowClosed("a roll is being resolved")
        async with self.lock:
            return await self.book.place_bet(
                bettor_id, target_id, bet_type, amount,
                phase=self.series.phase, series_id=self.next_series_id,
            )

    async def begin_series(self) -> Series:
        async with self.lock:
            if self.series.phase is not Phase.IDLE:
                raise SchedulerStateError(f"series {self.series.id} is still rolling")
            self.book.close_window()
            self.series = Series(
                id=self.next_series_id,
                phase=Phase.COME_OUT,
                created_at=now_local(),
            )
            self.next_series_id += 1
        logger.info("series %s started with %s open bets", self.series.id, len(self.book))
        return self.series

    async def abort_series(self, series: Series) -> None:
        """Undo a series start that never rolled; its bets stay in the book."""
        async with self.lock:
            if self.series is not series or series.rolls:
                raise SchedulerStateError(f"series {series.id} cannot be aborted")
            self.series = Series()
            self.next_series_id = series.id
            self.book.open_window()
        logger.warning("series %s start aborted; betting reopened", series.id)

    async def apply_roll(self, die1: int, die2: int, source_ref: str) -> TickEvent:
        """
        Record one fulfilled roll: advance the phase, resolve the book
        against the pre-roll phase/point and settle what was decided.
        """
        try:
            async with self.lock:
                series = self.series
                if not series.active:
                    raise SchedulerStateError("no series is rolling")
                self._resolving = True
                roll = Roll(die1, die2, series.id, len(series.rolls) + 1, source_ref)
                series.rolls.append(roll)

                before = series.state
                transition = advance(before, roll.total)
                results = self.book.resolve(roll.total, before.phase, before.point)
                series.phase = transition.next.phase
                series.point = transition.next.point
                if transition.terminal:
                    results.extend(self.book.close_series())
                    series.ended_at = now_local()

            # decided bets already left the book; settle outside the lock
            summary = await self.ledger.apply(results)
            if transition.terminal:
                self.ledger.forget_series(series.id)
        finally:
            self._resolving = False

        logger.info(
            "series %s roll #%s: %s + %s = %s -> %s",
            series.id, roll.sequence, die1, die2, roll.total, transition.outcome.value,
        )
        if transition.terminal:
            logger.info("series %s ended after %s rolls (%s)", series.id, len(series.rolls), transition.outcome.value)
        return TickEvent(
            series_id=series.id,
            phase=series.phase,
            point=series.point,
            roll=roll,
            outcome=transition.outcome,
            outcomes=tuple(results),
            series_ended=transition.terminal,
            settlement=summary,
        )

    def pending_event(self) -> TickEvent:
        return TickEvent(self.series.id, self.series.phase, self.series.point, pending=True)
