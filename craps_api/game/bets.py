# craps_api/game/bets.py
from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Dict, List, Optional

from craps_api.core.errors import BettingWindowClosed, DuplicateBet, InvalidAmount, InvalidBetType
from craps_api.game.phase import CRAPS_TOTALS, NATURALS, Phase

logger = logging.getLogger(__name__)


class BetType(str, Enum):
    PASS_LINE = "pass_line"
    DONT_PASS = "dont_pass"
    FIELD = "field"
    COME = "come"
    DONT_COME = "dont_come"


FIELD_TOTALS = frozenset({2, 3, 4, 9, 10, 11, 12})

# input aliases accepted by the HTTP layer
ALIAS_TO_BET_TYPE = {
    "PASS": BetType.PASS_LINE, "PASS LINE": BetType.PASS_LINE,
    "DONT PASS": BetType.DONT_PASS, "DON'T PASS": BetType.DONT_PASS,
    "DONT COME": BetType.DONT_COME, "DON'T COME": BetType.DONT_COME,
}


def q2(v) -> Decimal:
    return Decimal(v).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def parse_bet_type(raw: str | BetType) -> BetType:
    if isinstance(raw, BetType):
        return raw
    s = str(raw).strip()
    up = s.upper().replace("_", " ")
    if up in ALIAS_TO_BET_TYPE:
        return ALIAS_TO_BET_TYPE[up]
    try:
        return BetType(up.lower().replace(" ", "_"))
    except ValueError:
        raise InvalidBetType(f"unknown bet type: {s}") from None


@dataclass(frozen=True)
class Bet:
    id: int
    bettor_id: int
    target_id: str
    bet_type: BetType
    amount: Decimal
    placed_during_phase: Phase
    series_id: int


@dataclass(frozen=True)
class ResolutionResult:
    bet: Bet
    won: bool


def decide(bet_type: BetType, total: int, phase: Phase, point: Optional[int]) -> Optional[bool]:
    """
    Win/lose decision for one bet type on one roll, using the phase and
    point as they were before the roll. ``None`` means the roll does not
    decide the bet and it stays in the book.
    """
    if bet_type is BetType.FIELD:
        return total in FIELD_TOTALS

    on_point = phase is Phase.POINT
    if bet_type is BetType.PASS_LINE:
        if on_point:
            if total == point:
                return True
            if total == 7:
                return False
            return None
        if total in NATURALS:
            return True
        if total in CRAPS_TOTALS:
            return False
        return None

    if bet_type is BetType.DONT_PASS:
        if on_point:
            if total == 7:
                return True
            if total == point:
                return False
            return None
        if total in CRAPS_TOTALS:
            return True
        if total in NATURALS:
            return False
        return None

    # Come / Don't Come are only closed at series end
    return None


class BetBook:
    """
    Open wagers for the upcoming or running series.

    Placement debits the stake through the ledger before the bet enters the
    book. Bets leave the book when a roll decides them or when the series
    closes, so resolving the same roll twice never pays twice.
    """

    def __init__(self, ledger, first_bet_id: int = 1):
        self._ledger = ledger
        self._open: Dict[int, Bet] = {}
        self._ids = itertools.count(first_bet_id)
        self.window_open = False

    def __len__(self) -> int:
        return len(self._open)

    def open_bets(self, bettor_id: Optional[int] = None) -> List[Bet]:
        bets = sorted(self._open.values(), key=lambda b: b.id)
        if bettor_id is None:
            return bets
        return [b for b in bets if b.bettor_id == bettor_id]

    def open_window(self) -> None:
        self.window_open = True

    def close_window(self) -> None:
        self.window_open = False

    async def place_bet(self, bettor_id: int, target_id: str, bet_type: BetType | str,
                        amount, phase: Phase, series_id: int) -> Bet:
        if phase is not Phase.IDLE or not self.window_open:
            raise BettingWindowClosed()

        bet_type = parse_bet_type(bet_type)
        try:
            amt = q2(Decimal(str(amount)))
        except ArithmeticError:
            raise InvalidAmount(f"invalid amount: {amount!r}") from None
        if not amt.is_finite() or amt <= 0:
            raise InvalidAmount(f"amount must be positive: {amount!r}")

        target = str(target_id).strip()
        if not target:
            raise InvalidAmount("target is required")
        for b in self._open.values():
            if b.bettor_id == bettor_id and b.target_id == target and b.bet_type is bet_type:
                raise DuplicateBet(f"bettor {bettor_id} already has a {bet_type.value} bet on {target}")

        bet = Bet(
            id=next(self._ids),
            bettor_id=bettor_id,
            target_id=target,
            bet_type=bet_type,
            amount=amt,
            placed_during_phase=phase,
            series_id=series_id,
        )
        # pessimistic debit; raises InsufficientBalance / UnknownBettor
        await self._ledger.reserve(bet)
        self._open[bet.id] = bet
        logger.debug("bet %s placed: bettor=%s %s %s on %s", bet.id, bettor_id, amt, bet_type.value, target)
        return bet

    def resolve(self, total: int, phase_before_roll: Phase,
                point_before_roll: Optional[int]) -> List[ResolutionResult]:
        results: List[ResolutionResult] = []
        for bet in self.open_bets():
            won = decide(bet.bet_type, total, phase_before_roll, point_before_roll)
            if won is None:
                continue
            del self._open[bet.id]
            results.append(ResolutionResult(bet, won))
        return results

    def close_series(self) -> List[ResolutionResult]:
        """Close every bet still open when the series ends, as a loss."""
        results = [ResolutionResult(b, False) for b in self.open_bets()]
        self._open.clear()
        return results
