# craps_api/game/phase.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Phase(str, Enum):
    IDLE = "idle"
    COME_OUT = "come_out"
    POINT = "point"


class Outcome(str, Enum):
    NATURAL_WIN = "natural_win"
    CRAPS = "craps"
    POINT_ESTABLISHED = "point_established"
    POINT_MADE = "point_made"
    SEVEN_OUT = "seven_out"
    NO_CHANGE = "no_change"


NATURALS = frozenset({7, 11})
CRAPS_TOTALS = frozenset({2, 3, 12})
POINT_NUMBERS = frozenset({4, 5, 6, 8, 9, 10})
TERMINAL_OUTCOMES = frozenset({Outcome.POINT_MADE, Outcome.SEVEN_OUT})


@dataclass(frozen=True)
class PhaseState:
    phase: Phase = Phase.IDLE
    point: Optional[int] = None

    def __post_init__(self):
        # point is set iff the phase is POINT
        if self.phase is Phase.POINT:
            if self.point not in POINT_NUMBERS:
                raise ValueError(f"invalid point {self.point!r}")
        elif self.point is not None:
            raise ValueError(f"point must be empty in phase {self.phase.value}")


@dataclass(frozen=True)
class Transition:
    next: PhaseState
    outcome: Outcome

    @property
    def terminal(self) -> bool:
        return self.outcome in TERMINAL_OUTCOMES


def advance(current: PhaseState, total: int) -> Transition:
    """
    Apply one dice total to the current phase/point.

    Idle and ComeOut behave the same: 7/11 is a natural, 2/3/12 is craps
    (both keep the series on the come-out), anything else establishes the
    point. In the Point phase the point repeats (PointMade) or a 7 shows
    (SevenOut), both returning to Idle; any other total changes nothing.
    """
    if not 2 <= total <= 12:
        raise ValueError(f"dice total out of range: {total}")

    if current.phase is Phase.POINT:
        if total == current.point:
            return Transition(PhaseState(Phase.IDLE), Outcome.POINT_MADE)
        if total == 7:
            return Transition(PhaseState(Phase.IDLE), Outcome.SEVEN_OUT)
        return Transition(current, Outcome.NO_CHANGE)

    if total in NATURALS:
        return Transition(PhaseState(Phase.COME_OUT), Outcome.NATURAL_WIN)
    if total in CRAPS_TOTALS:
        return Transition(PhaseState(Phase.COME_OUT), Outcome.CRAPS)
    return Transition(PhaseState(Phase.POINT, total), Outcome.POINT_ESTABLISHED)
