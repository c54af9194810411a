# craps_api/tasks/scheduler.py
import inspect
import logging
import time
from enum import Enum
from typing import Awaitable, Callable, List, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from craps_api.core.config import settings
from craps_api.core.errors import OracleUnavailable, SchedulerStateError, SchedulerTickError
from craps_api.game.roll_source import Pending, PendingPolicy, RequestHandle, RollSource
from craps_api.game.table import GameTable, Series, TickEvent

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()

ROLL_JOB_ID = "craps_roll_tick"


class SchedulerState(str, Enum):
    IDLE = "idle"
    AWAITING_BETTING_CLOSE = "awaiting_betting_close"
    ROLLING = "rolling"
    SERIES_ENDED = "series_ended"


class RollScheduler:
    """
    Drives rounds: request -> poll -> resolve -> settle -> continue or stop.

    ``tick`` is invoked by an external driver (APScheduler job, HTTP
    operator endpoint, tests). Overlapping ticks are skipped, and at most one
    oracle request is outstanding: a roll still pending under the ``wait``
    policy is re-polled on the next tick instead of being requested again.
    """

    def __init__(
        self,
        table: GameTable,
        roll_source: RollSource,
        *,
        max_attempts: int = 10,
        poll_interval: float = 3,
        cooldown_seconds: float = 3,
        betting_window_seconds: Optional[float] = None,
        pending_policy: PendingPolicy = PendingPolicy.WAIT,
        on_series_start: Optional[Callable[[Series], Awaitable[None]]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.table = table
        self.roll_source = roll_source
        self.max_attempts = max_attempts
        self.poll_interval = poll_interval
        self.cooldown_seconds = cooldown_seconds
        self.betting_window_seconds = betting_window_seconds or None
        self.pending_policy = PendingPolicy(pending_policy)
        self.on_series_start = on_series_start
        self.clock = clock

        self.state = SchedulerState.IDLE
        self.stopped = False
        self._handle: Optional[RequestHandle] = None
        self._ticking = False
        self._window_opened_at: Optional[float] = None
        self._ended_at: Optional[float] = None
        self._listeners: List[Callable] = []

    @property
    def in_flight(self) -> Optional[RequestHandle]:
        return self._handle

    def subscribe(self, listener: Callable[[TickEvent], object]) -> None:
        """Register a TickEvent consumer; sync or async callables."""
        self._listeners.append(listener)

    # ------------------------------
    # transitions
    # ------------------------------
    def open_betting_window(self) -> None:
        if self.state is not SchedulerState.IDLE:
            raise SchedulerStateError(f"cannot open betting from {self.state.value}")
        self.table.open_betting_window()
        self.state = SchedulerState.AWAITING_BETTING_CLOSE
        self._window_opened_at = self.clock()
        logger.info("betting window open for series %s", self.table.next_series_id)

    async def start_series(self) -> Series:
        if self.state is not SchedulerState.AWAITING_BETTING_CLOSE:
            raise SchedulerStateError(f"cannot start a series from {self.state.value}")
        series = await self.table.begin_series()
        if self.on_series_start is not None:
            try:
                await self.on_series_start(series)
            except Exception:
                # back to betting; the caller may retry
                await self.table.abort_series(series)
                raise
        self.state = SchedulerState.ROLLING
        return series

    def stop(self) -> None:
        self.stopped = True
        logger.info("roll scheduler stopped")

    # ------------------------------
    # tick
    # ------------------------------
    async def tick(self) -> Optional[TickEvent]:
        if self.stopped:
            return None
        if self._ticking:
            logger.debug("previous tick still running; skipping")
            return None
        self._ticking = True
        try:
            return await self._tick()
        except OracleUnavailable as e:
            logger.warning("oracle unavailable: %s", e)
            return None
        except Exception as e:
            err = SchedulerTickError(f"tick failed in state {self.state.value}: {e}")
            logger.exception("%s", err)
            return None
        finally:
            self._ticking = False

    async def _tick(self) -> Optional[TickEvent]:
        if self.state is SchedulerState.SERIES_ENDED:
            if self.clock() - self._ended_at >= self.cooldown_seconds:
                self.state = SchedulerState.IDLE
                self.open_betting_window()
            return None

        if self.state is SchedulerState.AWAITING_BETTING_CLOSE:
            if self.betting_window_seconds is not None and \
                    self.clock() - self._window_opened_at >= self.betting_window_seconds:
                await self.start_series()
            return None

        if self.state is not SchedulerState.ROLLING:
            return None

        if self._handle is None:
            self._handle = await self.roll_source.request_roll()
        handle = self._handle

        outcome = await self.roll_source.poll_result(handle, self.max_attempts, self.poll_interval)
        if self.stopped:
            logger.info("scheduler stopped while polling; discarding result of %s", handle.request_id)
            return None

        if isinstance(outcome, Pending):
            if self.pending_policy is PendingPolicy.WAIT:
                logger.warning(
                    "roll %s still pending after %s attempts; waiting for next tick",
                    outcome.request_id, outcome.attempts,
                )
                event = self.table.pending_event()
                await self._emit(event)
                return event
            if self.pending_policy is PendingPolicy.FAIL:
                self._handle = None
                raise OracleUnavailable(f"roll {outcome.request_id} not fulfilled after {outcome.attempts} attempts")
            outcome = self.roll_source.substitute(outcome)

        self._handle = None
        event = await self.table.apply_roll(outcome.die1, outcome.die2, outcome.source_ref)
        if event.series_ended:
            self.state = SchedulerState.SERIES_ENDED
            self._ended_at = self.clock()
        await self._emit(event)
        return event

    async def _emit(self, event: TickEvent) -> None:
        for listener in self._listeners:
            try:
                res = listener(event)
                if inspect.isawaitable(res):
                    await res
            except Exception as e:
                logger.exception("tick listener %r failed: %s", listener, e)


def start_scheduler(roll_scheduler: RollScheduler):
    """
    Register the roll tick as an interval job:
      - coalesce + max_instances=1 so a slow poll never overlaps the next tick
    """
    scheduler.add_job(
        roll_scheduler.tick,
        "interval",
        seconds=settings.ROLL_INTERVAL_SECONDS,
        id=ROLL_JOB_ID,
        replace_existing=True,
        coalesce=True,
        max_instances=1,
        misfire_grace_time=10,
    )

    if not scheduler.running:
        scheduler.start()
        logger.info("Scheduler started")


def stop_scheduler(roll_scheduler: RollScheduler):
    roll_scheduler.stop()
    if scheduler.get_job(ROLL_JOB_ID):
        scheduler.remove_job(ROLL_JOB_ID)
    if scheduler.running:
        scheduler.shutdown(wait=False)
