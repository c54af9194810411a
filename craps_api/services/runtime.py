# craps_api/services/runtime.py
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from fastapi import Request

from craps_api.core.config import settings
from craps_api.game.ledger import BalanceStore, SettlementLedger
from craps_api.game.roll_source import (
    HttpOracleClient,
    LocalOracleClient,
    OracleClient,
    PendingPolicy,
    RollSource,
)
from craps_api.game.table import GameTable
from craps_api.services.history_service import HistoryRecorder
from craps_api.services.ledger_store import SqlBalanceStore
from craps_api.tasks.scheduler import RollScheduler


@dataclass
class Runtime:
    table: GameTable
    ledger: SettlementLedger
    roll_source: RollSource
    scheduler: RollScheduler
    history: HistoryRecorder


def build_oracle_client() -> OracleClient:
    if settings.ORACLE_URL:
        return HttpOracleClient(settings.ORACLE_URL)
    seed = int(settings.ORACLE_SEED) if settings.ORACLE_SEED else None
    return LocalOracleClient(seed=seed, fulfill_after=settings.ORACLE_FULFILL_AFTER)


def build_runtime(
    first_series_id: int = 1,
    first_bet_id: int = 1,
    store: Optional[BalanceStore] = None,
    client: Optional[OracleClient] = None,
    history: Optional[HistoryRecorder] = None,
) -> Runtime:
    ledger = SettlementLedger(store or SqlBalanceStore(), Decimal(settings.PAYOUT_MULTIPLIER))
    table = GameTable(ledger, first_series_id=first_series_id, first_bet_id=first_bet_id)
    roll_source = RollSource(client or build_oracle_client())
    history = history or HistoryRecorder()
    roll_scheduler = RollScheduler(
        table,
        roll_source,
        max_attempts=settings.ROLL_POLL_MAX_ATTEMPTS,
        poll_interval=settings.ROLL_POLL_INTERVAL_SECONDS,
        cooldown_seconds=settings.SERIES_COOLDOWN_SECONDS,
        betting_window_seconds=settings.BETTING_WINDOW_SECONDS,
        pending_policy=PendingPolicy(settings.PENDING_POLICY.lower()),
        on_series_start=history.record_series_start,
    )
    roll_scheduler.subscribe(history.record_tick_event)
    return Runtime(table, ledger, roll_source, roll_scheduler, history)


def get_runtime(request: Request) -> Runtime:
    return request.app.state.runtime
