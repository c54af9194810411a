# tests/conftest.py
import os
import tempfile

# configure before craps_api.core.config is imported
_DB_DIR = tempfile.mkdtemp(prefix="craps-api-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ["AUTO_START_SCHEDULER"] = "false"
os.environ["ROLL_POLL_INTERVAL_SECONDS"] = "0"
os.environ["ROLL_POLL_MAX_ATTEMPTS"] = "3"
os.environ["ORACLE_SEED"] = "7"
os.environ["STARTING_BALANCE"] = "10000"
os.environ["TZ"] = "UTC"
os.environ["OPERATOR_USERNAMES"] = "croupier,pitboss"

from decimal import Decimal

import pytest

from craps_api.game.ledger import MemoryBalanceStore, SettlementLedger
from craps_api.game.roll_source import LocalOracleClient, RollSource
from craps_api.game.table import GameTable
from craps_api.tasks.scheduler import RollScheduler


class FakeClock:
    def __init__(self, t: float = 0.0):
        self.t = t

    def __call__(self) -> float:
        return self.t

    def advance(self, seconds: float) -> None:
        self.t += seconds


def make_table(balances=None):
    store = MemoryBalanceStore(balances or {1: Decimal("10000"), 2: Decimal("500")})
    ledger = SettlementLedger(store, Decimal("2"))
    return GameTable(ledger), store


def make_scheduler(script=(), fulfill_after=1, balances=None, **kwargs):
    table, store = make_table(balances)
    client = LocalOracleClient(seed=1, fulfill_after=fulfill_after, script=script)
    kwargs.setdefault("max_attempts", 3)
    kwargs.setdefault("poll_interval", 0)
    kwargs.setdefault("cooldown_seconds", 3)
    sched = RollScheduler(table, RollSource(client), **kwargs)
    return sched, table, store, client


@pytest.fixture
def clock():
    return FakeClock()
