# tests/test_ledger.py
import asyncio
from decimal import Decimal

from craps_api.game.bets import Bet, BetType, ResolutionResult
from craps_api.game.ledger import MemoryBalanceStore, SettlementLedger
from craps_api.game.phase import Phase


def _bet(bet_id, bettor_id, amount, bet_type=BetType.PASS_LINE):
    return Bet(bet_id, bettor_id, "bot-0", bet_type, Decimal(amount), Phase.IDLE, 1)


class FlakyStore(MemoryBalanceStore):
    """Fails every credit for one bettor."""

    def __init__(self, balances, broken_bettor):
        super().__init__(balances)
        self.broken_bettor = broken_bettor

    async def credit_win(self, bet, payout, profit):
        if bet.bettor_id == self.broken_bettor:
            raise RuntimeError("db down")
        return await super().credit_win(bet, payout, profit)


def test_win_pays_even_money_on_top_of_the_debited_stake():
    store = MemoryBalanceStore({1: Decimal("100")})
    ledger = SettlementLedger(store)

    bet = _bet(1, 1, "10")

    async def run():
        await ledger.reserve(bet)
        summary = await ledger.apply([ResolutionResult(bet, True)])
        return summary, await ledger.balance(1)

    summary, entry = asyncio.run(run())
    assert summary.ok
    assert summary.total_paid == Decimal("20.00")
    # net gain == amount * (multiplier - 1)
    assert entry.balance == Decimal("110.00")
    assert entry.total_won == Decimal("10.00")
    assert entry.total_lost == Decimal("0.00")


def test_loss_only_books_total_lost():
    store = MemoryBalanceStore({1: Decimal("100")})
    ledger = SettlementLedger(store)

    bet = _bet(1, 1, "25")

    async def run():
        await ledger.reserve(bet)
        await ledger.apply([ResolutionResult(bet, False)])
        return await ledger.balance(1)

    entry = asyncio.run(run())
    assert entry.balance == Decimal("75.00")
    assert entry.total_lost == Decimal("25.00")


def test_apply_twice_does_not_pay_twice():
    store = MemoryBalanceStore({1: Decimal("0")})
    ledger = SettlementLedger(store)
    results = [ResolutionResult(_bet(7, 1, "5"), True)]

    async def run():
        first = await ledger.apply(results)
        second = await ledger.apply(results)
        return first, second, await ledger.balance(1)

    first, second, entry = asyncio.run(run())
    assert len(first.lines) == 1
    assert second.lines == []
    assert entry.balance == Decimal("10.00")


def test_failed_credit_does_not_block_others():
    store = FlakyStore({1: Decimal("0"), 2: Decimal("0")}, broken_bettor=2)
    ledger = SettlementLedger(store)
    results = [
        ResolutionResult(_bet(1, 2, "10"), True),
        ResolutionResult(_bet(2, 1, "10"), True),
    ]

    async def run():
        summary = await ledger.apply(results)
        return summary, await ledger.balance(1), await ledger.balance(2)

    summary, ok_entry, broken_entry = asyncio.run(run())
    assert not summary.ok
    assert [(e.bet_id, e.bettor_id) for e in summary.errors] == [(1, 2)]
    assert [l.bet_id for l in summary.lines] == [2]
    assert ok_entry.balance == Decimal("20.00")
    assert broken_entry.balance == Decimal("0.00")


def test_failed_result_can_be_retried():
    store = FlakyStore({2: Decimal("0")}, broken_bettor=2)
    ledger = SettlementLedger(store)
    results = [ResolutionResult(_bet(1, 2, "10"), True)]

    async def run():
        await ledger.apply(results)
        store.broken_bettor = None
        return await ledger.apply(results)

    retry = asyncio.run(run())
    assert retry.ok
    assert [l.bet_id for l in retry.lines] == [1]


def test_configurable_multiplier():
    store = MemoryBalanceStore({1: Decimal("0")})
    ledger = SettlementLedger(store, payout_multiplier="3")
    asyncio.run(ledger.apply([ResolutionResult(_bet(1, 1, "10"), True)]))
    entry = asyncio.run(ledger.balance(1))
    assert entry.balance == Decimal("30.00")
    assert entry.total_won == Decimal("20.00")


def test_settled_ids_are_dropped_with_their_series():
    store = MemoryBalanceStore({1: Decimal("0")})
    ledger = SettlementLedger(store)
    first = ResolutionResult(_bet(1, 1, "5"), False)
    other = ResolutionResult(Bet(2, 1, "bot-0", BetType.FIELD, Decimal("5"), Phase.IDLE, 2), False)

    async def run():
        await ledger.apply([first, other])
        ledger.forget_series(1)
        # still remembered for the series that is running
        return await ledger.apply([other])

    again = asyncio.run(run())
    assert again.lines == []
    assert list(ledger._settled) == [2]
