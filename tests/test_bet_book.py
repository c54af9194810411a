# tests/test_bet_book.py
import asyncio
from decimal import Decimal

import pytest

from craps_api.core.errors import (
    BettingWindowClosed,
    DuplicateBet,
    InsufficientBalance,
    InvalidAmount,
    InvalidBetType,
    UnknownBettor,
)
from craps_api.game.bets import BetBook, BetType, decide, parse_bet_type
from craps_api.game.ledger import MemoryBalanceStore, SettlementLedger
from craps_api.game.phase import Phase


def _book(balances=None):
    store = MemoryBalanceStore(balances or {1: Decimal("100"), 2: Decimal("100")})
    book = BetBook(SettlementLedger(store))
    book.open_window()
    return book, store


def _place(book, bettor_id, target, bet_type, amount, phase=Phase.IDLE):
    return asyncio.run(book.place_bet(bettor_id, target, bet_type, amount, phase=phase, series_id=1))


def test_decide_rules():
    # come-out
    assert decide(BetType.PASS_LINE, 7, Phase.COME_OUT, None) is True
    assert decide(BetType.PASS_LINE, 11, Phase.IDLE, None) is True
    assert decide(BetType.PASS_LINE, 2, Phase.COME_OUT, None) is False
    assert decide(BetType.PASS_LINE, 6, Phase.COME_OUT, None) is None
    assert decide(BetType.DONT_PASS, 12, Phase.COME_OUT, None) is True
    assert decide(BetType.DONT_PASS, 7, Phase.COME_OUT, None) is False
    assert decide(BetType.DONT_PASS, 8, Phase.COME_OUT, None) is None
    # point
    assert decide(BetType.PASS_LINE, 6, Phase.POINT, 6) is True
    assert decide(BetType.PASS_LINE, 7, Phase.POINT, 6) is False
    assert decide(BetType.PASS_LINE, 8, Phase.POINT, 6) is None
    assert decide(BetType.DONT_PASS, 7, Phase.POINT, 6) is True
    assert decide(BetType.DONT_PASS, 6, Phase.POINT, 6) is False
    assert decide(BetType.DONT_PASS, 11, Phase.POINT, 6) is None
    # field ignores the phase
    for phase, point in ((Phase.COME_OUT, None), (Phase.POINT, 5)):
        assert [t for t in range(2, 13) if decide(BetType.FIELD, t, phase, point)] == [2, 3, 4, 9, 10, 11, 12]
    # come / don't come never decided by a roll
    assert decide(BetType.COME, 7, Phase.COME_OUT, None) is None
    assert decide(BetType.DONT_COME, 2, Phase.POINT, 4) is None


def test_parse_bet_type_aliases():
    assert parse_bet_type("Pass Line") is BetType.PASS_LINE
    assert parse_bet_type("pass") is BetType.PASS_LINE
    assert parse_bet_type("Don't Pass") is BetType.DONT_PASS
    assert parse_bet_type("dont_come") is BetType.DONT_COME
    assert parse_bet_type("FIELD") is BetType.FIELD
    with pytest.raises(InvalidBetType):
        parse_bet_type("hardways")


def test_place_bet_debits_immediately():
    book, store = _book()
    bet = _place(book, 1, "bot-0", "pass_line", 10)
    assert bet.amount == Decimal("10.00")
    assert bet.placed_during_phase is Phase.IDLE
    assert asyncio.run(store.get_entry(1)).balance == Decimal("90.00")
    assert len(book) == 1


def test_place_bet_rejected_when_window_closed_or_rolling():
    book, store = _book()
    with pytest.raises(BettingWindowClosed):
        _place(book, 1, "bot-0", "pass_line", 10, phase=Phase.COME_OUT)
    book.close_window()
    with pytest.raises(BettingWindowClosed):
        _place(book, 1, "bot-0", "pass_line", 10)
    assert asyncio.run(store.get_entry(1)).balance == Decimal("100.00")


@pytest.mark.parametrize("amount", [0, -5, "abc"])
def test_place_bet_invalid_amount(amount):
    book, _ = _book()
    with pytest.raises(InvalidAmount):
        _place(book, 1, "bot-0", "field", amount)


def test_place_bet_insufficient_balance_and_unknown_bettor():
    book, store = _book()
    with pytest.raises(InsufficientBalance):
        _place(book, 1, "bot-0", "field", 100.01)
    with pytest.raises(UnknownBettor):
        _place(book, 99, "bot-0", "field", 1)
    assert len(book) == 0
    assert asyncio.run(store.get_entry(1)).balance == Decimal("100.00")


def test_one_bet_per_target_and_type():
    book, _ = _book()
    _place(book, 1, "bot-0", "pass_line", 10)
    with pytest.raises(DuplicateBet):
        _place(book, 1, "bot-0", "pass_line", 5)
    # another type on the same target is a separate row
    _place(book, 1, "bot-0", "field", 5)
    # another bettor on the same target
    _place(book, 2, "bot-0", "pass_line", 5)
    assert len(book) == 3


def test_resolve_closes_decided_bets_and_second_call_is_noop():
    book, _ = _book()
    _place(book, 1, "bot-0", "pass_line", 10)
    _place(book, 2, "bot-1", "dont_pass", 10)
    first = book.resolve(7, Phase.COME_OUT, None)
    assert {(r.bet.bettor_id, r.won) for r in first} == {(1, True), (2, False)}
    assert len(book) == 0
    assert book.resolve(7, Phase.COME_OUT, None) == []


def test_pass_line_rides_through_point_phase():
    book, _ = _book()
    _place(book, 1, "bot-0", "pass_line", 10)
    _place(book, 1, "bot-1", "field", 10)
    # point established: field decided, pass line stays
    res = book.resolve(6, Phase.COME_OUT, None)
    assert [(r.bet.bet_type, r.won) for r in res] == [(BetType.FIELD, False)]
    assert [b.bet_type for b in book.open_bets()] == [BetType.PASS_LINE]
    assert book.resolve(8, Phase.POINT, 6) == []
    res = book.resolve(6, Phase.POINT, 6)
    assert [(r.bet.bet_type, r.won) for r in res] == [(BetType.PASS_LINE, True)]


def test_close_series_loses_undecided_bets():
    book, _ = _book()
    _place(book, 1, "bot-0", "come", 10)
    _place(book, 2, "bot-0", "dont_come", 10)
    assert book.resolve(7, Phase.POINT, 4) == []
    closed = book.close_series()
    assert len(closed) == 2
    assert all(r.won is False for r in closed)
    assert len(book) == 0


def test_open_bets_filter_by_bettor():
    book, _ = _book()
    _place(book, 1, "bot-0", "field", 1)
    _place(book, 2, "bot-0", "field", 1)
    assert [b.bettor_id for b in book.open_bets(2)] == [2]
