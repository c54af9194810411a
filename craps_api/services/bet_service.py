from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from craps_api.game.bets import Bet
from craps_api.game.table import GameTable
from craps_api.models.bet import BetRecord
from craps_api.schemas.bets import BetIn


async def place_bet(table: GameTable, bettor_id: int, bet: BetIn) -> Bet:
    """
    Place a bet on the table. The window check runs there; the balance
    debit and the bet row insert commit in one transaction in the ledger
    store, so a failed insert leaves neither a debit nor a bet in the book.
    """
    return await table.place_bet(bettor_id, bet.target, bet.bet_type, bet.amount)


async def bet_history(session: AsyncSession, bettor_id: int, limit: int = 20):
    rs = await session.execute(
        select(BetRecord).where(BetRecord.bettor_id == bettor_id)
        .order_by(BetRecord.id.desc()).limit(limit)
    )
    return rs.scalars().all()
