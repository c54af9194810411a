from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Numeric, DateTime, BigInteger, SmallInteger, func
from craps_api.db.session import Base, BigIntPK

STATUS_OPEN = 1
STATUS_WON = 4
STATUS_LOST = 5
STATUS_VOID = 9

class BetRecord(Base):
    __tablename__ = "bet"

    # engine-assigned bet id
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=False)
    bettor_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    series_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    target_id: Mapped[str] = mapped_column(String(64), nullable=False)
    bet_type: Mapped[str] = mapped_column(String(16), nullable=False)
    amount: Mapped[float] = mapped_column(Numeric(16, 2), nullable=False)
    placed_during_phase: Mapped[str] = mapped_column(String(16), nullable=False)
    status: Mapped[int] = mapped_column(SmallInteger, default=STATUS_OPEN)  # 1 open 4 won 5 lost 9 void
    payout: Mapped[float] = mapped_column(Numeric(16, 2), default=0)
    settled_at: Mapped[datetime | None] = mapped_column(DateTime)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
