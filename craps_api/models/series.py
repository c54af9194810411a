from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, Numeric, DateTime, BigInteger, SmallInteger, func
from craps_api.db.session import Base, BigIntPK

class SeriesRecord(Base):
    __tablename__ = "series"

    # engine-assigned, monotonic across restarts
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=False)
    phase: Mapped[str] = mapped_column(String(16), nullable=False)
    point: Mapped[int | None] = mapped_column(SmallInteger)
    outcome: Mapped[str | None] = mapped_column(String(32))

    roll_count: Mapped[int] = mapped_column(Integer, default=0)
    bets_placed: Mapped[int] = mapped_column(Integer, default=0)
    amount_wagered: Mapped[float] = mapped_column(Numeric(16, 2), default=0)
    total_payouts: Mapped[float] = mapped_column(Numeric(16, 2), default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    ended_at: Mapped[datetime | None] = mapped_column(DateTime)


class RollRecord(Base):
    __tablename__ = "roll"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    series_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    die1: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    die2: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    total: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    outcome: Mapped[str] = mapped_column(String(32), nullable=False)
    source_ref: Mapped[str] = mapped_column(String(128), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
