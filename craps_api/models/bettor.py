from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, Numeric, DateTime, Boolean, func
from craps_api.db.session import Base, BigIntPK

class Bettor(Base):
    __tablename__ = "bettor"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    nickname: Mapped[str | None] = mapped_column(String(64))
    status: Mapped[int] = mapped_column(Integer, default=1)
    # may drive the table: open/start/roll/stop
    is_operator: Mapped[bool] = mapped_column(Boolean, default=False)

    # ledger entry
    balance: Mapped[float] = mapped_column(Numeric(16, 2), default=0)
    total_won: Mapped[float] = mapped_column(Numeric(16, 2), default=0)
    total_lost: Mapped[float] = mapped_column(Numeric(16, 2), default=0)
    total_wagered: Mapped[float] = mapped_column(Numeric(16, 2), default=0)
    series_played: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now()
    )
