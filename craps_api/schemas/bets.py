from typing import Optional
from pydantic import BaseModel, Field

# target: the entity being backed (e.g. a bot id)
class BetIn(BaseModel):
    target: str | int
    bet_type: str = "pass_line"    # pass_line / dont_pass / field / come / dont_come
    amount: float = Field(gt=0)

class BetOut(BaseModel):
    bet_id: int
    series_id: int
    target: str
    bet_type: str
    amount: float
    placed_during_phase: str
    balance: Optional[float] = None

class BetHistoryItem(BaseModel):
    id: int
    series_id: int
    target: str
    bet_type: str
    amount: float
    status: int  # 1 open 4 won 5 lost 9 void
    payout: float
