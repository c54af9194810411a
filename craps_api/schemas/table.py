from typing import Any, Dict, List, Optional
from pydantic import BaseModel

class TableStateResp(BaseModel):
    series_id: int
    next_series_id: int
    phase: str
    point: Optional[int] = None
    scheduler_state: str
    betting_open: bool
    open_bets: int
    rolls_this_series: int
    roll_in_flight: Optional[str] = None

class RollItem(BaseModel):
    series_id: int
    sequence: int
    die1: int
    die2: int
    total: int
    outcome: str
    source_ref: str

class RollHistoryResp(BaseModel):
    list: List[RollItem]

class TickResp(BaseModel):
    fired: bool
    event: Optional[Dict[str, Any]] = None
