# File: resolver/schemas/profile.py
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class ProfileOut(BaseModel):
    id: int
    username: str
    points: int
    user_type: Optional[str] = None

    class Config:
        from_attributes = True


class PointTransactionOut(BaseModel):
    id: int
    delta: int
    reason: str
    issue_id: Optional[int] = None
    voucher_id: Optional[int] = None
    balance_after: int
    created_at: datetime

    class Config:
        from_attributes = True


class LeaderboardEntry(BaseModel):
    id: int
    username: str
    points: int
    issues: int


class AwardPointsIn(BaseModel):
    points: int = Field(ge=1)


class BalanceOut(BaseModel):
    user_id: int
    points: int
