# File: resolver/schemas/voucher.py
from pydantic import BaseModel


class VoucherOut(BaseModel):
    id: int
    title: str
    points: int
    redeemed: bool = False


class RedemptionOut(BaseModel):
    voucher_id: int
    points_spent: int
    balance: int
