# File: resolver/routers/vouchers.py
from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session
from typing import List
from resolver.db.session import get_db
from resolver.core.security import get_current_user
from resolver.models.user import User
from resolver.schemas.voucher import RedemptionOut, VoucherOut
from resolver.services import vouchers
from resolver.services.changes import ChangeEvent, ChangeFeed, get_change_feed

router = APIRouter(prefix="/vouchers", tags=["vouchers"])

@router.get("", response_model=List[VoucherOut])
def list_vouchers(db: Session = Depends(get_db), current: User = Depends(get_current_user)):
    return vouchers.list_vouchers(db, current)

@router.post("/{voucher_id}/redeem", response_model=RedemptionOut)
def redeem(
    voucher_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current: User = Depends(get_current_user),
    feed: ChangeFeed = Depends(get_change_feed),
):
    out = vouchers.redeem(db, current, voucher_id)
    background_tasks.add_task(feed.publish, ChangeEvent("profiles", "UPDATE", current.id))
    return out
