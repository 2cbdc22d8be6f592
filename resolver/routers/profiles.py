# File: resolver/routers/profiles.py
from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.orm import Session
from typing import List
from resolver.db.session import get_db
from resolver.core.security import get_current_user, require_user_type
from resolver.models.ledger import TransactionReason
from resolver.models.user import User
from resolver.schemas.profile import (
    AwardPointsIn,
    BalanceOut,
    LeaderboardEntry,
    PointTransactionOut,
    ProfileOut,
)
from resolver.services import ledger, workflow
from resolver.services.changes import ChangeEvent, ChangeFeed, get_change_feed

router = APIRouter(prefix="/profiles", tags=["profiles"])

@router.get("/me", response_model=ProfileOut)
def my_profile(db: Session = Depends(get_db), current: User = Depends(get_current_user)):
    p = ledger.get_profile(db, current.id)
    return {"id": p.id, "username": p.username, "points": p.points, "user_type": current.user_type.value}

@router.get("/me/transactions", response_model=List[PointTransactionOut])
def my_transactions(
    limit: int = Query(default=50, ge=1, le=500),
    db: Session = Depends(get_db),
    current: User = Depends(get_current_user),
):
    return ledger.history(db, current.id, limit=limit)

@router.get("/leaderboard", response_model=List[LeaderboardEntry])
def leaderboard(limit: int = Query(default=10, ge=1, le=100), db: Session = Depends(get_db)):
    return ledger.leaderboard(db, limit=limit)

@router.post("/{user_id}/award", response_model=BalanceOut, dependencies=[Depends(require_user_type("authority"))])
def award(
    user_id: int,
    body: AwardPointsIn,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current: User = Depends(get_current_user),
    feed: ChangeFeed = Depends(get_change_feed),
):
    """Direct award by an authority, outside the issue workflow."""
    amount = workflow.resolve_award_amount(body.points)
    balance = ledger.award_points(
        db, user_id, amount, reason=TransactionReason.manual_award, actor=current
    )
    background_tasks.add_task(feed.publish, ChangeEvent("profiles", "UPDATE", user_id))
    return {"user_id": user_id, "points": balance}
