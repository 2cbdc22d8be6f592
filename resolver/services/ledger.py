# resolver/services/ledger.py
"""Points ledger: the only code that changes ``profiles.points``.

The balance change is a single additive UPDATE guarded by
``points + delta >= 0``; a deduction that would take the balance below zero
is rejected with ``InsufficientBalance`` rather than clamped. At-most-once
semantics for awards are the caller's job (see ``services.workflow``).
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from resolver.core.errors import (
    InsufficientBalance,
    ResolverError,
    TransientError,
    Unauthorized,
    UserNotFound,
    ValidationError,
)
from resolver.models.issue import Issue
from resolver.models.ledger import PointTransaction, TransactionReason
from resolver.models.profile import Profile
from resolver.models.user import User, UserType


def ensure_profile(db: Session, user: User, username: Optional[str] = None) -> Optional[Profile]:
    """Provision the profile for ``user`` if it does not exist yet.

    Failures are logged and swallowed: a missing profile must not block
    sign-in. Returns the profile, or None if provisioning failed.
    """
    try:
        profile = db.query(Profile).filter(Profile.id == user.id).first()
        if profile:
            return profile
        profile = Profile(id=user.id, username=username or user.email.split("@")[0], points=0)
        db.add(profile)
        db.commit()
        db.refresh(profile)
        return profile
    except Exception as e:
        db.rollback()
        logging.error(f"Failed to provision profile for user {user.id}: {e}", exc_info=True)
        return None


def get_profile(db: Session, user_id: int) -> Profile:
    profile = db.query(Profile).filter(Profile.id == user_id).first()
    if not profile:
        raise UserNotFound()
    return profile


def get_balance(db: Session, user_id: int) -> int:
    return get_profile(db, user_id).points


def _check_actor(actor: Optional[User], user_id: int, delta: int) -> None:
    if actor is None:
        return
    if delta > 0 and not actor.is_authority:
        raise Unauthorized("Only authorities can award points")
    if delta < 0 and actor.id != user_id:
        raise Unauthorized("Points can only be redeemed by their owner")


def award_points(
    db: Session,
    user_id: int,
    delta: int,
    *,
    reason: TransactionReason,
    actor: Optional[User] = None,
    issue_id: Optional[int] = None,
    voucher_id: Optional[int] = None,
    commit: bool = True,
) -> int:
    """Apply ``delta`` to the user's balance and return the new balance.

    With ``commit=False`` the change joins the caller's transaction and the
    caller is responsible for commit / rollback.
    """
    if not isinstance(delta, int) or isinstance(delta, bool) or delta == 0:
        raise ValidationError("Points must be a non-zero whole number")
    if delta < 0 and reason != TransactionReason.redemption:
        raise ValidationError("Only redemptions can deduct points")
    _check_actor(actor, user_id, delta)

    try:
        updated = (
            db.query(Profile)
            .filter(Profile.id == user_id, Profile.points + delta >= 0)
            .update(
                {
                    Profile.points: Profile.points + delta,
                    Profile.updated_at: datetime.now(timezone.utc),
                },
                synchronize_session=False,
            )
        )
        if not updated:
            if not db.query(Profile.id).filter(Profile.id == user_id).first():
                raise UserNotFound()
            raise InsufficientBalance()

        balance = db.query(Profile.points).filter(Profile.id == user_id).scalar()
        db.add(
            PointTransaction(
                user_id=user_id,
                delta=delta,
                reason=reason.value,
                issue_id=issue_id,
                voucher_id=voucher_id,
                balance_after=balance,
            )
        )
        if commit:
            db.commit()
        return balance
    except ResolverError:
        if commit:
            db.rollback()
        raise
    except OperationalError as e:
        db.rollback()
        logging.warning(f"Ledger update for user {user_id} failed: {e}")
        raise TransientError() from e


def history(db: Session, user_id: int, limit: int = 50) -> list[PointTransaction]:
    return (
        db.query(PointTransaction)
        .filter(PointTransaction.user_id == user_id)
        .order_by(PointTransaction.created_at.desc(), PointTransaction.id.desc())
        .limit(limit)
        .all()
    )


def leaderboard(db: Session, limit: int = 10) -> list[dict]:
    rows = (
        db.query(Profile, func.count(Issue.id).label("issue_count"))
        .join(User, User.id == Profile.id)
        .outerjoin(Issue, Issue.reporter_id == Profile.id)
        .filter(User.user_type == UserType.resident)
        .group_by(Profile.id)
        .order_by(Profile.points.desc(), Profile.id.asc())
        .limit(limit)
        .all()
    )
    return [
        {"id": p.id, "username": p.username, "points": p.points, "issues": count}
        for p, count in rows
    ]
