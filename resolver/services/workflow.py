# resolver/services/workflow.py
"""Issue status lifecycle and the completion award.

Status changes are compare-and-set writes keyed on the status the caller
observed, so two authorities racing on the same issue cannot both apply the
same transition. The completion award is claimed on the issue row
(``awarded_at IS NULL``) inside the ledger transaction, which makes it
at-most-once per issue regardless of retries or re-entering ``completed``.
"""
import logging
from dataclasses import dataclass
from typing import Literal, Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from resolver.core.config import settings
from resolver.core.errors import (
    AwardFailed,
    Conflict,
    InvalidTransition,
    ResolverError,
    Unauthorized,
    ValidationError,
)
from resolver.models.issue import IssueStatus
from resolver.models.ledger import TransactionReason
from resolver.models.user import User
from resolver.schemas.issue import IssueOut
from resolver.services import issue_repo, ledger

ALLOWED_TRANSITIONS = {
    IssueStatus.pending: frozenset({IssueStatus.in_progress, IssueStatus.rejected}),
    IssueStatus.in_progress: frozenset({IssueStatus.completed}),
    IssueStatus.completed: frozenset(),
    IssueStatus.rejected: frozenset(),
}


@dataclass
class TransitionResult:
    issue: IssueOut
    outcome: Literal["applied", "noop"]
    awarded_points: Optional[int] = None

    @property
    def applied(self) -> bool:
        return self.outcome == "applied"


def can_transition(prior: IssueStatus, target: IssueStatus) -> bool:
    if settings.allow_any_transition:
        return prior != target
    return target in ALLOWED_TRANSITIONS[prior]


def _require_authority(actor: Optional[User]) -> None:
    if actor is None or not actor.is_active or not actor.is_authority:
        raise Unauthorized("Only authorities can change issue status")


def resolve_award_amount(points: Optional[int]) -> int:
    if points is None:
        return settings.completion_award_points
    if points < 1 or points > settings.max_award_points:
        raise ValidationError(f"Award must be between 1 and {settings.max_award_points} points")
    return points


def _award_once(db: Session, issue_id: int, amount: int, actor: User) -> Optional[int]:
    """Claim the issue's award and credit the reporter in one transaction.

    Returns the awarded amount, or None if the issue was already awarded or
    has no reporter to credit.
    """
    if issue_repo.load(db, issue_id, fresh=True).reporter_id is None:
        logging.warning(f"Issue {issue_id} has no reporter; skipping the completion award")
        return None
    try:
        issue = issue_repo.claim_award(db, issue_id, amount)
        if issue is None:
            db.rollback()
            return None
        ledger.award_points(
            db,
            issue.reporter_id,
            amount,
            reason=TransactionReason.issue_completed,
            actor=actor,
            issue_id=issue_id,
            commit=False,
        )
        db.commit()
        return amount
    except (ResolverError, SQLAlchemyError) as e:
        db.rollback()
        logging.error(f"Awarding {amount} points for issue {issue_id} failed: {e}", exc_info=True)
        raise AwardFailed(issue_id) from e


def transition(
    db: Session,
    issue_id: int,
    target: Union[IssueStatus, str],
    actor: Optional[User],
    points: Optional[int] = None,
) -> TransitionResult:
    try:
        target = IssueStatus(target)
    except ValueError:
        raise ValidationError("Invalid status")
    _require_authority(actor)
    amount = resolve_award_amount(points) if target == IssueStatus.completed else None

    issue = issue_repo.load(db, issue_id)
    prior = issue.status
    if prior == target:
        return TransitionResult(issue_repo.get(db, issue_id), "noop")
    if not can_transition(prior, target):
        raise InvalidTransition(
            f"Cannot move an issue from {prior.value.replace('_', ' ')} to {target.value.replace('_', ' ')}"
        )

    if not issue_repo.compare_and_set_status(db, issue_id, prior, target):
        current = issue_repo.load(db, issue_id, fresh=True)
        if current.status == target:
            return TransitionResult(issue_repo.get(db, issue_id), "noop")
        raise Conflict()

    awarded = None
    if target == IssueStatus.completed:
        awarded = _award_once(db, issue_id, amount, actor)
    return TransitionResult(issue_repo.get(db, issue_id), "applied", awarded)


def retry_award(db: Session, issue_id: int, actor: Optional[User], points: Optional[int] = None) -> TransitionResult:
    """Re-run only the award step for a completed issue."""
    _require_authority(actor)
    amount = resolve_award_amount(points)
    issue = issue_repo.load(db, issue_id, fresh=True)
    if issue.status != IssueStatus.completed:
        raise InvalidTransition("Only completed issues can be awarded")
    if issue.awarded_at is not None:
        return TransitionResult(issue_repo.get(db, issue_id), "noop")
    if issue.reporter_id is None:
        raise ValidationError("Issue has no reporter to award")
    awarded = _award_once(db, issue_id, amount, actor)
    outcome = "applied" if awarded else "noop"
    return TransitionResult(issue_repo.get(db, issue_id), outcome, awarded)
