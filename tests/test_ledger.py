import pytest
from sqlalchemy.exc import OperationalError

from resolver.core.errors import (
    InsufficientBalance,
    TransientError,
    Unauthorized,
    UserNotFound,
    ValidationError,
)
from resolver.models.ledger import PointTransaction, TransactionReason
from resolver.models.profile import Profile
from resolver.schemas.issue import IssueDraft
from resolver.services import issue_repo, ledger


def test_award_returns_new_balance(db, resident, authority):
    balance = ledger.award_points(db, resident.id, 75, reason=TransactionReason.manual_award, actor=authority)
    assert balance == 75
    assert ledger.award_points(db, resident.id, 25, reason=TransactionReason.manual_award) == 100

    rows = ledger.history(db, resident.id)
    assert [r.delta for r in rows] == [25, 75]
    assert rows[0].balance_after == 100
    assert rows[0].reason == "manual_award"


def test_deduction_below_zero_is_rejected(db, make_user, balance_of):
    user = make_user("poor@example.com", points=60)
    with pytest.raises(InsufficientBalance):
        ledger.award_points(db, user.id, -100, reason=TransactionReason.redemption, actor=user)
    assert balance_of(user.id) == 60
    assert db.query(PointTransaction).count() == 0


def test_deduction_within_balance(db, make_user, balance_of):
    user = make_user("rich@example.com", points=150)
    assert ledger.award_points(db, user.id, -100, reason=TransactionReason.redemption, actor=user) == 50
    assert balance_of(user.id) == 50


def test_unknown_user(db):
    with pytest.raises(UserNotFound):
        ledger.award_points(db, 4242, 10, reason=TransactionReason.manual_award)


def test_zero_delta_is_invalid(db, resident):
    with pytest.raises(ValidationError):
        ledger.award_points(db, resident.id, 0, reason=TransactionReason.manual_award)


def test_only_redemptions_deduct(db, make_user, balance_of):
    user = make_user("saver@example.com", points=50)
    with pytest.raises(ValidationError):
        ledger.award_points(db, user.id, -10, reason=TransactionReason.manual_award, actor=user)
    assert balance_of(user.id) == 50


def test_residents_cannot_award(db, resident, make_user):
    other = make_user("other@example.com")
    with pytest.raises(Unauthorized):
        ledger.award_points(db, other.id, 10, reason=TransactionReason.manual_award, actor=resident)


def test_only_owner_can_spend(db, make_user, authority):
    user = make_user("saver@example.com", points=500)
    with pytest.raises(Unauthorized):
        ledger.award_points(db, user.id, -100, reason=TransactionReason.redemption, actor=authority)


def test_database_failure_is_transient(db, resident, monkeypatch):
    def unavailable(*args, **kwargs):
        raise OperationalError("UPDATE profiles", {}, Exception("server closed the connection"))

    monkeypatch.setattr(db, "query", unavailable)
    with pytest.raises(TransientError):
        ledger.award_points(db, resident.id, 10, reason=TransactionReason.manual_award)


def test_ensure_profile_is_idempotent(db, make_user):
    user = make_user("lazy@example.com", profile=False)
    created = ledger.ensure_profile(db, user)
    assert created.username == "lazy"
    assert created.points == 0
    assert ledger.ensure_profile(db, user, username="other").username == "lazy"
    assert db.query(Profile).filter(Profile.id == user.id).count() == 1


def test_ensure_profile_failure_is_swallowed(db, make_user, monkeypatch):
    user = make_user("flaky@example.com", profile=False)

    def unavailable(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("timeout"))

    monkeypatch.setattr(db, "query", unavailable)
    assert ledger.ensure_profile(db, user) is None


def test_leaderboard_ranks_residents_by_points(db, make_user, authority):
    low = make_user("low@example.com", username="Low", points=10)
    high = make_user("high@example.com", username="High", points=500)
    make_user("mid@example.com", username="Mid", points=200)
    issue_repo.create(db, IssueDraft(title="Broken Light", description="Dark", location="Elm St"), high)
    issue_repo.create(db, IssueDraft(title="Pothole", description="Deep", location="Main St"), high)
    issue_repo.create(db, IssueDraft(title="Litter", description="Bags", location="Park"), low)

    board = ledger.leaderboard(db, limit=10)
    assert [row["username"] for row in board] == ["High", "Mid", "Low"]
    assert board[0]["issues"] == 2
    assert board[1]["issues"] == 0
    assert authority.id not in {row["id"] for row in board}


def test_get_balance(db, make_user):
    user = make_user("bal@example.com", points=30)
    assert ledger.get_balance(db, user.id) == 30
    with pytest.raises(UserNotFound):
        ledger.get_balance(db, 999)
