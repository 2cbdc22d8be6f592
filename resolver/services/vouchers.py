# resolver/services/vouchers.py
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from resolver.core.errors import AlreadyRedeemed, NotFound, Unauthorized
from resolver.models.ledger import TransactionReason
from resolver.models.user import User, UserType
from resolver.models.voucher import VoucherRedemption
from resolver.services import ledger


@dataclass(frozen=True)
class Voucher:
    id: int
    title: str
    points: int


CATALOG = (
    Voucher(1, "10% Hospital Discount", 100),
    Voucher(2, "Shopping Gift Card $50", 200),
    Voucher(3, "Utility Bill Discount", 150),
)


def get_voucher(voucher_id: int) -> Voucher:
    for v in CATALOG:
        if v.id == voucher_id:
            return v
    raise NotFound("Voucher not found")


def list_vouchers(db: Session, user: User) -> list[dict]:
    redeemed = {
        r.voucher_id
        for r in db.query(VoucherRedemption).filter(VoucherRedemption.user_id == user.id)
    }
    return [
        {"id": v.id, "title": v.title, "points": v.points, "redeemed": v.id in redeemed}
        for v in CATALOG
    ]


def redeem(db: Session, user: User, voucher_id: int) -> dict:
    """Spend points on a voucher. Deduction and redemption record commit together."""
    if user.user_type != UserType.resident:
        raise Unauthorized("Only residents can redeem vouchers")
    voucher = get_voucher(voucher_id)

    if db.query(VoucherRedemption.id).filter(
        VoucherRedemption.user_id == user.id,
        VoucherRedemption.voucher_id == voucher.id,
    ).first():
        raise AlreadyRedeemed()

    balance = ledger.award_points(
        db,
        user.id,
        -voucher.points,
        reason=TransactionReason.redemption,
        actor=user,
        voucher_id=voucher.id,
        commit=False,
    )
    db.add(VoucherRedemption(user_id=user.id, voucher_id=voucher.id, points_spent=voucher.points))
    try:
        db.commit()
    except IntegrityError:
        # concurrent redemption of the same voucher won the unique constraint
        db.rollback()
        raise AlreadyRedeemed()
    return {"voucher_id": voucher.id, "points_spent": voucher.points, "balance": balance}
