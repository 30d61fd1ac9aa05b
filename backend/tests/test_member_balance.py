"""
Member spending-limit tests
"""

import pytest
from decimal import Decimal
from uuid import uuid4
from sqlalchemy.orm import Session

from topup.core.accounts.models import BalanceHistory, BalanceHistoryType, Membership
from topup.services import member_balance
from topup.services.member_balance import (
    InsufficientMemberLimitError,
    InvalidLimitError,
    MembershipNotFoundError,
)


def history(db: Session, membership: Membership):
    return (
        db.query(BalanceHistory)
        .filter(BalanceHistory.membership_id == membership.id)
        .order_by(BalanceHistory.created_at)
        .all()
    )


def use_up_to(db: Session, membership: Membership, amount: Decimal):
    membership.current_used = amount
    db.commit()
    db.refresh(membership)


def test_use_within_limit_records_history(db_session: Session, membership: Membership):
    entry = member_balance.use_balance(
        db=db_session,
        membership_id=membership.id,
        amount=Decimal("12.50"),
        product_name="Digicel Haiti 10 USD",
        phone_number="50937123456",
        order_id="ORD-1",
    )
    db_session.refresh(membership)

    assert membership.current_used == Decimal("12.50")
    assert membership.remaining_balance == Decimal("87.50")
    assert entry.type == BalanceHistoryType.USAGE
    assert entry.amount == Decimal("12.50")
    assert entry.previous_balance == Decimal("0.00")
    assert entry.new_balance == Decimal("12.50")
    assert entry.history_metadata["orderId"] == "ORD-1"
    assert entry.description == "Used $12.50 for Digicel Haiti 10 USD"


def test_over_limit_is_rejected_without_side_effects(db_session: Session, membership: Membership):
    use_up_to(db_session, membership, Decimal("90.00"))

    with pytest.raises(InsufficientMemberLimitError) as exc_info:
        member_balance.use_balance(db=db_session, membership_id=membership.id, amount=Decimal("20.00"))

    assert exc_info.value.code == "INSUFFICIENT_BALANCE_LIMIT"
    db_session.refresh(membership)
    assert membership.current_used == Decimal("90.00")
    assert history(db_session, membership) == []


def test_exactly_remaining_limit_is_allowed(db_session: Session, membership: Membership):
    use_up_to(db_session, membership, Decimal("90.00"))

    entry = member_balance.use_balance(db=db_session, membership_id=membership.id, amount=Decimal("10.00"))
    db_session.refresh(membership)

    assert membership.current_used == Decimal("100.00")
    assert membership.remaining_balance == Decimal("0.00")
    assert entry.previous_balance == Decimal("90.00")
    assert entry.new_balance == Decimal("100.00")


def test_disabled_limit_is_unlimited_and_untracked(db_session: Session, membership: Membership):
    membership.balance_limit_enabled = False
    db_session.commit()

    assert member_balance.use_balance(db=db_session, membership_id=membership.id, amount=Decimal("5000.00")) is None
    db_session.refresh(membership)
    assert membership.current_used == Decimal("0.00")
    assert membership.remaining_balance is None
    assert member_balance.has_available_balance(membership, Decimal("1000000")) is True


def test_reset_records_negative_delta(db_session: Session, membership: Membership):
    use_up_to(db_session, membership, Decimal("42.00"))

    entry = member_balance.reset_balance(db=db_session, membership_id=membership.id, admin_id="admin:test")
    db_session.refresh(membership)

    assert membership.current_used == Decimal("0.00")
    assert entry.type == BalanceHistoryType.RESET
    assert entry.amount == Decimal("-42.00")
    assert entry.previous_balance == Decimal("42.00")
    assert entry.new_balance == Decimal("0.00")
    assert entry.history_metadata == {"adminId": "admin:test"}


def test_reset_with_nothing_used_writes_no_history(db_session: Session, membership: Membership):
    assert member_balance.reset_balance(db=db_session, membership_id=membership.id) is None
    assert history(db_session, membership) == []


def test_update_limit(db_session: Session, membership: Membership):
    entry = member_balance.update_limit(
        db=db_session,
        membership_id=membership.id,
        enabled=True,
        max_balance=Decimal("250.00"),
        admin_id="admin:test",
    )
    db_session.refresh(membership)

    assert membership.max_balance == Decimal("250.00")
    assert entry.type == BalanceHistoryType.LIMIT_UPDATE
    assert entry.previous_balance == Decimal("100.00")
    assert entry.new_balance == Decimal("250.00")


def test_update_limit_below_used_is_rejected(db_session: Session, membership: Membership):
    use_up_to(db_session, membership, Decimal("60.00"))

    with pytest.raises(InvalidLimitError):
        member_balance.update_limit(
            db=db_session,
            membership_id=membership.id,
            enabled=True,
            max_balance=Decimal("50.00"),
        )
    db_session.refresh(membership)
    assert membership.max_balance == Decimal("100.00")


def test_update_limit_rejects_negative(db_session: Session, membership: Membership):
    with pytest.raises(InvalidLimitError):
        member_balance.update_limit(
            db=db_session,
            membership_id=membership.id,
            enabled=False,
            max_balance=Decimal("-1"),
        )


def test_unknown_membership(db_session: Session):
    with pytest.raises(MembershipNotFoundError):
        member_balance.use_balance(db=db_session, membership_id=uuid4(), amount=Decimal("1.00"))


def test_history_is_newest_first(db_session: Session, membership: Membership):
    for amount in ("1.00", "2.00", "3.00"):
        member_balance.use_balance(db=db_session, membership_id=membership.id, amount=Decimal(amount))
    db_session.commit()

    items = member_balance.list_history(db_session, membership.id, limit=2)
    assert len(items) == 2
    assert {item.type for item in items} == {BalanceHistoryType.USAGE}
