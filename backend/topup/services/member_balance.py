"""
Per-member spending limits

A membership's limit governs how much of the organization's capacity one
staff member may personally draw. current_used only changes through
use_balance/reset_balance, each appending exactly one BalanceHistory row.
"""

import logging
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.orm import Session

from topup.core.accounts.models import BalanceHistory, BalanceHistoryType, Membership
from topup.services.pricing_engine import ZERO, round_money, to_decimal

logger = logging.getLogger(__name__)

INSUFFICIENT_LIMIT_MESSAGE = "Insufficient balance limit. Please contact your administrator."


class MembershipNotFoundError(Exception):
    """Raised when a membership does not exist"""
    pass


class InsufficientMemberLimitError(Exception):
    """Raised when a member's remaining limit does not cover the amount"""

    def __init__(self, message: str = INSUFFICIENT_LIMIT_MESSAGE):
        self.code = "INSUFFICIENT_BALANCE_LIMIT"
        self.message = message
        super().__init__(self.message)


class InvalidLimitError(Exception):
    """Raised when a limit update would violate current_used <= max_balance"""
    pass


def get_membership(db: Session, membership_id: UUID) -> Membership:
    membership = db.get(Membership, membership_id)
    if membership is None:
        raise MembershipNotFoundError(f"Membership {membership_id} not found")
    return membership


def has_available_balance(membership: Membership, amount) -> bool:
    """Unlimited when the limit is disabled"""
    if not membership.balance_limit_enabled:
        return True
    return membership.max_balance - membership.current_used >= to_decimal(amount)


def use_balance(
    *,
    db: Session,
    membership_id: UUID,
    amount,
    product_name: Optional[str] = None,
    phone_number: Optional[str] = None,
    order_id: Optional[str] = None,
) -> Optional[BalanceHistory]:
    """
    Consume part of a member's limit.

    Returns:
        The appended BalanceHistory row, or None when the member has no limit
        (nothing is tracked)

    Raises:
        InsufficientMemberLimitError: Remaining limit < amount; nothing is written
    """
    amount = round_money(amount)
    membership = get_membership(db, membership_id)
    if not membership.balance_limit_enabled:
        return None

    # Conditional UPDATE so concurrent uses cannot jointly exceed the limit
    result = db.execute(
        update(Membership)
        .where(
            Membership.id == membership_id,
            Membership.balance_limit_enabled.is_(True),
            Membership.max_balance - Membership.current_used >= amount,
        )
        .values(current_used=Membership.current_used + amount)
        .execution_options(synchronize_session=False)
    )
    db.refresh(membership)
    if result.rowcount != 1:
        logger.info(
            f"Member limit exceeded: membership_id={membership_id}, amount={amount}, "
            f"current_used={membership.current_used}, max_balance={membership.max_balance}"
        )
        raise InsufficientMemberLimitError()

    new_balance = membership.current_used
    entry = _append_history(
        db,
        membership=membership,
        entry_type=BalanceHistoryType.USAGE,
        amount=amount,
        previous_balance=new_balance - amount,
        new_balance=new_balance,
        description=f"Used ${amount:.2f} for {product_name or 'transaction'}",
        metadata={
            "phoneNumber": phone_number,
            "productName": product_name,
            "orderId": order_id,
        },
    )
    logger.info(f"Member limit used: membership_id={membership_id}, amount={amount}, current_used={new_balance}")
    return entry


def reset_balance(
    *,
    db: Session,
    membership_id: UUID,
    admin_id: Optional[str] = None,
) -> Optional[BalanceHistory]:
    """
    Zero current_used. The prior value is recorded as a negative delta.

    Returns:
        The appended history row, or None when there was nothing to reset
    """
    membership = get_membership(db, membership_id)
    previous = membership.current_used or ZERO

    db.execute(
        update(Membership)
        .where(Membership.id == membership_id)
        .values(current_used=ZERO)
        .execution_options(synchronize_session=False)
    )
    db.refresh(membership)

    if previous <= ZERO:
        return None

    entry = _append_history(
        db,
        membership=membership,
        entry_type=BalanceHistoryType.RESET,
        amount=-previous,
        previous_balance=previous,
        new_balance=ZERO,
        description="Balance reset by administrator",
        metadata={"adminId": admin_id},
    )
    logger.info(f"Member limit reset: membership_id={membership_id}, previous={previous}, admin_id={admin_id}")
    return entry


def update_limit(
    *,
    db: Session,
    membership_id: UUID,
    enabled: bool,
    max_balance,
    admin_id: Optional[str] = None,
) -> BalanceHistory:
    """
    Change a member's limit settings.

    Raises:
        InvalidLimitError: max_balance negative, or below current_used while enabled
    """
    max_balance = round_money(max_balance)
    if max_balance < ZERO:
        raise InvalidLimitError("max_balance must be >= 0")

    membership = get_membership(db, membership_id)
    if enabled and membership.current_used > max_balance:
        raise InvalidLimitError(
            f"max_balance {max_balance} is below the amount already used ({membership.current_used}); reset first"
        )

    previous_max = membership.max_balance
    previous_enabled = membership.balance_limit_enabled
    membership.balance_limit_enabled = enabled
    membership.max_balance = max_balance
    db.flush()

    entry = _append_history(
        db,
        membership=membership,
        entry_type=BalanceHistoryType.LIMIT_UPDATE,
        amount=max_balance - previous_max,
        previous_balance=previous_max,
        new_balance=max_balance,
        description=f"Limit {'enabled' if enabled else 'disabled'} with max ${max_balance:.2f}",
        metadata={"adminId": admin_id, "previousEnabled": previous_enabled},
    )
    logger.info(f"Member limit updated: membership_id={membership_id}, enabled={enabled}, max_balance={max_balance}")
    return entry


def list_history(db: Session, membership_id: UUID, limit: int = 50, offset: int = 0):
    return (
        db.query(BalanceHistory)
        .filter(BalanceHistory.membership_id == membership_id)
        .order_by(BalanceHistory.created_at.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )


def _append_history(
    db: Session,
    *,
    membership: Membership,
    entry_type: BalanceHistoryType,
    amount: Decimal,
    previous_balance: Decimal,
    new_balance: Decimal,
    description: str,
    metadata: Optional[dict] = None,
) -> BalanceHistory:
    entry = BalanceHistory(
        membership_id=membership.id,
        organization_id=membership.organization_id,
        user_id=membership.user_id,
        type=entry_type,
        amount=amount,
        previous_balance=previous_balance,
        new_balance=new_balance,
        description=description,
        history_metadata={k: v for k, v in (metadata or {}).items() if v is not None},
    )
    db.add(entry)
    db.flush()
    return entry
