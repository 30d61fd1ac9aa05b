"""
Admin member spending-limit endpoints
"""

import logging
import time
from uuid import UUID
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from topup.api.dependencies import require_admin_token
from topup.core.accounts.models import BalanceHistory, Membership
from topup.infrastructure.database import get_db
from topup.schemas.members import (
    BalanceHistoryItem,
    BalanceHistoryResponse,
    MemberBalanceResponse,
    TestPurchaseRequest,
    TestPurchaseResponse,
    UpdateLimitRequest,
)
from topup.services import member_balance
from topup.services.errors import NotFoundError, ServiceError

logger = logging.getLogger(__name__)

router = APIRouter()


def to_balance_response(membership: Membership) -> MemberBalanceResponse:
    remaining = membership.remaining_balance
    return MemberBalanceResponse(
        membership_id=str(membership.id),
        organization_id=str(membership.organization_id),
        user_id=str(membership.user_id),
        email=membership.email,
        balance_limit_enabled=membership.balance_limit_enabled,
        max_balance=str(membership.max_balance),
        current_used=str(membership.current_used),
        remaining_balance=str(remaining) if remaining is not None else None,
    )


def to_history_item(entry: BalanceHistory) -> BalanceHistoryItem:
    return BalanceHistoryItem(
        id=str(entry.id),
        type=entry.type.value,
        amount=str(entry.amount),
        previous_balance=str(entry.previous_balance),
        new_balance=str(entry.new_balance),
        description=entry.description,
        metadata=entry.history_metadata,
        created_at=entry.created_at.isoformat() if entry.created_at else None,
    )


def _load(db: Session, membership_id: UUID) -> Membership:
    try:
        return member_balance.get_membership(db, membership_id)
    except member_balance.MembershipNotFoundError:
        raise NotFoundError("Membership not found", code="MEMBERSHIP_NOT_FOUND")


@router.get(
    "/members/{membership_id}/balance",
    response_model=MemberBalanceResponse,
    summary="Get member spending limit",
)
async def get_balance(
    membership_id: UUID,
    db: Session = Depends(get_db),
) -> MemberBalanceResponse:
    return to_balance_response(_load(db, membership_id))


@router.put(
    "/members/{membership_id}/balance/limit",
    response_model=MemberBalanceResponse,
    summary="Update member spending limit",
)
async def update_limit(
    membership_id: UUID,
    request: UpdateLimitRequest,
    db: Session = Depends(get_db),
    admin_id: str = Depends(require_admin_token),
) -> MemberBalanceResponse:
    _load(db, membership_id)
    try:
        member_balance.update_limit(
            db=db,
            membership_id=membership_id,
            enabled=request.enabled,
            max_balance=request.max_balance,
            admin_id=admin_id,
        )
    except member_balance.InvalidLimitError as e:
        db.rollback()
        raise ServiceError(str(e), code="INVALID_LIMIT", status_code=422)
    db.commit()
    return to_balance_response(_load(db, membership_id))


@router.post(
    "/members/{membership_id}/balance/reset",
    response_model=MemberBalanceResponse,
    summary="Reset member used balance",
    description="Zeroes current_used and records the prior amount as a negative RESET history entry.",
)
async def reset_balance(
    membership_id: UUID,
    db: Session = Depends(get_db),
    admin_id: str = Depends(require_admin_token),
) -> MemberBalanceResponse:
    _load(db, membership_id)
    member_balance.reset_balance(db=db, membership_id=membership_id, admin_id=admin_id)
    db.commit()
    return to_balance_response(_load(db, membership_id))


@router.get(
    "/members/{membership_id}/balance/history",
    response_model=BalanceHistoryResponse,
    summary="List member balance history",
)
async def get_history(
    membership_id: UUID,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
) -> BalanceHistoryResponse:
    _load(db, membership_id)
    entries = member_balance.list_history(db, membership_id, limit=limit, offset=offset)
    return BalanceHistoryResponse(
        items=[to_history_item(e) for e in entries],
        limit=limit,
        offset=offset,
    )


@router.post(
    "/members/{membership_id}/balance/test-purchase",
    response_model=TestPurchaseResponse,
    summary="Simulate a staff purchase",
    description="Consumes the member limit only; no wallet, gateway or provider call.",
)
async def test_purchase(
    membership_id: UUID,
    request: TestPurchaseRequest,
    db: Session = Depends(get_db),
) -> TestPurchaseResponse:
    _load(db, membership_id)
    order_id = f"TEST-{int(time.time() * 1000)}"
    try:
        member_balance.use_balance(
            db=db,
            membership_id=membership_id,
            amount=request.amount,
            product_name=request.product_name or "Test purchase",
            phone_number=request.phone_number,
            order_id=order_id,
        )
    except member_balance.InsufficientMemberLimitError as e:
        db.rollback()
        raise ServiceError(e.message, code=e.code, status_code=402)
    db.commit()
    return TestPurchaseResponse(order_id=order_id, balance=to_balance_response(_load(db, membership_id)))
