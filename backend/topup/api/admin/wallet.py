"""
Admin wallet endpoints - organization float
"""

import logging
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from topup.api.dependencies import require_admin_token
from topup.core.accounts.models import Wallet, WalletTransaction
from topup.infrastructure.database import get_db
from topup.schemas.wallet import DepositRequest, DepositResponse, WalletEntryResponse, WalletResponse
from topup.services import wallet_ledger
from topup.services.errors import NotFoundError, ServiceError
from topup.services.organizations import resolve_organization

logger = logging.getLogger(__name__)

router = APIRouter()


def to_wallet_response(wallet: Wallet) -> WalletResponse:
    return WalletResponse(
        wallet_id=str(wallet.id),
        organization_id=str(wallet.organization_id),
        currency=wallet.currency,
        balance=str(wallet.balance),
        reserved_balance=str(wallet.reserved_balance),
        available_balance=str(wallet.available_balance),
        status=wallet.status.value,
        total_deposits=str(wallet.total_deposits),
        total_withdrawals=str(wallet.total_withdrawals),
        total_spent=str(wallet.total_spent),
    )


def to_entry_response(entry: WalletTransaction) -> WalletEntryResponse:
    return WalletEntryResponse(
        id=str(entry.id),
        type=entry.type.value,
        status=entry.status.value,
        amount=str(entry.amount),
        currency=entry.currency,
        balance_before=str(entry.balance_before),
        balance_after=str(entry.balance_after),
        reference_id=entry.reference_id,
        description=entry.description,
        created_at=entry.created_at.isoformat() if entry.created_at else None,
    )


@router.get(
    "/organizations/{slug}/wallet",
    response_model=WalletResponse,
    summary="Get organization wallet",
)
async def get_wallet(
    slug: str,
    db: Session = Depends(get_db),
) -> WalletResponse:
    organization = resolve_organization(db, slug)
    wallet = wallet_ledger.get_wallet(db, organization.id)
    if wallet is None:
        raise NotFoundError("Wallet not found", code="WALLET_NOT_FOUND")
    return to_wallet_response(wallet)


@router.post(
    "/organizations/{slug}/wallet/deposit",
    response_model=DepositResponse,
    summary="Deposit funds into organization wallet",
    description="Creates the wallet on first deposit. Appends one DEPOSIT ledger line.",
)
async def deposit(
    slug: str,
    request: DepositRequest,
    db: Session = Depends(get_db),
    admin_id: str = Depends(require_admin_token),
) -> DepositResponse:
    organization = resolve_organization(db, slug)
    wallet = wallet_ledger.get_or_create_wallet(db, organization.id)
    try:
        entry = wallet_ledger.deposit(
            db,
            wallet.id,
            request.amount,
            payment_method=request.payment_method,
            reference_id=request.reference,
            description=request.description,
            metadata={"adminId": admin_id},
        )
    except wallet_ledger.WalletNotActiveError:
        db.rollback()
        raise ServiceError("Wallet is not active", code="WALLET_NOT_ACTIVE", status_code=409)
    db.commit()
    db.refresh(wallet)

    logger.info(f"Admin wallet deposit: organization_id={organization.id}, amount={request.amount}, admin={admin_id}")
    return DepositResponse(wallet=to_wallet_response(wallet), entry=to_entry_response(entry))
