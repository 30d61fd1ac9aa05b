"""
Wallet Ledger - atomic organization wallet operations

Every mutation is a single conditional UPDATE on the wallet row, so two
concurrent callers can never both pass an availability check against a stale
snapshot. available_balance is rewritten from balance - reserved_balance in
the same statement. Balance-changing operations append one immutable
WalletTransaction line.

Functions flush but never commit; the caller owns the unit of work.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy import case, update
from sqlalchemy.orm import Session

from topup.core.accounts.models import (
    Wallet,
    WalletStatus,
    WalletTransaction,
    WalletTransactionType,
    WalletTransactionStatus,
)
from topup.services.pricing_engine import ZERO, round_money, to_decimal
from topup.utils.metrics import record_wallet_operation

logger = logging.getLogger(__name__)


class WalletNotFoundError(Exception):
    """Raised when an organization has no wallet"""
    pass


class WalletNotActiveError(Exception):
    """Raised when a suspended or frozen wallet is asked to move funds"""
    pass


class InvalidAmountError(Exception):
    """Raised when an amount is zero or negative"""
    pass


def _positive(amount) -> Decimal:
    value = round_money(amount)
    if value <= ZERO:
        raise InvalidAmountError(f"Amount must be greater than 0, got {amount}")
    return value


def _now() -> datetime:
    return datetime.now(timezone.utc)


def get_wallet(db: Session, organization_id: UUID) -> Optional[Wallet]:
    return db.query(Wallet).filter(Wallet.organization_id == organization_id).first()


def get_or_create_wallet(db: Session, organization_id: UUID, currency: str = "USD") -> Wallet:
    """Return the organization's wallet, creating an empty active one if missing"""
    wallet = get_wallet(db, organization_id)
    if wallet is None:
        wallet = Wallet(
            organization_id=organization_id,
            currency=currency,
            balance=ZERO,
            reserved_balance=ZERO,
            available_balance=ZERO,
            status=WalletStatus.ACTIVE,
        )
        db.add(wallet)
        db.flush()
        logger.info(f"Created wallet: organization_id={organization_id}, wallet_id={wallet.id}")
    return wallet


def _load(db: Session, wallet_id: UUID) -> Wallet:
    wallet = db.get(Wallet, wallet_id)
    if wallet is None:
        raise WalletNotFoundError(f"Wallet {wallet_id} not found")
    db.refresh(wallet)
    return wallet


def _execute(db: Session, stmt) -> bool:
    result = db.execute(stmt.execution_options(synchronize_session=False))
    return result.rowcount == 1


def _raise_if_inactive(wallet: Wallet) -> None:
    if wallet.status != WalletStatus.ACTIVE:
        raise WalletNotActiveError(f"Wallet {wallet.id} is {wallet.status.value}")


def has_available_balance(db: Session, wallet_id: UUID, amount) -> bool:
    """Fresh read of available_balance >= amount"""
    wallet = _load(db, wallet_id)
    return wallet.balance - wallet.reserved_balance >= to_decimal(amount)


def reserve(db: Session, wallet_id: UUID, amount) -> bool:
    """
    Earmark funds for an in-flight purchase.

    Returns:
        False (no mutation) when available balance is insufficient

    Raises:
        WalletNotActiveError: Wallet is suspended or frozen
    """
    amount = _positive(amount)
    stmt = (
        update(Wallet)
        .where(
            Wallet.id == wallet_id,
            Wallet.status == WalletStatus.ACTIVE,
            Wallet.balance - Wallet.reserved_balance >= amount,
        )
        .values(
            reserved_balance=Wallet.reserved_balance + amount,
            available_balance=Wallet.balance - (Wallet.reserved_balance + amount),
        )
    )
    applied = _execute(db, stmt)
    wallet = _load(db, wallet_id)
    if not applied:
        _raise_if_inactive(wallet)
        record_wallet_operation("reserve", "insufficient")
        logger.info(f"Wallet reserve rejected: wallet_id={wallet_id}, amount={amount}")
        return False

    record_wallet_operation("reserve", "ok")
    logger.info(f"Wallet reserve: wallet_id={wallet_id}, amount={amount}, reserved={wallet.reserved_balance}")
    return True


def release_reservation(db: Session, wallet_id: UUID, amount) -> Wallet:
    """Give back a hold that will not be consumed; reserved_balance floors at zero"""
    amount = _positive(amount)
    new_reserved = case(
        (Wallet.reserved_balance > amount, Wallet.reserved_balance - amount),
        else_=ZERO,
    )
    stmt = (
        update(Wallet)
        .where(Wallet.id == wallet_id)
        .values(
            reserved_balance=new_reserved,
            available_balance=Wallet.balance - new_reserved,
        )
    )
    if not _execute(db, stmt):
        raise WalletNotFoundError(f"Wallet {wallet_id} not found")
    wallet = _load(db, wallet_id)
    record_wallet_operation("release", "ok")
    logger.info(f"Wallet reservation released: wallet_id={wallet_id}, amount={amount}, reserved={wallet.reserved_balance}")
    return wallet


def deduct(
    db: Session,
    wallet_id: UUID,
    amount,
    *,
    from_reserved: bool = True,
    reference_id: Optional[str] = None,
    description: Optional[str] = None,
) -> bool:
    """
    Spend funds.

    from_reserved=True consumes an existing hold: balance and reserved_balance
    both drop by amount, so available_balance is unchanged. Otherwise the
    amount must be available and only balance drops.

    Returns:
        False (no mutation) when the hold or available balance is insufficient
    """
    amount = _positive(amount)
    now = _now()

    if from_reserved:
        stmt = (
            update(Wallet)
            .where(
                Wallet.id == wallet_id,
                Wallet.status == WalletStatus.ACTIVE,
                Wallet.reserved_balance >= amount,
                Wallet.balance >= amount,
            )
            .values(
                balance=Wallet.balance - amount,
                reserved_balance=Wallet.reserved_balance - amount,
                available_balance=Wallet.balance - Wallet.reserved_balance,
                total_spent=Wallet.total_spent + amount,
                last_transaction_at=now,
            )
        )
    else:
        stmt = (
            update(Wallet)
            .where(
                Wallet.id == wallet_id,
                Wallet.status == WalletStatus.ACTIVE,
                Wallet.balance - Wallet.reserved_balance >= amount,
            )
            .values(
                balance=Wallet.balance - amount,
                available_balance=Wallet.balance - amount - Wallet.reserved_balance,
                total_spent=Wallet.total_spent + amount,
                last_transaction_at=now,
            )
        )

    applied = _execute(db, stmt)
    wallet = _load(db, wallet_id)
    if not applied:
        _raise_if_inactive(wallet)
        record_wallet_operation("deduct", "insufficient")
        logger.warning(
            f"Wallet deduct rejected: wallet_id={wallet_id}, amount={amount}, from_reserved={from_reserved}"
        )
        return False

    _append_entry(
        db,
        wallet=wallet,
        entry_type=WalletTransactionType.PURCHASE,
        amount=amount,
        balance_before=wallet.balance + amount,
        reference_type="transaction" if reference_id else None,
        reference_id=reference_id,
        description=description or "Top-up purchase",
        payment_method="wallet",
    )
    record_wallet_operation("deduct", "ok")
    logger.info(f"Wallet deduct: wallet_id={wallet_id}, amount={amount}, balance={wallet.balance}")
    return True


def deposit(
    db: Session,
    wallet_id: UUID,
    amount,
    *,
    payment_method: Optional[str] = None,
    reference_id: Optional[str] = None,
    description: Optional[str] = None,
    metadata: Optional[dict] = None,
) -> WalletTransaction:
    """
    Add funds to an active wallet.

    Raises:
        WalletNotActiveError: Wallet is suspended or frozen
    """
    amount = _positive(amount)
    stmt = (
        update(Wallet)
        .where(Wallet.id == wallet_id, Wallet.status == WalletStatus.ACTIVE)
        .values(
            balance=Wallet.balance + amount,
            available_balance=Wallet.balance + amount - Wallet.reserved_balance,
            total_deposits=Wallet.total_deposits + amount,
            last_deposit_at=_now(),
        )
    )
    applied = _execute(db, stmt)
    wallet = _load(db, wallet_id)
    if not applied:
        _raise_if_inactive(wallet)

    entry = _append_entry(
        db,
        wallet=wallet,
        entry_type=WalletTransactionType.DEPOSIT,
        amount=amount,
        balance_before=wallet.balance - amount,
        reference_type="manual" if reference_id else None,
        reference_id=reference_id,
        description=description or "Wallet deposit",
        payment_method=payment_method,
        metadata=metadata,
    )
    record_wallet_operation("deposit", "ok")
    logger.info(f"Wallet deposit: wallet_id={wallet_id}, amount={amount}, balance={wallet.balance}")
    return entry


def _append_entry(
    db: Session,
    *,
    wallet: Wallet,
    entry_type: WalletTransactionType,
    amount: Decimal,
    balance_before: Decimal,
    reference_type: Optional[str] = None,
    reference_id: Optional[str] = None,
    description: Optional[str] = None,
    payment_method: Optional[str] = None,
    metadata: Optional[dict] = None,
) -> WalletTransaction:
    entry = WalletTransaction(
        wallet_id=wallet.id,
        organization_id=wallet.organization_id,
        type=entry_type,
        status=WalletTransactionStatus.COMPLETED,
        amount=amount,
        currency=wallet.currency,
        balance_before=balance_before,
        balance_after=wallet.balance,
        reference_type=reference_type,
        reference_id=reference_id,
        description=description,
        payment_method=payment_method,
        entry_metadata=metadata,
    )
    db.add(entry)
    db.flush()
    return entry
