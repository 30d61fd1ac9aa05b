"""
Transaction State Machine

    pending -> paid -> processing -> completed
       \         \          \
        +---------+----------+--> failed

completed and failed are terminal. Every transition is one conditional
UPDATE ("... WHERE status = <expected>"), committed immediately, so two
concurrent webhook deliveries can never both advance the same Transaction
and a crash between steps leaves the last durable state visible.
"""

import logging
import secrets
import string
import time
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Iterable, Optional
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.orm import Session

from topup.core.organizations.models import PaymentGatewayType, TopupProviderType
from topup.core.transactions.models import TERMINAL_STATUSES, Transaction, TransactionStatus
from topup.utils.metrics import record_transaction_transition

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    TransactionStatus.PENDING: frozenset({TransactionStatus.PAID, TransactionStatus.FAILED}),
    TransactionStatus.PAID: frozenset({TransactionStatus.PROCESSING, TransactionStatus.FAILED}),
    TransactionStatus.PROCESSING: frozenset({TransactionStatus.COMPLETED, TransactionStatus.FAILED}),
    TransactionStatus.COMPLETED: frozenset(),
    TransactionStatus.FAILED: frozenset(),
}

TIMELINE_COLUMNS = {
    TransactionStatus.PAID: "paid_at",
    TransactionStatus.PROCESSING: "processing_at",
    TransactionStatus.COMPLETED: "completed_at",
    TransactionStatus.FAILED: "failed_at",
}

_ORDER_SUFFIX_ALPHABET = string.ascii_uppercase + string.digits


class InvalidTransitionError(Exception):
    """Raised when a transition is not part of the state machine"""
    pass


def generate_order_id(prefix: str = "ORD") -> str:
    """ORD-<epoch ms>-<9 random uppercase alphanumerics>"""
    suffix = "".join(secrets.choice(_ORDER_SUFFIX_ALPHABET) for _ in range(9))
    return f"{prefix}-{int(time.time() * 1000)}-{suffix}"


def get_transaction_by_order_id(db: Session, order_id: str) -> Optional[Transaction]:
    return db.query(Transaction).filter(Transaction.order_id == order_id).first()


def get_transaction_by_token(db: Session, token: str) -> Optional[Transaction]:
    """Lookup by the gateway-issued token stored at payment session creation"""
    return db.query(Transaction).filter(Transaction.payment_token == token).first()


def create_transaction(
    *,
    db: Session,
    organization_id: UUID,
    order_id: str,
    product_sku_code: str,
    amount: Decimal,
    recipient_phone: str,
    payment_gateway: PaymentGatewayType,
    currency: str = "USD",
    provider: TopupProviderType = TopupProviderType.DINGCONNECT,
    product_name: Optional[str] = None,
    country_code: Optional[str] = None,
    operator_id: Optional[str] = None,
    operator_name: Optional[str] = None,
    recipient_email: Optional[str] = None,
    recipient_name: Optional[str] = None,
    membership_id: Optional[UUID] = None,
    discount_id: Optional[UUID] = None,
    discount_amount: Decimal = Decimal("0"),
    metadata: Optional[Dict[str, Any]] = None,
) -> Transaction:
    """
    Persist a new purchase attempt in PENDING. Flushes; the caller commits
    together with any reservation made for it.
    """
    transaction = Transaction(
        order_id=order_id,
        organization_id=organization_id,
        membership_id=membership_id,
        product_sku_code=product_sku_code,
        product_name=product_name,
        country_code=country_code,
        operator_id=operator_id,
        operator_name=operator_name,
        amount=amount,
        currency=currency,
        discount_id=discount_id,
        discount_amount=discount_amount,
        status=TransactionStatus.PENDING,
        payment_gateway=payment_gateway,
        provider=provider,
        recipient_phone=recipient_phone,
        recipient_email=recipient_email,
        recipient_name=recipient_name,
        transaction_metadata={"retryCount": 0, **(metadata or {})},
    )
    db.add(transaction)
    db.flush()
    logger.info(
        f"Transaction created: order_id={order_id}, organization_id={organization_id}, "
        f"amount={amount}, gateway={payment_gateway.value}"
    )
    return transaction


def _sources_for(to_status: TransactionStatus) -> Iterable[TransactionStatus]:
    return [s for s, targets in ALLOWED_TRANSITIONS.items() if to_status in targets]


def transition(
    *,
    db: Session,
    transaction: Transaction,
    to_status: TransactionStatus,
    from_status: Optional[TransactionStatus] = None,
    metadata: Optional[Dict[str, Any]] = None,
    **values: Any,
) -> bool:
    """
    Advance a transaction with a compare-and-set on its status, then commit.

    Args:
        transaction: Transaction to advance (refreshed afterwards)
        to_status: Target state
        from_status: Expected current state; defaults to any state allowed to reach to_status
        metadata: Keys merged into transaction_metadata
        **values: Extra column values written in the same UPDATE

    Returns:
        True if this call performed the transition, False if the row was no
        longer in an expected state (another request got there first)

    Raises:
        InvalidTransitionError: from_status -> to_status is not allowed
    """
    if from_status is not None:
        if to_status not in ALLOWED_TRANSITIONS[from_status]:
            raise InvalidTransitionError(f"{from_status.value} -> {to_status.value} is not allowed")
        sources = [from_status]
    else:
        sources = _sources_for(to_status)

    db.refresh(transaction)
    previous_status = transaction.status
    if metadata:
        values["transaction_metadata"] = {**(transaction.transaction_metadata or {}), **metadata}
    values[TIMELINE_COLUMNS[to_status]] = datetime.now(timezone.utc)

    result = db.execute(
        update(Transaction)
        .where(Transaction.id == transaction.id, Transaction.status.in_(sources))
        .values(status=to_status, **values)
        .execution_options(synchronize_session=False)
    )
    applied = result.rowcount == 1
    db.commit()
    db.refresh(transaction)

    if applied:
        record_transaction_transition(previous_status.value, to_status.value)
        logger.info(
            f"Transaction transition: order_id={transaction.order_id}, "
            f"{previous_status.value} -> {to_status.value}"
        )
    else:
        logger.info(
            f"Transaction transition skipped: order_id={transaction.order_id}, "
            f"status={transaction.status.value}, wanted={to_status.value}"
        )
    return applied


def mark_failed(
    *,
    db: Session,
    transaction: Transaction,
    reason: str,
    metadata: Optional[Dict[str, Any]] = None,
) -> bool:
    """
    Move a non-terminal transaction to FAILED with a recorded failureReason.

    Returns False when it was already terminal.
    """
    applied = transition(
        db=db,
        transaction=transaction,
        to_status=TransactionStatus.FAILED,
        metadata={**(metadata or {}), "failureReason": reason},
    )
    if applied:
        logger.error(f"Transaction failed: order_id={transaction.order_id}, reason={reason}")
    return applied


def annotate(*, db: Session, transaction: Transaction, **metadata: Any) -> Transaction:
    """
    Merge keys into transaction_metadata without touching status.
    Allowed in any state, including terminal ones.
    """
    db.refresh(transaction)
    transaction.transaction_metadata = {**(transaction.transaction_metadata or {}), **metadata}
    db.commit()
    db.refresh(transaction)
    return transaction


def is_terminal(status: TransactionStatus) -> bool:
    return status in TERMINAL_STATUSES
