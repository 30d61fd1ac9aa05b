"""
Webhook Reconciler - the only path that moves a gateway-funded Transaction past pending

read current state -> verify independently with the gateway -> conditionally transition

Once a payload carries a token that resolves to a Transaction, the handler
always produces a 200 outcome. Fatal conditions end in FAILED with a
recorded failureReason instead of an error response, so the gateway does not
retry-storm and nothing is left stuck without an explanation.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, Optional

from sqlalchemy.orm import Session

from topup.core.organizations.models import PaymentGatewayType, PaymentProvider
from topup.core.transactions.models import Transaction, TransactionStatus
from topup.services import fulfillment, transaction_engine
from topup.services.errors import NotFoundError, ServiceError
from topup.services.fulfillment import ProviderFactory
from topup.services.organizations import find_active_payment_provider
from topup.services.payments import PaymentGateway, PaymentGatewayError
from topup.utils.metrics import record_webhook_replayed

logger = logging.getLogger(__name__)

GatewayFactory = Callable[[PaymentProvider], PaymentGateway]

AMOUNT_TOLERANCE = Decimal("0.01")


class WebhookRejected(Exception):
    """Structurally invalid delivery; answered with a client error and not processed"""

    def __init__(self, status_code: int, code: str, message: str):
        self.status_code = status_code
        self.code = code
        self.message = message
        super().__init__(message)


@dataclass
class WebhookOutcome:
    message: str
    transaction: Optional[Transaction] = None
    status_code: int = 200

    @property
    def order_id(self) -> Optional[str]:
        return self.transaction.order_id if self.transaction is not None else None

    @property
    def transaction_status(self) -> Optional[str]:
        return self.transaction.status.value if self.transaction is not None else None


def _mask(token: str) -> str:
    return token[:10] + "..." if len(token) > 10 else token


def handle_pgpay_webhook(
    *,
    db: Session,
    payload: Dict[str, Any],
    gateway_factory: GatewayFactory,
    provider_factory: ProviderFactory,
) -> WebhookOutcome:
    """
    Reconcile one PGPay delivery.

    Raises:
        WebhookRejected: 400 when the token is missing, 404 when it matches no Transaction
    """
    token = payload.get("pgPayToken")
    if not token or not isinstance(token, str):
        logger.error("PGPay webhook missing token")
        raise WebhookRejected(400, "MISSING_TOKEN", "Missing pgPayToken")

    transaction = transaction_engine.get_transaction_by_token(db, token)
    if transaction is None:
        logger.error(f"Transaction not found for PGPay token: token={_mask(token)}")
        raise WebhookRejected(404, "TRANSACTION_NOT_FOUND", "Transaction not found")

    logger.info(
        f"PGPay webhook for transaction: order_id={transaction.order_id}, status={transaction.status.value}"
    )

    return _reconcile_safely(db, transaction, token, gateway_factory, provider_factory)


def verify_order_payment(
    *,
    db: Session,
    order_id: str,
    gateway_factory: GatewayFactory,
    provider_factory: ProviderFactory,
) -> WebhookOutcome:
    """
    Customer-triggered reconciliation from the payment success page.

    Covers a gateway webhook that is late or lost: the stored gateway token
    is verified exactly as a webhook delivery would be. Terminal transactions
    are returned unchanged without calling the gateway.

    Raises:
        NotFoundError: unknown order id
        ServiceError: 400 when the order has no gateway payment session
    """
    transaction = transaction_engine.get_transaction_by_order_id(db, order_id)
    if transaction is None:
        raise NotFoundError("Transaction not found", code="TRANSACTION_NOT_FOUND")

    if transaction.is_terminal:
        return WebhookOutcome(message=f"Transaction already {transaction.status.value}", transaction=transaction)

    token = transaction.payment_token
    if not token:
        raise ServiceError("No payment session found for this order", code="MISSING_TOKEN")

    logger.info(f"Payment verification requested: order_id={order_id}, status={transaction.status.value}")
    return _reconcile_safely(db, transaction, token, gateway_factory, provider_factory)


def _reconcile_safely(
    db: Session,
    transaction: Transaction,
    token: str,
    gateway_factory: GatewayFactory,
    provider_factory: ProviderFactory,
) -> WebhookOutcome:
    try:
        return _reconcile(db, transaction, token, gateway_factory, provider_factory)
    except Exception as e:
        db.rollback()
        logger.exception(f"Unhandled error reconciling payment: order_id={transaction.order_id}")
        db.refresh(transaction)
        if not transaction.is_terminal:
            fulfillment.fail_transaction(db, transaction, reason=f"Payment processing error: {e}")
        return WebhookOutcome(message="Payment processed with errors", transaction=transaction)


def _reconcile(
    db: Session,
    transaction: Transaction,
    token: str,
    gateway_factory: GatewayFactory,
    provider_factory: ProviderFactory,
) -> WebhookOutcome:
    if transaction.is_terminal:
        record_webhook_replayed("pgpay")
        logger.info(f"Webhook replay for terminal transaction: order_id={transaction.order_id}")
        return WebhookOutcome(message=f"Transaction already {transaction.status.value}", transaction=transaction)

    if transaction.status == TransactionStatus.PROCESSING:
        # A transfer may already be in flight; only its status is ever re-read
        fulfillment.recheck_transfer(db=db, transaction=transaction, provider_factory=provider_factory)
        return WebhookOutcome(message="Transaction is being processed", transaction=transaction)

    if transaction.status == TransactionStatus.PAID:
        # Verified earlier but no transfer was attempted yet
        return _advance_and_fulfill(db, transaction, provider_factory)

    provider_config = find_active_payment_provider(db, transaction.organization_id, PaymentGatewayType.PGPAY)
    if provider_config is None:
        logger.error(f"PGPay payment provider not configured: organization_id={transaction.organization_id}")
        fulfillment.fail_transaction(db, transaction, reason="Payment provider not configured")
        return WebhookOutcome(message="Payment provider not configured", transaction=transaction)

    try:
        gateway = gateway_factory(provider_config)
        verification = gateway.verify_payment(token)
    except PaymentGatewayError as e:
        fulfillment.fail_transaction(db, transaction, reason=f"Payment verification failed: {e.message}")
        return WebhookOutcome(message="Payment verification failed", transaction=transaction)

    logger.info(
        f"PGPay verification: order_id={transaction.order_id}, status={verification.status}, "
        f"payment_status={verification.payment_status}, amount={verification.amount}"
    )

    if verification.is_failed:
        fulfillment.fail_transaction(
            db,
            transaction,
            reason=f"Payment {verification.payment_status or verification.status}",
            pgpayStatus=verification.status,
            pgpayPaymentStatus=verification.payment_status,
        )
        return WebhookOutcome(message="Payment failed", transaction=transaction)

    if not verification.is_paid:
        transaction_engine.annotate(
            db=db,
            transaction=transaction,
            lastWebhookCheck=datetime.now(timezone.utc).isoformat(),
            pgpayStatus=verification.status,
            pgpayPaymentStatus=verification.payment_status,
        )
        return WebhookOutcome(message="Payment not yet completed", transaction=transaction)

    if verification.amount is not None and abs(verification.amount - Decimal(transaction.amount)) > AMOUNT_TOLERANCE:
        logger.error(
            f"Payment amount mismatch: order_id={transaction.order_id}, "
            f"expected={transaction.amount}, verified={verification.amount}"
        )
        fulfillment.fail_transaction(
            db,
            transaction,
            reason="Payment amount mismatch",
            verifiedAmount=str(verification.amount),
        )
        return WebhookOutcome(message="Payment amount mismatch", transaction=transaction)

    paid = transaction_engine.transition(
        db=db,
        transaction=transaction,
        to_status=TransactionStatus.PAID,
        from_status=TransactionStatus.PENDING,
        metadata={
            "pgpayStatus": verification.status,
            "pgpayPaymentStatus": verification.payment_status,
        },
    )
    if not paid:
        # A concurrent delivery won the compare-and-set
        return WebhookOutcome(message="Transaction already being processed", transaction=transaction)

    return _advance_and_fulfill(db, transaction, provider_factory)


def _advance_and_fulfill(db: Session, transaction: Transaction, provider_factory: ProviderFactory) -> WebhookOutcome:
    processing = transaction_engine.transition(
        db=db,
        transaction=transaction,
        to_status=TransactionStatus.PROCESSING,
        from_status=TransactionStatus.PAID,
    )
    if not processing:
        return WebhookOutcome(message="Transaction already being processed", transaction=transaction)

    fulfillment.fulfill_transaction(db=db, transaction=transaction, provider_factory=provider_factory)
    return WebhookOutcome(message=f"Transaction {transaction.status.value}", transaction=transaction)

