"""
Fulfillment - drives a PROCESSING transaction through the topup provider

A transfer is sent at most once per Transaction. Provider failures and
unexpected errors are terminal (FAILED with a recorded reason); nothing here
retries a transfer, since a duplicate top-up cannot be taken back.
"""

import logging
from decimal import Decimal
from typing import Callable, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from topup.core.organizations.models import Integration, PaymentGatewayType, StorefrontSettings
from topup.core.transactions.models import Transaction, TransactionStatus
from topup.services import transaction_engine, wallet_ledger
from topup.services.customers import upsert_customer_for_transaction
from topup.services.discounts import release_usage
from topup.services.errors import ServiceError
from topup.services.organizations import find_active_integration, record_completed_order
from topup.services.providers import (
    ProviderError,
    TopupProvider,
    TransferRequest,
    TransferResult,
    TransferStatus,
)
from topup.utils.metrics import record_topup_transfer

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[Integration], TopupProvider]


def fail_transaction(db: Session, transaction: Transaction, reason: str, **metadata) -> Transaction:
    """Terminal failure with a recorded reason; wallet holds and discount uses are given back"""
    if transaction_engine.mark_failed(db=db, transaction=transaction, reason=reason, metadata=metadata or None):
        _release_wallet_hold(db, transaction)
        _release_discount_use(db, transaction)
        db.commit()
    return transaction


def _release_wallet_hold(db: Session, transaction: Transaction) -> None:
    """Wallet-funded purchases give their reservation back when they fail"""
    if transaction.payment_gateway != PaymentGatewayType.WALLET:
        return
    wallet_id = _wallet_id(transaction)
    if wallet_id is None:
        return
    wallet_ledger.release_reservation(db, wallet_id, transaction.amount)


def _release_discount_use(db: Session, transaction: Transaction) -> None:
    if transaction.discount_id is None:
        return
    if not release_usage(db, transaction.discount_id):
        logger.warning(f"Discount usage already at 0: discount_id={transaction.discount_id}, order_id={transaction.order_id}")


def _wallet_id(transaction: Transaction) -> Optional[UUID]:
    value = (transaction.transaction_metadata or {}).get("walletId")
    return UUID(str(value)) if value else None


def _complete(
    db: Session,
    transaction: Transaction,
    *,
    provider_transaction_id: str,
    metadata: dict,
) -> Transaction:
    applied = transaction_engine.transition(
        db=db,
        transaction=transaction,
        to_status=TransactionStatus.COMPLETED,
        from_status=TransactionStatus.PROCESSING,
        metadata=metadata,
        provider_transaction_id=provider_transaction_id,
    )
    if not applied:
        return transaction

    # Side effects of completion run once, guarded by the transition above
    if transaction.payment_gateway == PaymentGatewayType.WALLET:
        wallet_id = _wallet_id(transaction)
        if wallet_id and not wallet_ledger.deduct(
            db,
            wallet_id,
            transaction.amount,
            from_reserved=True,
            reference_id=transaction.order_id,
            description=f"Top-up {transaction.product_name or transaction.product_sku_code} to {transaction.recipient_phone}",
        ):
            logger.critical(f"Wallet hold missing at completion: order_id={transaction.order_id}, wallet_id={wallet_id}")

    record_completed_order(db, transaction.organization_id, Decimal(transaction.amount))
    upsert_customer_for_transaction(db, transaction)
    db.commit()
    db.refresh(transaction)
    return transaction


def apply_transfer_result(db: Session, transaction: Transaction, result: TransferResult, *, validate_only: bool = False) -> Transaction:
    """Map a provider transfer outcome onto the state machine"""
    provider_name = transaction.provider.value

    if result.status == TransferStatus.FAILED:
        record_topup_transfer(provider_name, "failed")
        return fail_transaction(
            db,
            transaction,
            reason=f"Top-up failed: {result.error_message or 'provider reported failure'}",
            providerErrorCode=result.error_code,
            transferId=result.transfer_id,
        )

    if validate_only:
        record_topup_transfer(provider_name, "validated")
        return _complete(
            db,
            transaction,
            provider_transaction_id=f"TEST-{transaction.order_id}",
            metadata={"testMode": True, "transferId": result.transfer_id},
        )

    if result.status == TransferStatus.COMPLETED:
        record_topup_transfer(provider_name, "completed")
        return _complete(
            db,
            transaction,
            provider_transaction_id=result.provider_transaction_id or result.transfer_id,
            metadata={"transferId": result.transfer_id},
        )

    # Still processing on the provider side; a later webhook or a manual recheck resolves it
    record_topup_transfer(provider_name, "pending")
    logger.warning(f"Top-up still processing: order_id={transaction.order_id}, transfer_id={result.transfer_id}")
    return transaction_engine.annotate(
        db=db,
        transaction=transaction,
        transferId=result.transfer_id,
        providerStatus="processing",
    )


def fulfill_transaction(
    *,
    db: Session,
    transaction: Transaction,
    provider_factory: ProviderFactory,
) -> Transaction:
    """
    Send the transfer for a PROCESSING transaction.

    Product SKU, recipient and send value come from the Transaction itself,
    never from the catalog, which may have changed since checkout.
    """
    if transaction.status != TransactionStatus.PROCESSING:
        raise transaction_engine.InvalidTransitionError(
            f"Cannot fulfill order {transaction.order_id} in status {transaction.status.value}"
        )

    storefront = (
        db.query(StorefrontSettings)
        .filter(StorefrontSettings.organization_id == transaction.organization_id)
        .first()
    )
    if storefront is None:
        return fail_transaction(db, transaction, reason="Storefront settings not found")

    integration = find_active_integration(db, transaction.organization_id, transaction.provider)
    if integration is None:
        return fail_transaction(db, transaction, reason=f"No active {transaction.provider.value} integration")

    metadata = transaction.transaction_metadata or {}
    send_value = metadata.get("sendValue") if metadata.get("isVariableValue") else None
    request = TransferRequest(
        sku_code=transaction.product_sku_code,
        account_number=transaction.recipient_phone,
        distributor_ref=transaction.order_id,
        validate_only=bool(storefront.validate_only),
        send_value=Decimal(str(send_value)) if send_value is not None else None,
        send_currency=transaction.currency,
    )

    try:
        provider = provider_factory(integration)
        result = provider.send_transfer(request)
    except (ProviderError, ServiceError) as e:
        record_topup_transfer(transaction.provider.value, "error")
        return fail_transaction(db, transaction, reason=f"Top-up provider error: {e.message}")
    except Exception as e:
        record_topup_transfer(transaction.provider.value, "error")
        logger.exception(f"Unexpected error during transfer: order_id={transaction.order_id}")
        return fail_transaction(db, transaction, reason=f"Unexpected error during top-up: {e}")

    return apply_transfer_result(db, transaction, result, validate_only=bool(storefront.validate_only))


def recheck_transfer(
    *,
    db: Session,
    transaction: Transaction,
    provider_factory: ProviderFactory,
) -> Transaction:
    """
    Manual reconcile of a PROCESSING transaction using the provider's
    transfer status. Never sends a new transfer.
    """
    if transaction.status != TransactionStatus.PROCESSING:
        return transaction

    transfer_id = (transaction.transaction_metadata or {}).get("transferId")
    if not transfer_id:
        logger.warning(f"Recheck without transfer id: order_id={transaction.order_id}")
        return transaction

    integration = find_active_integration(db, transaction.organization_id, transaction.provider)
    if integration is None:
        logger.error(f"Recheck impossible, no active integration: order_id={transaction.order_id}")
        return transaction

    try:
        result = provider_factory(integration).get_transfer_status(transfer_id)
    except ProviderError as e:
        # Status lookups are read-only, so the transaction stays PROCESSING
        logger.error(f"Transfer status lookup failed: order_id={transaction.order_id}, error={e.message}")
        return transaction

    return apply_transfer_result(db, transaction, result)
