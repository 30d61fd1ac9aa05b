"""
Transactions API endpoint - READ-ONLY status lookup
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from topup.core.transactions.models import Transaction
from topup.infrastructure.database import get_db
from topup.schemas.transactions import TransactionStatusResponse
from topup.services.errors import NotFoundError
from topup.services.transaction_engine import get_transaction_by_order_id

router = APIRouter()


def to_status_response(transaction: Transaction) -> TransactionStatusResponse:
    metadata = transaction.transaction_metadata or {}
    return TransactionStatusResponse(
        order_id=transaction.order_id,
        status=transaction.status.value,
        amount=str(transaction.amount),
        discount_amount=str(transaction.discount_amount),
        currency=transaction.currency,
        payment_gateway=transaction.payment_gateway.value,
        product_sku_code=transaction.product_sku_code,
        product_name=transaction.product_name,
        country_code=transaction.country_code,
        operator_name=transaction.operator_name,
        recipient_phone=transaction.recipient_phone,
        provider_transaction_id=transaction.provider_transaction_id,
        failure_reason=transaction.failure_reason,
        test_mode=bool(metadata.get("testMode")),
        timeline=transaction.timeline,
    )


@router.get(
    "/{order_id}",
    response_model=TransactionStatusResponse,
    summary="Get transaction status",
    description="Status, amount, product and timeline of one purchase. READ-ONLY.",
)
async def get_transaction(
    order_id: str,
    db: Session = Depends(get_db),
) -> TransactionStatusResponse:
    transaction = get_transaction_by_order_id(db, order_id)
    if transaction is None:
        raise NotFoundError("Transaction not found", code="TRANSACTION_NOT_FOUND")
    return to_status_response(transaction)
