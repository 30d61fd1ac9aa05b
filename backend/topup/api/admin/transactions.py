"""
Admin transaction endpoints - manual reconcile
"""

import logging
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from topup.api.dependencies import get_provider_factory
from topup.infrastructure.database import get_db
from topup.schemas.transactions import RecheckResponse
from topup.services.errors import NotFoundError
from topup.services.fulfillment import recheck_transfer
from topup.services.transaction_engine import get_transaction_by_order_id

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/transactions/{order_id}/recheck",
    response_model=RecheckResponse,
    summary="Recheck a processing transaction",
    description="Reads the transfer status from the topup provider. Never sends a new transfer.",
)
def recheck(
    order_id: str,
    db: Session = Depends(get_db),
    provider_factory=Depends(get_provider_factory),
) -> RecheckResponse:
    transaction = get_transaction_by_order_id(db, order_id)
    if transaction is None:
        raise NotFoundError("Transaction not found", code="TRANSACTION_NOT_FOUND")

    previous_status = transaction.status.value
    recheck_transfer(db=db, transaction=transaction, provider_factory=provider_factory)
    logger.info(f"Admin recheck: order_id={order_id}, {previous_status} -> {transaction.status.value}")
    return RecheckResponse(
        order_id=order_id,
        previous_status=previous_status,
        status=transaction.status.value,
        failure_reason=transaction.failure_reason,
    )
