"""
PGPay payment webhook endpoint
"""

import json
import logging
import time
from typing import Any, Dict, Optional
from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from topup.api.dependencies import get_gateway_factory, get_provider_factory
from topup.core.transactions.models import TransactionStatus, WebhookLog, WebhookLogStatus
from topup.infrastructure.database import get_db
from topup.infrastructure.logging_config import trace_id_context
from topup.schemas.webhooks import WebhookAckResponse
from topup.services.webhook_reconciler import WebhookRejected, handle_pgpay_webhook
from topup.utils.metrics import record_webhook_received, record_webhook_rejected
from topup.utils.webhook_security import verify_pgpay_webhook_security

logger = logging.getLogger(__name__)

router = APIRouter()

SOURCE = "pgpay"


def _reject(status_code: int, code: str, message: str, trace_id: str, details: Optional[Dict[str, Any]] = None):
    raise HTTPException(
        status_code=status_code,
        detail={
            "error": {
                "code": code,
                "message": message,
                "details": details or {},
                "trace_id": trace_id,
            }
        },
    )


def _write_log(
    db: Session,
    *,
    payload: Optional[Dict[str, Any]],
    status_: WebhookLogStatus,
    response_code: int,
    started: float,
    error_message: Optional[str] = None,
    transaction_id=None,
) -> None:
    """Delivery log row; a logging failure never changes the response"""
    try:
        db.add(WebhookLog(
            source=SOURCE,
            event=(payload or {}).get("event") or "payment",
            payload=payload,
            status=status_,
            response_code=response_code,
            error_message=error_message,
            processing_duration_ms=int((time.monotonic() - started) * 1000),
            transaction_id=transaction_id,
        ))
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to write webhook log: error={e}")


@router.post(
    "/pgpay",
    response_model=WebhookAckResponse,
    status_code=status.HTTP_200_OK,
    summary="PGPay payment webhook",
    description=(
        "Payment notification from PGPay. The payload only identifies the payment; "
        "its status is always re-verified with PGPay before the transaction advances. "
        "Safe to replay."
    ),
)
async def pgpay_webhook(
    request: Request,
    db: Session = Depends(get_db),
    gateway_factory=Depends(get_gateway_factory),
    provider_factory=Depends(get_provider_factory),
    x_pgpay_signature: Optional[str] = Header(None, alias="X-PGPay-Signature", description="HMAC-SHA256 of the raw body"),
    x_pgpay_timestamp: Optional[str] = Header(None, alias="X-PGPay-Timestamp", description="Unix timestamp for replay protection"),
) -> WebhookAckResponse:
    """
    Reconcile a PGPay delivery.

    - 400: body is not JSON, or pgPayToken is missing
    - 401: signature/timestamp rejected (only when PGPAY_WEBHOOK_SECRET is set)
    - 404: no transaction for the token
    - 200: everything else, including failures recorded on the transaction
    """
    trace_id = trace_id_context.get("unknown")
    started = time.monotonic()
    record_webhook_received(SOURCE)

    body_bytes = await request.body()

    is_valid, error_code, error_details = verify_pgpay_webhook_security(
        payload_body=body_bytes,
        signature_header=x_pgpay_signature,
        timestamp_header=x_pgpay_timestamp,
    )
    if not is_valid:
        logger.error(f"PGPay webhook security verification failed: trace_id={trace_id}, reason={error_code}")
        record_webhook_rejected(SOURCE, error_code or "signature_invalid")
        _write_log(db, payload=None, status_=WebhookLogStatus.FAILED, response_code=401, started=started, error_message=error_code)
        _reject(status.HTTP_401_UNAUTHORIZED, error_code or "WEBHOOK_INVALID_SIGNATURE", "Invalid webhook signature", trace_id, error_details)

    try:
        payload = json.loads(body_bytes or b"null")
    except ValueError:
        payload = None
    if not isinstance(payload, dict):
        record_webhook_rejected(SOURCE, "invalid_payload")
        _write_log(db, payload=None, status_=WebhookLogStatus.FAILED, response_code=400, started=started, error_message="Invalid JSON body")
        _reject(status.HTTP_400_BAD_REQUEST, "INVALID_PAYLOAD", "Request body must be a JSON object", trace_id)

    logger.info(f"PGPay webhook received: trace_id={trace_id}, order_id={payload.get('orderId')}")

    try:
        # Gateway and provider calls block; keep them off the event loop
        outcome = await run_in_threadpool(
            handle_pgpay_webhook,
            db=db,
            payload=payload,
            gateway_factory=gateway_factory,
            provider_factory=provider_factory,
        )
    except WebhookRejected as e:
        record_webhook_rejected(SOURCE, e.code.lower())
        _write_log(db, payload=payload, status_=WebhookLogStatus.FAILED, response_code=e.status_code, started=started, error_message=e.message)
        _reject(e.status_code, e.code, e.message, trace_id)

    transaction = outcome.transaction
    failed = transaction is not None and transaction.status == TransactionStatus.FAILED
    _write_log(
        db,
        payload=payload,
        status_=WebhookLogStatus.FAILED if failed else WebhookLogStatus.SUCCESS,
        response_code=200,
        started=started,
        error_message=transaction.failure_reason if failed else None,
        transaction_id=transaction.id if transaction is not None else None,
    )

    logger.info(
        f"PGPay webhook processed: trace_id={trace_id}, order_id={outcome.order_id}, "
        f"status={outcome.transaction_status}, message={outcome.message}"
    )
    return WebhookAckResponse(
        status="ok",
        message=outcome.message,
        order_id=outcome.order_id,
        transaction_status=outcome.transaction_status,
    )
