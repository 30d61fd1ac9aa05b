"""
Payments API endpoint - storefront checkout
"""

import logging
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from topup.api.dependencies import get_gateway_factory, get_provider_factory
from topup.infrastructure.database import get_db
from topup.schemas.common import ErrorResponse
from topup.schemas.payments import (
    ProcessPaymentRequest,
    ProcessPaymentResponse,
    VerifyPaymentRequest,
    VerifyPaymentResponse,
)
from topup.services import checkout
from topup.services.webhook_reconciler import verify_order_payment

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/process",
    response_model=ProcessPaymentResponse,
    response_model_by_alias=True,
    responses={
        400: {"model": ErrorResponse},
        402: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
    summary="Process a storefront purchase",
    description=(
        "Creates a Transaction in pending. Gateway methods return a checkoutUrl; "
        "the top-up is only sent after the payment webhook is verified. "
        "Wallet purchases are fulfilled immediately."
    ),
)
def process_payment(
    payload: ProcessPaymentRequest,
    request: Request,
    db: Session = Depends(get_db),
    gateway_factory=Depends(get_gateway_factory),
    provider_factory=Depends(get_provider_factory),
) -> ProcessPaymentResponse:
    forwarded_for = request.headers.get("X-Forwarded-For")
    ip_address = forwarded_for.split(",")[0].strip() if forwarded_for else (
        request.client.host if request.client else None
    )

    result = checkout.process_payment(
        db,
        checkout.CheckoutRequest(
            organization_slug=payload.org_slug,
            phone_number=payload.phone_number,
            product_sku_code=payload.product_sku_code,
            customer_email=str(payload.customer_email),
            payment_method=payload.payment_method,
            amount=payload.amount,
            discount_code=payload.discount_code,
            country_code=payload.country_code,
            membership_id=payload.membership_id,
            customer_name=payload.customer_name,
            ip_address=ip_address,
            user_agent=request.headers.get("User-Agent"),
        ),
        gateway_factory=gateway_factory,
        provider_factory=provider_factory,
    )

    return ProcessPaymentResponse(
        order_id=result.order_id,
        status=result.status.value,
        amount=str(result.amount),
        discount_amount=str(result.discount_amount),
        currency=result.currency,
        requires_redirect=result.requires_redirect,
        checkout_url=result.checkout_url,
        pgpay_token=result.payment_token,
        failure_reason=result.failure_reason,
    )


@router.post(
    "/verify",
    response_model=VerifyPaymentResponse,
    response_model_by_alias=True,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
    summary="Verify a payment from the success page",
    description=(
        "Re-verifies the order's stored gateway token with the gateway and advances "
        "the transaction as the webhook would. Safe to call repeatedly."
    ),
)
def verify_payment(
    payload: VerifyPaymentRequest,
    db: Session = Depends(get_db),
    gateway_factory=Depends(get_gateway_factory),
    provider_factory=Depends(get_provider_factory),
) -> VerifyPaymentResponse:
    outcome = verify_order_payment(
        db=db,
        order_id=payload.order_id,
        gateway_factory=gateway_factory,
        provider_factory=provider_factory,
    )
    transaction = outcome.transaction
    logger.info(f"Payment verify: order_id={transaction.order_id}, status={transaction.status.value}")
    return VerifyPaymentResponse(
        order_id=transaction.order_id,
        status=transaction.status.value,
        message=outcome.message,
        failure_reason=transaction.failure_reason,
    )
