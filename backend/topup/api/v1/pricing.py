"""
Pricing API endpoints - quote and provider estimate
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from topup.api.dependencies import get_provider_factory
from topup.infrastructure.database import get_db
from topup.schemas.pricing import (
    EstimateRequest,
    EstimateResponse,
    ProviderEstimate,
    QuoteRequest,
    QuoteResponse,
)
from topup.services import checkout

router = APIRouter()


@router.post(
    "/quote",
    response_model=QuoteResponse,
    summary="Price a wholesale cost",
    description="Forward pricing: cost -> markup -> discount -> final price. Does not count discount usage.",
)
def quote(
    request: QuoteRequest,
    db: Session = Depends(get_db),
) -> QuoteResponse:
    result = checkout.quote(
        db,
        organization_slug=request.org_slug,
        cost_price=request.cost_price,
        country_code=request.country_code,
        product_sku_code=request.product_sku_code,
        discount_code=request.discount_code,
    )
    breakdown = result.breakdown
    return QuoteResponse(
        cost_price=str(breakdown.cost_price),
        markup=str(breakdown.markup),
        price_before_discount=str(breakdown.price_before_discount),
        discount=str(breakdown.discount),
        final_price=str(breakdown.final_price),
        pricing_rule_id=str(result.pricing_rule_id) if result.pricing_rule_id else None,
        discount_id=str(result.discount_id) if result.discount_id else None,
    )


@router.post(
    "/estimate",
    response_model=EstimateResponse,
    summary="Estimate a variable-value send",
    description="Reverse pricing to the provider cost basis, then the provider's own estimate.",
)
def estimate(
    request: EstimateRequest,
    db: Session = Depends(get_db),
    provider_factory=Depends(get_provider_factory),
) -> EstimateResponse:
    result = checkout.estimate(
        db,
        organization_slug=request.org_slug,
        sku_code=request.sku_code,
        send_value=request.send_value,
        provider_factory=provider_factory,
    )
    return EstimateResponse(
        sku_code=result.sku_code,
        customer_send_value=str(result.customer_send_value),
        cost_price=str(result.cost_price),
        pricing_rule_id=str(result.pricing_rule_id) if result.pricing_rule_id else None,
        estimates=[
            ProviderEstimate(
                sku_code=e.sku_code,
                send_value=str(e.send_value),
                send_currency=e.send_currency,
                receive_value=str(e.receive_value),
                receive_currency=e.receive_currency,
                fee=str(e.fee),
                tax_rate=str(e.tax_rate) if e.tax_rate is not None else None,
            )
            for e in result.estimates
        ],
    )
