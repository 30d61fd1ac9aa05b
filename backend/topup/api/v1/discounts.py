"""
Discount API endpoint - explicit code validation
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from topup.infrastructure.database import get_db
from topup.schemas.discounts import ValidateDiscountRequest, ValidateDiscountResponse, ValidatedDiscount
from topup.services.discounts import validate_discount_code
from topup.services.organizations import resolve_organization

router = APIRouter()


@router.post(
    "/validate",
    response_model=ValidateDiscountResponse,
    response_model_by_alias=True,
    summary="Validate a discount code",
    description="Returns the discount and final amount, or a client error carrying a human-readable reason.",
)
async def validate_discount(
    request: ValidateDiscountRequest,
    db: Session = Depends(get_db),
) -> ValidateDiscountResponse:
    organization = resolve_organization(db, request.org_slug)
    applied = validate_discount_code(
        db,
        organization_id=organization.id,
        code=request.code,
        amount=request.amount,
        country_code=request.country_code,
        product_sku_code=request.product_sku_code,
    )
    discount = applied.discount
    return ValidateDiscountResponse(
        valid=True,
        discount=ValidatedDiscount(
            id=str(discount.id),
            name=discount.name,
            description=discount.description,
            code=discount.code,
            type=discount.type.value,
            value=str(discount.value),
            discount_amount=str(applied.discount_amount),
            final_amount=str(applied.final_amount),
        ),
    )
