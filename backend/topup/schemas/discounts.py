"""
Discount API schemas
"""

from decimal import Decimal
from pydantic import BaseModel, Field


class ValidateDiscountRequest(BaseModel):
    code: str = Field(..., min_length=1, description="Discount code (case-insensitive)")
    org_slug: str = Field(..., alias="orgSlug", description="Organization slug")
    amount: Decimal = Field(..., gt=0, description="Purchase amount")
    country_code: str | None = Field(None, alias="countryCode")
    product_sku_code: str | None = Field(None, alias="productSkuCode")

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {"code": "save10", "orgSlug": "acme", "amount": "50.00", "countryCode": "HT"}
        }


class ValidatedDiscount(BaseModel):
    id: str
    name: str
    description: str | None = None
    code: str | None = None
    type: str
    value: str
    discount_amount: str = Field(..., alias="discountAmount")
    final_amount: str = Field(..., alias="finalAmount")

    class Config:
        populate_by_name = True


class ValidateDiscountResponse(BaseModel):
    valid: bool
    discount: ValidatedDiscount
