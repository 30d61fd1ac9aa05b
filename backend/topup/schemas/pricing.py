"""
Pricing API schemas
"""

from decimal import Decimal
from typing import List
from pydantic import BaseModel, Field


class QuoteRequest(BaseModel):
    """Forward price request"""
    org_slug: str = Field(..., alias="orgSlug", description="Organization slug")
    cost_price: Decimal = Field(..., alias="costPrice", gt=0, description="Wholesale cost price")
    country_code: str | None = Field(None, alias="countryCode", min_length=2, max_length=2, description="ISO 3166-1 alpha-2 country")
    product_sku_code: str | None = Field(None, alias="productSkuCode", description="Product SKU for discount allow-lists")
    discount_code: str | None = Field(None, alias="discountCode", description="Optional discount code")

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "orgSlug": "acme",
                "costPrice": "10.00",
                "countryCode": "HT",
                "discountCode": "SAVE10",
            }
        }


class QuoteResponse(BaseModel):
    """Forward price breakdown (all amounts rounded to cents)"""
    cost_price: str = Field(..., description="Wholesale cost")
    markup: str = Field(..., description="Markup added on top of the cost")
    price_before_discount: str = Field(..., description="Cost plus markup")
    discount: str = Field(..., description="Discount amount")
    final_price: str = Field(..., description="Customer-facing price")
    pricing_rule_id: str | None = Field(None, description="Selected pricing rule")
    discount_id: str | None = Field(None, description="Applied discount")

    class Config:
        json_schema_extra = {
            "example": {
                "cost_price": "10.00",
                "markup": "2.50",
                "price_before_discount": "12.50",
                "discount": "0.00",
                "final_price": "12.50",
                "pricing_rule_id": "123e4567-e89b-12d3-a456-426614174000",
                "discount_id": None,
            }
        }


class EstimateRequest(BaseModel):
    """Provider estimate for a customer-facing send value"""
    org_slug: str = Field(..., alias="orgSlug", description="Organization slug")
    sku_code: str = Field(..., alias="skuCode", description="Product SKU code")
    send_value: Decimal = Field(..., alias="sendValue", gt=0, description="Customer-facing amount")

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {"orgSlug": "acme", "skuCode": "HT_DC_TopUp", "sendValue": "12.50"}
        }


class ProviderEstimate(BaseModel):
    sku_code: str | None = None
    send_value: str
    send_currency: str
    receive_value: str
    receive_currency: str
    fee: str
    tax_rate: str | None = None


class EstimateResponse(BaseModel):
    """Reverse-priced cost basis and the provider's own estimate"""
    sku_code: str = Field(..., description="Product SKU code")
    customer_send_value: str = Field(..., description="Amount the customer asked to send")
    cost_price: str = Field(..., description="Provider cost-basis amount after reversing markup")
    pricing_rule_id: str | None = Field(None, description="Pricing rule used for the reversal")
    estimates: List[ProviderEstimate] = Field(default_factory=list, description="Provider estimates")
