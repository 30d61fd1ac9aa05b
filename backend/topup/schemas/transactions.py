"""
Transaction API schemas
"""

from datetime import datetime
from typing import Dict
from pydantic import BaseModel, Field


class TransactionStatusResponse(BaseModel):
    """Public view of one purchase attempt"""
    order_id: str = Field(..., description="Order identifier")
    status: str = Field(..., description="pending | paid | processing | completed | failed")
    amount: str = Field(..., description="Charged amount")
    discount_amount: str = Field(..., description="Discount applied")
    currency: str = Field(..., description="ISO 4217 currency code")
    payment_gateway: str = Field(..., description="Payment method")
    product_sku_code: str = Field(..., description="Product SKU code")
    product_name: str | None = Field(None, description="Product name")
    country_code: str | None = Field(None, description="Recipient country")
    operator_name: str | None = Field(None, description="Operator name")
    recipient_phone: str = Field(..., description="Recipient phone number")
    provider_transaction_id: str | None = Field(None, description="Topup provider reference")
    failure_reason: str | None = Field(None, description="Why the purchase failed")
    test_mode: bool = Field(False, description="True when fulfilled in validate-only mode")
    timeline: Dict[str, datetime | None] = Field(..., description="Timestamps per transition")

    class Config:
        json_schema_extra = {
            "example": {
                "order_id": "ORD-1735689600000-AB12CD34E",
                "status": "completed",
                "amount": "12.50",
                "discount_amount": "0.00",
                "currency": "USD",
                "payment_gateway": "pgpay",
                "product_sku_code": "HT_DC_TopUp_5",
                "product_name": "Digicel Haiti 5 USD",
                "country_code": "HT",
                "operator_name": "Digicel",
                "recipient_phone": "50937123456",
                "provider_transaction_id": "998877",
                "failure_reason": None,
                "test_mode": False,
                "timeline": {
                    "createdAt": "2025-12-18T00:00:00Z",
                    "paidAt": "2025-12-18T00:01:00Z",
                    "processingAt": "2025-12-18T00:01:00Z",
                    "completedAt": "2025-12-18T00:01:02Z",
                    "failedAt": None,
                },
            }
        }


class RecheckResponse(BaseModel):
    order_id: str
    previous_status: str
    status: str
    failure_reason: str | None = None
