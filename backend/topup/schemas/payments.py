"""
Payment (checkout) API schemas
"""

from decimal import Decimal
from uuid import UUID
from pydantic import BaseModel, EmailStr, Field


class ProcessPaymentRequest(BaseModel):
    """Storefront purchase request"""
    org_slug: str = Field(..., alias="orgSlug", description="Organization slug")
    phone_number: str = Field(..., alias="phoneNumber", min_length=4, max_length=50, description="Recipient phone number")
    product_sku_code: str = Field(..., alias="productSkuCode", description="Catalog product SKU code")
    customer_email: EmailStr = Field(..., alias="customerEmail", description="Customer email")
    payment_method: str = Field(..., alias="paymentMethod", description="pgpay | stripe | paypal | wallet")
    amount: Decimal | None = Field(None, gt=0, description="Customer-facing amount (variable-value products only)")
    discount_code: str | None = Field(None, alias="discountCode", description="Optional discount code")
    country_code: str | None = Field(None, alias="countryCode", min_length=2, max_length=2, description="Recipient country, looked up when absent")
    membership_id: UUID | None = Field(None, alias="membershipId", description="Staff membership (wallet purchases only)")
    customer_name: str | None = Field(None, alias="customerName", max_length=255)

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "orgSlug": "acme",
                "phoneNumber": "50937123456",
                "productSkuCode": "HT_DC_TopUp_5",
                "customerEmail": "jane@example.com",
                "paymentMethod": "pgpay",
                "discountCode": "SAVE10",
            }
        }


class ProcessPaymentResponse(BaseModel):
    """Checkout outcome"""
    order_id: str = Field(..., alias="orderId", description="Order identifier (idempotency key)")
    status: str = Field(..., description="Transaction status")
    amount: str = Field(..., description="Charged amount")
    discount_amount: str = Field(..., alias="discountAmount", description="Discount applied")
    currency: str = Field(..., description="ISO 4217 currency code")
    requires_redirect: bool = Field(..., alias="requiresRedirect", description="True when the customer must be sent to checkoutUrl")
    checkout_url: str | None = Field(None, alias="checkoutUrl", description="Hosted payment page")
    pgpay_token: str | None = Field(None, alias="pgpayToken", description="Gateway token")
    failure_reason: str | None = Field(None, alias="failureReason", description="Set when a wallet purchase failed")

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "orderId": "ORD-1735689600000-AB12CD34E",
                "status": "pending",
                "amount": "12.50",
                "discountAmount": "0.00",
                "currency": "USD",
                "requiresRedirect": True,
                "checkoutUrl": "https://checkout.pgpay.example/pay/abc",
                "pgpayToken": "abc",
            }
        }


class VerifyPaymentRequest(BaseModel):
    """Success-page verification request"""
    order_id: str = Field(..., alias="orderId", min_length=1, description="Order identifier returned by /process")

    class Config:
        populate_by_name = True
        json_schema_extra = {"example": {"orderId": "ORD-1735689600000-AB12CD34E"}}


class VerifyPaymentResponse(BaseModel):
    """Transaction state after verification"""
    order_id: str = Field(..., alias="orderId")
    status: str = Field(..., description="Transaction status")
    message: str
    failure_reason: str | None = Field(None, alias="failureReason")

    class Config:
        populate_by_name = True
