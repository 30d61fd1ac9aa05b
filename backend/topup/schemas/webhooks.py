"""
Webhook schemas
"""

from pydantic import BaseModel, Field


class WebhookAckResponse(BaseModel):
    """Acknowledgement returned to the gateway"""
    status: str = Field("ok", description="Always ok once the delivery was understood")
    message: str = Field(..., description="What happened to the transaction")
    order_id: str | None = Field(None, description="Order the delivery resolved to")
    transaction_status: str | None = Field(None, description="Status after reconciliation")

    class Config:
        json_schema_extra = {
            "example": {
                "status": "ok",
                "message": "Transaction completed",
                "order_id": "ORD-1735689600000-AB12CD34E",
                "transaction_status": "completed",
            }
        }
