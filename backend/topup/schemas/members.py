"""
Member spending-limit admin API schemas
"""

from decimal import Decimal
from typing import List
from pydantic import BaseModel, Field


class MemberBalanceResponse(BaseModel):
    membership_id: str
    organization_id: str
    user_id: str
    email: str | None = None
    balance_limit_enabled: bool
    max_balance: str
    current_used: str
    remaining_balance: str | None = Field(None, description="None when the limit is disabled (unlimited)")


class UpdateLimitRequest(BaseModel):
    enabled: bool = Field(..., description="Enable the spending limit")
    max_balance: Decimal = Field(..., ge=0, description="Maximum amount the member may draw")

    class Config:
        json_schema_extra = {"example": {"enabled": True, "max_balance": "100.00"}}


class BalanceHistoryItem(BaseModel):
    id: str
    type: str
    amount: str
    previous_balance: str
    new_balance: str
    description: str | None = None
    metadata: dict | None = None
    created_at: str | None = None


class BalanceHistoryResponse(BaseModel):
    items: List[BalanceHistoryItem]
    limit: int
    offset: int


class TestPurchaseRequest(BaseModel):
    amount: Decimal = Field(..., gt=0)
    product_name: str | None = Field(None, max_length=255)
    phone_number: str | None = Field(None, max_length=50)


class TestPurchaseResponse(BaseModel):
    order_id: str
    balance: MemberBalanceResponse
