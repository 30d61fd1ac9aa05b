"""
Wallet admin API schemas
"""

from decimal import Decimal
from pydantic import BaseModel, Field


class WalletResponse(BaseModel):
    """Organization wallet snapshot"""
    wallet_id: str = Field(..., description="Wallet UUID")
    organization_id: str = Field(..., description="Organization UUID")
    currency: str = Field(..., description="ISO 4217 currency code")
    balance: str = Field(..., description="Total funds")
    reserved_balance: str = Field(..., description="Funds held for in-flight purchases")
    available_balance: str = Field(..., description="balance - reserved_balance")
    status: str = Field(..., description="active | suspended | frozen")
    total_deposits: str
    total_withdrawals: str
    total_spent: str

    class Config:
        json_schema_extra = {
            "example": {
                "wallet_id": "123e4567-e89b-12d3-a456-426614174000",
                "organization_id": "123e4567-e89b-12d3-a456-426614174001",
                "currency": "USD",
                "balance": "500.00",
                "reserved_balance": "12.50",
                "available_balance": "487.50",
                "status": "active",
                "total_deposits": "1000.00",
                "total_withdrawals": "0.00",
                "total_spent": "500.00",
            }
        }


class DepositRequest(BaseModel):
    amount: Decimal = Field(..., gt=0, description="Amount to add")
    payment_method: str | None = Field(None, description="How the funds arrived (e.g. bank_transfer)")
    reference: str | None = Field(None, max_length=255, description="External reference")
    description: str | None = Field(None, max_length=500)


class WalletEntryResponse(BaseModel):
    """One immutable wallet ledger line"""
    id: str
    type: str
    status: str
    amount: str
    currency: str
    balance_before: str
    balance_after: str
    reference_id: str | None = None
    description: str | None = None
    created_at: str | None = None


class DepositResponse(BaseModel):
    wallet: WalletResponse
    entry: WalletEntryResponse
