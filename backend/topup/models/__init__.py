"""
Models registry for Alembic - Import all models here to ensure Base.metadata is complete

Import order follows foreign key dependencies:
1. Base and organization models (tenant root)
2. Accounts and pricing models (depend on Organization)
3. Transaction models (depend on Organization, Customer, Membership, Discount)
"""

from topup.infrastructure.database import Base

# 1. Organization models
from topup.core.organizations.models import (
    Organization, OrganizationStatus,
    StorefrontSettings,
    PaymentProvider, PaymentGatewayType, ProviderStatus, ProviderEnvironment,
    Integration, TopupProviderType,
    Customer,
)

# 2. Accounts and pricing models
from topup.core.accounts.models import (
    Wallet, WalletStatus,
    WalletTransaction, WalletTransactionType, WalletTransactionStatus,
    Membership, MemberRole,
    BalanceHistory, BalanceHistoryType,
)
from topup.core.pricing.models import PricingRule, Discount, AdjustmentType
from topup.core.catalog.models import Product

# 3. Transaction models
from topup.core.transactions.models import Transaction, TransactionStatus, WebhookLog, WebhookLogStatus

__all__ = [
    "Base",
    "Organization",
    "OrganizationStatus",
    "StorefrontSettings",
    "PaymentProvider",
    "PaymentGatewayType",
    "ProviderStatus",
    "ProviderEnvironment",
    "Integration",
    "TopupProviderType",
    "Customer",
    "Wallet",
    "WalletStatus",
    "WalletTransaction",
    "WalletTransactionType",
    "WalletTransactionStatus",
    "Membership",
    "MemberRole",
    "BalanceHistory",
    "BalanceHistoryType",
    "PricingRule",
    "Discount",
    "AdjustmentType",
    "Product",
    "Transaction",
    "TransactionStatus",
    "WebhookLog",
    "WebhookLogStatus",
]
