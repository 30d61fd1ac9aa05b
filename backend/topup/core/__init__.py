"""
Core domain models - Export all models for Alembic
"""

from topup.core.organizations.models import Organization, StorefrontSettings, PaymentProvider, Integration, Customer
from topup.core.accounts.models import Wallet, WalletTransaction, Membership, BalanceHistory
from topup.core.pricing.models import PricingRule, Discount
from topup.core.catalog.models import Product
from topup.core.transactions.models import Transaction, WebhookLog

__all__ = [
    "Organization",
    "StorefrontSettings",
    "PaymentProvider",
    "Integration",
    "Customer",
    "Wallet",
    "WalletTransaction",
    "Membership",
    "BalanceHistory",
    "PricingRule",
    "Discount",
    "Product",
    "Transaction",
    "WebhookLog",
]
