"""
Organizations domain
"""
from topup.core.organizations.models import (
    Organization,
    OrganizationStatus,
    StorefrontSettings,
    PaymentProvider,
    PaymentGatewayType,
    ProviderStatus,
    ProviderEnvironment,
    Integration,
    TopupProviderType,
    Customer,
)

__all__ = [
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
]
