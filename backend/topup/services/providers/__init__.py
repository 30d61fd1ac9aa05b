"""
Telecom topup providers
"""

from topup.core.organizations.models import Integration, TopupProviderType
from topup.services.providers.base import (
    PriceEstimate,
    ProviderBalance,
    TopupProvider,
    TransferRequest,
    TransferResult,
    TransferStatus,
)
from topup.services.providers.dingconnect_client import DingConnectClient
from topup.services.providers.exceptions import (
    ProviderError,
    ProviderNotConfiguredError,
    ProviderNotSupportedError,
)


def get_topup_provider(integration: Integration) -> TopupProvider:
    """
    Build a provider client from an organization's integration.

    Raises:
        ProviderNotSupportedError: Reloadly (recognized, not implemented)
        ProviderNotConfiguredError: Credentials missing
    """
    provider = TopupProviderType(integration.provider)
    credentials = integration.credentials or {}
    if provider == TopupProviderType.DINGCONNECT:
        return DingConnectClient(api_key=credentials.get("apiKey"))
    raise ProviderNotSupportedError(provider.value)


__all__ = [
    "get_topup_provider",
    "TopupProvider",
    "DingConnectClient",
    "ProviderBalance",
    "PriceEstimate",
    "TransferRequest",
    "TransferResult",
    "TransferStatus",
    "ProviderError",
    "ProviderNotConfiguredError",
    "ProviderNotSupportedError",
]
