"""
Payment gateways
"""

from topup.core.organizations.models import PaymentGatewayType, PaymentProvider
from topup.services.payments.exceptions import (
    PaymentGatewayError,
    GatewayNotSupportedError,
    GatewayNotConfiguredError,
)
from topup.services.payments.gateway import (
    CallbackUrls,
    CustomerInfo,
    PaymentGateway,
    PaymentSession,
    PaymentVerification,
)
from topup.services.payments.pgpay_client import PGPayClient


def get_payment_gateway(provider_config: PaymentProvider) -> PaymentGateway:
    """
    Build a gateway client from an organization's payment provider configuration.

    Raises:
        GatewayNotSupportedError: Stripe/PayPal (recognized, not implemented)
        GatewayNotConfiguredError: Credentials missing
    """
    gateway = PaymentGatewayType(provider_config.provider)
    credentials = provider_config.credentials or {}
    if gateway == PaymentGatewayType.PGPAY:
        return PGPayClient(
            user_id=credentials.get("userId"),
            environment=provider_config.environment,
        )
    raise GatewayNotSupportedError(gateway.value)


__all__ = [
    "get_payment_gateway",
    "PaymentGateway",
    "PaymentSession",
    "PaymentVerification",
    "CustomerInfo",
    "CallbackUrls",
    "PGPayClient",
    "PaymentGatewayError",
    "GatewayNotSupportedError",
    "GatewayNotConfiguredError",
]
