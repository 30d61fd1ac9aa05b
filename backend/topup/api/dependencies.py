"""
Shared FastAPI dependencies
"""

import hmac
import logging
from typing import Optional
from fastapi import Header, HTTPException, status

from topup.infrastructure.settings import get_settings
from topup.services.fulfillment import ProviderFactory
from topup.services.payments import get_payment_gateway
from topup.services.providers import get_topup_provider
from topup.services.webhook_reconciler import GatewayFactory

logger = logging.getLogger(__name__)


def get_gateway_factory() -> GatewayFactory:
    """Payment gateway client builder, overridable in tests"""
    return get_payment_gateway


def get_provider_factory() -> ProviderFactory:
    """Topup provider client builder, overridable in tests"""
    return get_topup_provider


async def require_admin_token(
    x_admin_token: Optional[str] = Header(None, alias="X-Admin-Token"),
) -> str:
    """
    Guard for /admin routes.

    Returns the token's short fingerprint, recorded as the acting admin in
    balance history.
    """
    settings = get_settings()
    if not settings.ADMIN_API_TOKEN:
        logger.error("Admin API called but ADMIN_API_TOKEN is not configured")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"error": {"code": "ADMIN_API_DISABLED", "message": "Admin API is not configured"}},
        )
    if not x_admin_token or not hmac.compare_digest(x_admin_token, settings.ADMIN_API_TOKEN):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": {"code": "UNAUTHORIZED", "message": "Invalid or missing admin token"}},
        )
    return f"admin:{x_admin_token[:4]}"
