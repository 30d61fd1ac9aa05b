"""
Webhook endpoints - PAYMENT GATEWAY ONLY
"""

from fastapi import APIRouter
from topup.infrastructure.settings import get_settings
from topup.api.webhooks.pgpay import router as pgpay_router

settings = get_settings()
router = APIRouter(prefix=settings.WEBHOOKS_V1_PREFIX, tags=["webhooks-v1"])

# Register webhook routers
router.include_router(pgpay_router)
