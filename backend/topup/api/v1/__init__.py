"""
API v1 routes - Storefront-facing API
"""

from fastapi import APIRouter
from topup.infrastructure.settings import get_settings
from topup.api.v1.pricing import router as pricing_router
from topup.api.v1.payments import router as payments_router
from topup.api.v1.discounts import router as discounts_router
from topup.api.v1.transactions import router as transactions_router

settings = get_settings()
router = APIRouter(prefix=settings.API_V1_PREFIX, tags=["api-v1"])

# Register sub-routers
router.include_router(pricing_router, prefix="/pricing", tags=["pricing"])
router.include_router(payments_router, prefix="/payments", tags=["payments"])
router.include_router(discounts_router, prefix="/discounts", tags=["discounts"])
router.include_router(transactions_router, prefix="/transactions", tags=["transactions"])
