"""
Admin API routes - INTERNAL ONLY
"""

from fastapi import APIRouter, Depends
from topup.infrastructure.settings import get_settings
from topup.api.dependencies import require_admin_token
from topup.api.admin.wallet import router as wallet_router
from topup.api.admin.members import router as members_router
from topup.api.admin.transactions import router as transactions_router

settings = get_settings()
router = APIRouter(
    prefix=settings.ADMIN_V1_PREFIX,
    tags=["admin-v1"],
    dependencies=[Depends(require_admin_token)],
)

# Register admin routers
router.include_router(wallet_router, tags=["admin-wallet"])
router.include_router(members_router, tags=["admin-members"])
router.include_router(transactions_router, tags=["admin-transactions"])
