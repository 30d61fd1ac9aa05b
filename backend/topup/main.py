"""
FastAPI application entry point
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from topup.infrastructure.settings import get_settings
from topup.infrastructure.logging_config import setup_logging
from topup.api.exceptions import (
    http_exception_handler,
    service_error_handler,
    validation_exception_handler,
    general_exception_handler,
)
from topup.api.public.health import router as health_router
from topup.api.public.metrics import router as metrics_router
from topup.api.v1 import router as api_v1_router
from topup.api.admin import router as admin_router
from topup.api.webhooks import router as webhooks_router
from topup.services.errors import ServiceError
from topup.utils.trace_id import TraceIDMiddleware
from topup.utils.request_logging import RequestLoggingMiddleware
from topup.utils.security_headers import SecurityHeadersMiddleware
from topup.utils.rate_limiter import RateLimitMiddleware

# Setup logging
setup_logging()

settings = get_settings()
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Topup Core API",
    description="Pricing, wallet ledger and transaction pipeline for mobile top-up resellers",
    version=settings.SERVICE_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

# CORS first so its headers apply to every route, errors included
if settings.CORS_ENABLED:
    cors_origins = settings.cors_allow_origins_list
    if not cors_origins:
        logger.warning(
            "CORS_ENABLED=True but CORS_ALLOW_ORIGINS is empty or not set. "
            "Set CORS_ALLOW_ORIGINS (comma-separated, e.g. 'http://localhost:3000')."
        )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_methods=settings.cors_allow_methods_list or ["*"],
        allow_headers=settings.cors_allow_headers_list or ["*"],
        allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    )

# Custom middlewares (last added is outermost)
app.add_middleware(RateLimitMiddleware)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(TraceIDMiddleware)

# Register exception handlers
app.add_exception_handler(ServiceError, service_error_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, general_exception_handler)

# Register routers
app.include_router(health_router)
app.include_router(metrics_router)
app.include_router(api_v1_router)
app.include_router(admin_router)
app.include_router(webhooks_router)


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "name": "Topup Core API",
        "version": settings.SERVICE_VERSION,
        "status": "running",
    }
