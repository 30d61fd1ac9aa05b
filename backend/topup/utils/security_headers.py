"""
Security headers middleware
"""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from topup.infrastructure.settings import get_settings
from topup.utils.rate_limiter import endpoint_group_for_path


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Adds browser hardening headers to every response.

    Quotes, balances and transaction timelines must never be served from a
    shared cache, so every versioned route (storefront, admin, webhook) is
    marked no-store. HSTS is only sent when ENABLE_HSTS is set.
    """

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "no-referrer"

        if endpoint_group_for_path(request.url.path):
            response.headers["Cache-Control"] = "no-store"

        if get_settings().ENABLE_HSTS:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        return response
