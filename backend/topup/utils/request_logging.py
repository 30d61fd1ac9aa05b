"""
Request logging middleware - one structured line per request
"""

import time
import logging
from typing import Callable
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from topup.infrastructure.logging_config import trace_id_context
from topup.utils.metrics import record_http_request
from topup.utils.rate_limiter import endpoint_group_for_path, get_client_identifier

logger = logging.getLogger(__name__)

HEALTH_CHECK_PATHS = frozenset({"/health", "/ready", "/metrics"})


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs method, path, endpoint group, client IP, status and duration.

    Storefront and admin routes also carry the organization slug when the
    route has one. Health and metrics endpoints are logged at DEBUG so liveness checks do
    not drown the purchase traffic.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.perf_counter()
        path = request.url.path

        status_code = 500
        error = None
        try:
            response = await call_next(request)
            status_code = response.status_code
        except Exception as e:
            error = str(e)
            raise
        finally:
            duration_ms = (time.perf_counter() - start_time) * 1000

            log_data = {
                "trace_id": trace_id_context.get(),
                "path": path,
                "method": request.method,
                "endpoint_group": endpoint_group_for_path(path) or "public",
                "client_ip": get_client_identifier(request),
                "status_code": status_code,
                "duration_ms": round(duration_ms, 2),
            }
            org_slug = request.path_params.get("slug")
            if org_slug:
                log_data["org_slug"] = org_slug

            if error:
                log_data["error"] = error
                logger.error("Request failed", extra=log_data)
            elif status_code >= 500:
                logger.error("Request failed", extra=log_data)
            elif status_code >= 400:
                logger.warning("Request client error", extra=log_data)
            elif path in HEALTH_CHECK_PATHS:
                logger.debug("Health check request", extra=log_data)
            else:
                logger.info("Request completed", extra=log_data)

            record_http_request(
                path=path,
                method=request.method,
                status_code=status_code,
                duration_seconds=duration_ms / 1000,
            )

        return response
