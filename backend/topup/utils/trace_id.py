"""
Trace ID middleware

Storefronts and the payment gateway may send their own correlation id. It is
reused only when it looks like an id; anything else is replaced so that
arbitrary header content never reaches the structured logs.
"""

import re
import uuid
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from topup.infrastructure.logging_config import trace_id_context

TRACE_ID_PATTERN = re.compile(r"^[A-Za-z0-9._:-]{1,64}$")


def resolve_trace_id(*candidates) -> str:
    for candidate in candidates:
        if candidate and TRACE_ID_PATTERN.match(candidate):
            return candidate
    return str(uuid.uuid4())


class TraceIDMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        trace_id = resolve_trace_id(
            request.headers.get("X-Trace-ID"),
            request.headers.get("X-Request-Id"),
        )

        request.state.trace_id = trace_id
        token = trace_id_context.set(trace_id)
        try:
            response = await call_next(request)
        finally:
            trace_id_context.reset(token)

        response.headers["X-Trace-ID"] = trace_id
        return response


def get_trace_id(request: Request):
    return getattr(request.state, "trace_id", None)
