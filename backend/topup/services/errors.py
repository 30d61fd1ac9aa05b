"""
Client-visible service errors

Each carries the code/message/status the API layer renders into the standard
error envelope. Internal detail goes to logs, never into message.
"""

from typing import Any, Dict, Optional


class ServiceError(Exception):
    """Base for errors surfaced to API callers"""

    status_code = 400
    code = "BAD_REQUEST"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class NotFoundError(ServiceError):
    status_code = 404
    code = "NOT_FOUND"


class ConfigurationError(ServiceError):
    """Missing or inactive storefront/payment provider/integration"""
    status_code = 503
    code = "SERVICE_UNAVAILABLE"


class InsufficientFundsError(ServiceError):
    """Wallet or provider balance too low; message never includes figures"""
    status_code = 402
    code = "INSUFFICIENT_FUNDS"


class UpstreamError(ServiceError):
    """Payment gateway or topup provider call failed"""
    status_code = 502
    code = "UPSTREAM_ERROR"


GENERIC_UNAVAILABLE_MESSAGE = "This service is temporarily unavailable. Please try again later."
