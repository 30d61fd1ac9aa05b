"""
Payment gateway exceptions
"""

from typing import Optional


class PaymentGatewayError(Exception):
    """Raised when a payment gateway call fails (network, HTTP or payload error)"""

    def __init__(self, message: str, code: str = "PAYMENT_GATEWAY_ERROR", status_code: Optional[int] = None):
        self.code = code
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class GatewayNotSupportedError(PaymentGatewayError):
    """Raised for payment methods that are recognized but not implemented"""

    def __init__(self, gateway: str):
        super().__init__(f"Payment method '{gateway}' is not yet implemented", code="PAYMENT_METHOD_NOT_SUPPORTED")


class GatewayNotConfiguredError(PaymentGatewayError):
    """Raised when provider credentials are missing or incomplete"""

    def __init__(self, message: str = "Payment provider is not configured"):
        super().__init__(message, code="PAYMENT_PROVIDER_NOT_CONFIGURED")
