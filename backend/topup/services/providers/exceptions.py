"""
Topup provider exceptions
"""

from typing import Optional


class ProviderError(Exception):
    """Raised when a topup provider call fails (network, HTTP or result code)"""

    def __init__(self, message: str, code: str = "TOPUP_PROVIDER_ERROR", provider_error_code: Optional[str] = None):
        self.code = code
        self.message = message
        self.provider_error_code = provider_error_code
        super().__init__(self.message)


class ProviderNotSupportedError(ProviderError):
    """Raised for topup providers that are recognized but not implemented"""

    def __init__(self, provider: str):
        super().__init__(f"Topup provider '{provider}' is not yet implemented", code="TOPUP_PROVIDER_NOT_SUPPORTED")


class ProviderNotConfiguredError(ProviderError):
    """Raised when integration credentials are missing"""

    def __init__(self, message: str = "Topup provider is not configured"):
        super().__init__(message, code="TOPUP_PROVIDER_NOT_CONFIGURED")
