"""
Payment gateway contract

The core only needs two operations from a gateway: open a hosted payment
session for an order, and independently verify a payment by its token.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Optional

# Gateway vocabularies, lower-cased before comparison
SUCCESS_STATUSES = frozenset({"completed", "success", "succeeded"})
PAID_PAYMENT_STATUSES = frozenset({"paid", "success", "succeeded", "completed"})
FAILED_STATUSES = frozenset({"failed", "failure", "declined", "cancelled", "canceled", "expired", "rejected"})


@dataclass
class CustomerInfo:
    email: str
    first_name: str = ""
    last_name: str = ""
    phone: Optional[str] = None


@dataclass
class CallbackUrls:
    success_url: str
    error_url: str
    webhook_url: str


@dataclass
class PaymentSession:
    token: str
    redirect_url: str
    gateway_order_id: Optional[str] = None


@dataclass
class PaymentVerification:
    status: str
    payment_status: str
    amount: Optional[Decimal] = None
    raw: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_paid(self) -> bool:
        return (
            self.status.lower() in SUCCESS_STATUSES
            or self.payment_status.lower() in PAID_PAYMENT_STATUSES
        )

    @property
    def is_failed(self) -> bool:
        """Gateway explicitly reports the payment as failed (not merely incomplete)"""
        if self.is_paid:
            return False
        return self.status.lower() in FAILED_STATUSES or self.payment_status.lower() in FAILED_STATUSES


class PaymentGateway(ABC):
    """Operations the transaction pipeline calls on a payment gateway"""

    name: str = ""

    @abstractmethod
    def create_payment_session(
        self,
        *,
        amount: Decimal,
        currency: str,
        order_id: str,
        customer: CustomerInfo,
        callback_urls: CallbackUrls,
        description: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> PaymentSession:
        """Open a hosted checkout; order_id is the correlation/idempotency key"""

    @abstractmethod
    def verify_payment(self, token: str) -> PaymentVerification:
        """Ask the gateway for the authoritative payment status"""
