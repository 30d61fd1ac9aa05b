"""
Topup provider contract
"""

import enum
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional


class TransferStatus(str, enum.Enum):
    COMPLETED = "completed"
    FAILED = "failed"
    PROCESSING = "processing"


@dataclass
class ProviderBalance:
    account_balance: Decimal
    currency: str


@dataclass
class TransferRequest:
    sku_code: str
    account_number: str
    distributor_ref: str  # Our orderId, the idempotency key on the provider side
    validate_only: bool = False
    send_value: Optional[Decimal] = None
    send_currency: str = "USD"


@dataclass
class TransferResult:
    status: TransferStatus
    transfer_id: Optional[str] = None
    provider_transaction_id: Optional[str] = None
    error_message: Optional[str] = None
    error_code: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)


@dataclass
class PriceEstimate:
    sku_code: str
    send_value: Decimal
    send_currency: str
    receive_value: Decimal
    receive_currency: str
    fee: Decimal = Decimal("0")
    tax_rate: Optional[Decimal] = None


class TopupProvider(ABC):
    """Operations the transaction pipeline calls on a telecom topup provider"""

    name: str = ""

    @abstractmethod
    def get_balance(self) -> ProviderBalance:
        """Our prepaid account balance with the provider"""

    @abstractmethod
    def send_transfer(self, request: TransferRequest) -> TransferResult:
        """Deliver airtime/data. Never retried by the caller."""

    @abstractmethod
    def get_transfer_status(self, transfer_id: str) -> TransferResult:
        """Current state of a previously sent transfer"""

    @abstractmethod
    def estimate_prices(self, items: List[Dict[str, Any]]) -> List[PriceEstimate]:
        """Provider-side price estimation for send values"""

    @abstractmethod
    def lookup_country(self, account_number: str) -> Optional[str]:
        """ISO country code for a phone number, None when unknown"""
