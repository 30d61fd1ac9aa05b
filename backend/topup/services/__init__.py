"""
Services layer - Application business logic
"""

from topup.services.errors import (
    ServiceError,
    NotFoundError,
    ConfigurationError,
    InsufficientFundsError,
    UpstreamError,
)
from topup.services.pricing_engine import (
    price,
    cost_price,
    calculate_discount,
    select_pricing_rule,
    generate_discount_code,
)
from topup.services.wallet_ledger import (
    reserve,
    release_reservation,
    deduct,
    deposit,
    WalletNotFoundError,
    WalletNotActiveError,
)
from topup.services.member_balance import (
    use_balance,
    reset_balance,
    update_limit,
    InsufficientMemberLimitError,
)
from topup.services.transaction_engine import transition, mark_failed, InvalidTransitionError

__all__ = [
    # Errors
    "ServiceError",
    "NotFoundError",
    "ConfigurationError",
    "InsufficientFundsError",
    "UpstreamError",
    # Pricing
    "price",
    "cost_price",
    "calculate_discount",
    "select_pricing_rule",
    "generate_discount_code",
    # Wallet ledger
    "reserve",
    "release_reservation",
    "deduct",
    "deposit",
    "WalletNotFoundError",
    "WalletNotActiveError",
    # Member limits
    "use_balance",
    "reset_balance",
    "update_limit",
    "InsufficientMemberLimitError",
    # Transaction state machine
    "transition",
    "mark_failed",
    "InvalidTransitionError",
]
