"""
Accounts domain
"""
from topup.core.accounts.models import (
    Wallet,
    WalletStatus,
    WalletTransaction,
    WalletTransactionType,
    WalletTransactionStatus,
    Membership,
    MemberRole,
    BalanceHistory,
    BalanceHistoryType,
)

__all__ = [
    "Wallet",
    "WalletStatus",
    "WalletTransaction",
    "WalletTransactionType",
    "WalletTransactionStatus",
    "Membership",
    "MemberRole",
    "BalanceHistory",
    "BalanceHistoryType",
]
