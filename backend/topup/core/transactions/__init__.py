"""
Transactions domain
"""
from topup.core.transactions.models import (
    Transaction,
    TransactionStatus,
    TERMINAL_STATUSES,
    WebhookLog,
    WebhookLogStatus,
)

__all__ = [
    "Transaction",
    "TransactionStatus",
    "TERMINAL_STATUSES",
    "WebhookLog",
    "WebhookLogStatus",
]
