"""
Transaction model - one storefront purchase attempt, and the webhook delivery log
"""

from sqlalchemy import (
    Column, String, Integer, Numeric, DateTime, ForeignKey, JSON, Text, Uuid,
    Enum as SQLEnum,
)
import enum
from topup.core.common.base_model import BaseModel
from topup.core.organizations.models import PaymentGatewayType, TopupProviderType


class TransactionStatus(str, enum.Enum):
    """
    Purchase lifecycle: PENDING -> PAID -> PROCESSING -> COMPLETED.
    FAILED is reachable from any non-terminal state.
    """
    PENDING = "pending"
    PAID = "paid"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATUSES = frozenset({TransactionStatus.COMPLETED, TransactionStatus.FAILED})


class Transaction(BaseModel):
    """
    Transaction model - created once per checkout attempt, never deleted

    order_id is the idempotency key toward both the payment gateway and the
    topup provider. Status only moves forward and is changed exclusively by
    services/transaction_engine.py through conditional UPDATEs.
    """

    __tablename__ = "transactions"

    order_id = Column(String(64), unique=True, nullable=False, index=True)
    organization_id = Column(Uuid(as_uuid=True), ForeignKey("organizations.id", name="fk_transactions_organization_id"), nullable=False, index=True)
    customer_id = Column(Uuid(as_uuid=True), ForeignKey("customers.id", name="fk_transactions_customer_id"), nullable=True, index=True)
    membership_id = Column(Uuid(as_uuid=True), ForeignKey("memberships.id", name="fk_transactions_membership_id"), nullable=True, index=True)

    # Product snapshot at checkout time
    product_sku_code = Column(String(100), nullable=False)
    product_name = Column(String(255), nullable=True)
    country_code = Column(String(2), nullable=True)
    operator_id = Column(String(100), nullable=True)
    operator_name = Column(String(255), nullable=True)

    amount = Column(Numeric(20, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="USD")
    discount_id = Column(Uuid(as_uuid=True), ForeignKey("discounts.id", name="fk_transactions_discount_id"), nullable=True, index=True)
    discount_amount = Column(Numeric(20, 2), nullable=False, default=0)

    status = Column(SQLEnum(TransactionStatus, name="transaction_status", create_constraint=True), nullable=False, default=TransactionStatus.PENDING, index=True)

    payment_gateway = Column(SQLEnum(PaymentGatewayType, name="transaction_payment_gateway", create_constraint=True), nullable=False)
    payment_token = Column(String(255), nullable=True, unique=True, index=True)  # Gateway-issued opaque token
    payment_id = Column(String(255), nullable=True)  # Gateway-side order id
    provider = Column(SQLEnum(TopupProviderType, name="transaction_topup_provider", create_constraint=True), nullable=False, default=TopupProviderType.DINGCONNECT)
    provider_transaction_id = Column(String(255), nullable=True, index=True)

    # Recipient
    recipient_phone = Column(String(50), nullable=False)
    recipient_email = Column(String(255), nullable=True, index=True)
    recipient_name = Column(String(255), nullable=True)

    # sendValue, failureReason, retryCount, lastWebhookCheck, gateway correlation data
    transaction_metadata = Column(JSON, nullable=True)

    # Timeline (created_at comes from BaseModel)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    processing_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    failed_at = Column(DateTime(timezone=True), nullable=True)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def failure_reason(self):
        return (self.transaction_metadata or {}).get("failureReason")

    @property
    def timeline(self) -> dict:
        return {
            "createdAt": self.created_at,
            "paidAt": self.paid_at,
            "processingAt": self.processing_at,
            "completedAt": self.completed_at,
            "failedAt": self.failed_at,
        }


class WebhookLogStatus(str, enum.Enum):
    SUCCESS = "success"
    FAILED = "failed"


class WebhookLog(BaseModel):
    """One row per inbound webhook delivery"""

    __tablename__ = "webhook_logs"

    source = Column(String(50), nullable=False, index=True)  # e.g. "pgpay"
    event = Column(String(100), nullable=True)
    payload = Column(JSON, nullable=True)
    status = Column(SQLEnum(WebhookLogStatus, name="webhook_log_status", create_constraint=True), nullable=False)
    response_code = Column(Integer, nullable=False)
    error_message = Column(Text, nullable=True)
    processing_duration_ms = Column(Integer, nullable=True)
    transaction_id = Column(Uuid(as_uuid=True), ForeignKey("transactions.id", name="fk_webhook_logs_transaction_id"), nullable=True, index=True)
