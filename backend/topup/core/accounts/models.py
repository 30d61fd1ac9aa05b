"""
Account models - organization Wallet, wallet ledger lines, member spending limits
"""

from sqlalchemy import (
    Column, String, Boolean, Numeric, DateTime, ForeignKey, JSON, Text, Uuid,
    CheckConstraint, UniqueConstraint, Enum as SQLEnum,
)
from sqlalchemy.orm import relationship
import enum
from topup.core.common.base_model import BaseModel


class WalletStatus(str, enum.Enum):
    """Wallet status enum"""
    ACTIVE = "active"
    SUSPENDED = "suspended"
    FROZEN = "frozen"


class WalletTransactionType(str, enum.Enum):
    """Wallet ledger line type"""
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    PURCHASE = "purchase"
    REFUND = "refund"
    FEE = "fee"
    ADJUSTMENT = "adjustment"


class WalletTransactionStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class MemberRole(str, enum.Enum):
    OWNER = "owner"
    ADMIN = "admin"
    STAFF = "staff"


class BalanceHistoryType(str, enum.Enum):
    """Member balance history entry type"""
    USAGE = "usage"
    RESET = "reset"
    LIMIT_UPDATE = "limit_update"


class Wallet(BaseModel):
    """
    Wallet model - one per organization

    balance is total funds, reserved_balance is earmarked for in-flight spend.
    available_balance is stored for reads but rewritten as balance - reserved_balance
    in every UPDATE statement that touches either field (see services/wallet_ledger.py).
    Never assign these columns directly.
    """

    __tablename__ = "wallets"
    __table_args__ = (
        CheckConstraint("reserved_balance >= 0", name="check_wallets_reserved_non_negative"),
        CheckConstraint("reserved_balance <= balance", name="check_wallets_reserved_within_balance"),
        CheckConstraint("available_balance >= 0", name="check_wallets_available_non_negative"),
    )

    organization_id = Column(Uuid(as_uuid=True), ForeignKey("organizations.id", name="fk_wallets_organization_id"), unique=True, nullable=False, index=True)
    currency = Column(String(3), nullable=False, default="USD")
    balance = Column(Numeric(20, 2), nullable=False, default=0)
    reserved_balance = Column(Numeric(20, 2), nullable=False, default=0)
    available_balance = Column(Numeric(20, 2), nullable=False, default=0)
    status = Column(SQLEnum(WalletStatus, name="wallet_status", create_constraint=True), nullable=False, default=WalletStatus.ACTIVE)
    low_balance_threshold = Column(Numeric(20, 2), nullable=False, default=100)

    # Cumulative counters
    total_deposits = Column(Numeric(20, 2), nullable=False, default=0)
    total_withdrawals = Column(Numeric(20, 2), nullable=False, default=0)
    total_spent = Column(Numeric(20, 2), nullable=False, default=0)
    last_deposit_at = Column(DateTime(timezone=True), nullable=True)
    last_transaction_at = Column(DateTime(timezone=True), nullable=True)

    entries = relationship("WalletTransaction", back_populates="wallet", lazy="select", order_by="WalletTransaction.created_at")


class WalletTransaction(BaseModel):
    """
    WalletTransaction - IMMUTABLE (WRITE-ONCE) record of a wallet balance movement

    One row per deposit or deduction, with the balance snapshot before and after.
    """

    __tablename__ = "wallet_transactions"
    __table_args__ = (
        CheckConstraint("amount > 0", name="check_wallet_transactions_amount_positive"),
    )

    wallet_id = Column(Uuid(as_uuid=True), ForeignKey("wallets.id", name="fk_wallet_transactions_wallet_id"), nullable=False, index=True)
    organization_id = Column(Uuid(as_uuid=True), ForeignKey("organizations.id", name="fk_wallet_transactions_organization_id"), nullable=False, index=True)
    type = Column(SQLEnum(WalletTransactionType, name="wallet_transaction_type", create_constraint=True), nullable=False, index=True)
    status = Column(SQLEnum(WalletTransactionStatus, name="wallet_transaction_status", create_constraint=True), nullable=False, default=WalletTransactionStatus.COMPLETED)
    amount = Column(Numeric(20, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="USD")
    balance_before = Column(Numeric(20, 2), nullable=False)
    balance_after = Column(Numeric(20, 2), nullable=False)
    reference_type = Column(String(50), nullable=True)  # e.g. "transaction", "manual"
    reference_id = Column(String(255), nullable=True, index=True)  # e.g. orderId
    description = Column(Text, nullable=True)
    payment_method = Column(String(50), nullable=True)
    entry_metadata = Column(JSON, nullable=True)

    wallet = relationship("Wallet", back_populates="entries")


class Membership(BaseModel):
    """
    Staff member <-> organization membership with a delegated spending limit

    When balance_limit_enabled is false the member has unlimited internal spend.
    """

    __tablename__ = "memberships"
    __table_args__ = (
        UniqueConstraint("organization_id", "user_id", name="uq_memberships_org_user"),
        CheckConstraint("current_used >= 0", name="check_memberships_current_used_non_negative"),
        CheckConstraint(
            "NOT balance_limit_enabled OR current_used <= max_balance",
            name="check_memberships_within_limit",
        ),
    )

    organization_id = Column(Uuid(as_uuid=True), ForeignKey("organizations.id", name="fk_memberships_organization_id"), nullable=False, index=True)
    user_id = Column(Uuid(as_uuid=True), nullable=False, index=True)  # Identity provider subject
    email = Column(String(255), nullable=True)
    role = Column(SQLEnum(MemberRole, name="member_role", create_constraint=True), nullable=False, default=MemberRole.STAFF)
    is_active = Column(Boolean, nullable=False, default=True)

    # Balance limit
    balance_limit_enabled = Column(Boolean, nullable=False, default=False)
    max_balance = Column(Numeric(20, 2), nullable=False, default=0)
    current_used = Column(Numeric(20, 2), nullable=False, default=0)

    history = relationship("BalanceHistory", back_populates="membership", lazy="select", order_by="BalanceHistory.created_at")

    @property
    def remaining_balance(self):
        """Remaining spend under the limit, None when unlimited"""
        if not self.balance_limit_enabled:
            return None
        return self.max_balance - self.current_used


class BalanceHistory(BaseModel):
    """
    BalanceHistory - IMMUTABLE (WRITE-ONCE) audit trail of member limit changes

    Exactly one row per mutation of Membership.current_used or the limit itself.
    """

    __tablename__ = "balance_history"

    membership_id = Column(Uuid(as_uuid=True), ForeignKey("memberships.id", name="fk_balance_history_membership_id"), nullable=False, index=True)
    organization_id = Column(Uuid(as_uuid=True), ForeignKey("organizations.id", name="fk_balance_history_organization_id"), nullable=False, index=True)
    user_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    type = Column(SQLEnum(BalanceHistoryType, name="balance_history_type", create_constraint=True), nullable=False, index=True)
    amount = Column(Numeric(20, 2), nullable=False)  # Signed delta
    previous_balance = Column(Numeric(20, 2), nullable=False)
    new_balance = Column(Numeric(20, 2), nullable=False)
    description = Column(Text, nullable=False)
    history_metadata = Column(JSON, nullable=True)  # phoneNumber, productName, orderId, adminId

    membership = relationship("Membership", back_populates="history")
