"""
Pricing models - PricingRule (markup policy) and Discount
"""

from sqlalchemy import (
    Column, String, Boolean, Integer, Numeric, DateTime, ForeignKey, JSON, Text, Uuid,
    UniqueConstraint, Enum as SQLEnum,
)
from sqlalchemy.orm import validates
import enum
from topup.core.common.base_model import BaseModel


class AdjustmentType(str, enum.Enum):
    """Percentage or fixed amount, shared by legacy markups and discounts"""
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class PricingRule(BaseModel):
    """
    PricingRule model - organization-scoped markup policy

    A rule carries either percentage_markup/fixed_markup or the legacy
    type/value pair. services/pricing_engine.MarkupPolicy normalizes both
    shapes on load; calculation code never reads these columns directly.
    """

    __tablename__ = "pricing_rules"

    organization_id = Column(Uuid(as_uuid=True), ForeignKey("organizations.id", name="fk_pricing_rules_organization_id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    percentage_markup = Column(Numeric(10, 4), nullable=True)
    fixed_markup = Column(Numeric(20, 2), nullable=True)

    # Legacy single-value markup
    type = Column(SQLEnum(AdjustmentType, name="pricing_rule_type", create_constraint=True), nullable=True)
    value = Column(Numeric(20, 4), nullable=True)

    priority = Column(Integer, nullable=False, default=0, index=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)

    # Applicability
    applicable_countries = Column(JSON, nullable=True)
    applicable_regions = Column(JSON, nullable=True)
    excluded_countries = Column(JSON, nullable=True)

    min_transaction_amount = Column(Numeric(20, 2), nullable=True)
    max_transaction_amount = Column(Numeric(20, 2), nullable=True)


class Discount(BaseModel):
    """
    Discount model - code-based or automatic (code is NULL)

    Validity is evaluated from is_active, the date window and usage counters
    at read time; it is never stored.
    """

    __tablename__ = "discounts"
    __table_args__ = (
        UniqueConstraint("organization_id", "code", name="uq_discounts_org_code"),
    )

    organization_id = Column(Uuid(as_uuid=True), ForeignKey("organizations.id", name="fk_discounts_organization_id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    code = Column(String(50), nullable=True, index=True)
    type = Column(SQLEnum(AdjustmentType, name="discount_type", create_constraint=True), nullable=False)
    value = Column(Numeric(20, 4), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    start_date = Column(DateTime(timezone=True), nullable=True)
    end_date = Column(DateTime(timezone=True), nullable=True)

    min_purchase_amount = Column(Numeric(20, 2), nullable=True)
    max_discount_amount = Column(Numeric(20, 2), nullable=True)
    applicable_countries = Column(JSON, nullable=True)
    applicable_products = Column(JSON, nullable=True)  # SKU codes

    usage_limit = Column(Integer, nullable=True)
    usage_count = Column(Integer, nullable=False, default=0)
    max_uses_per_customer = Column(Integer, nullable=True)

    @validates("code")
    def _normalize_code(self, key, code):
        if code is None:
            return None
        code = code.strip().upper()
        return code or None
