"""
Organization models - tenant, storefront, payment and topup provider configuration
"""

from sqlalchemy import (
    Column, String, Boolean, Integer, Numeric, DateTime, ForeignKey, JSON, Uuid,
    UniqueConstraint, Enum as SQLEnum,
)
from sqlalchemy.orm import relationship
import enum
from topup.core.common.base_model import BaseModel


class OrganizationStatus(str, enum.Enum):
    """Organization status enum"""
    ACTIVE = "active"
    SUSPENDED = "suspended"


class PaymentGatewayType(str, enum.Enum):
    """Payment methods a storefront purchase can be funded with"""
    PGPAY = "pgpay"
    STRIPE = "stripe"
    PAYPAL = "paypal"
    WALLET = "wallet"  # Internal org wallet, no gateway round-trip


class ProviderStatus(str, enum.Enum):
    """Status shared by payment providers and topup integrations"""
    ACTIVE = "active"
    INACTIVE = "inactive"
    ERROR = "error"


class ProviderEnvironment(str, enum.Enum):
    SANDBOX = "sandbox"
    PRODUCTION = "production"


class TopupProviderType(str, enum.Enum):
    """Telecom topup providers"""
    DINGCONNECT = "dingconnect"
    RELOADLY = "reloadly"


class Organization(BaseModel):
    """
    Organization model - the single canonical tenant record

    Storefront requests resolve the tenant by slug.
    """

    __tablename__ = "organizations"

    name = Column(String(255), nullable=False)
    slug = Column(String(100), unique=True, nullable=False, index=True)
    status = Column(SQLEnum(OrganizationStatus, name="organization_status", create_constraint=True), nullable=False, default=OrganizationStatus.ACTIVE)

    # Relationships
    storefront_settings = relationship("StorefrontSettings", back_populates="organization", uselist=False, lazy="select")
    payment_providers = relationship("PaymentProvider", back_populates="organization", lazy="select")
    integrations = relationship("Integration", back_populates="organization", lazy="select")


class StorefrontSettings(BaseModel):
    """
    Storefront settings - one per organization

    Order/revenue counters are only ever incremented with UPDATE ... SET x = x + n.
    """

    __tablename__ = "storefront_settings"

    organization_id = Column(Uuid(as_uuid=True), ForeignKey("organizations.id", name="fk_storefront_settings_organization_id"), unique=True, nullable=False, index=True)
    is_active = Column(Boolean, nullable=False, default=False)
    countries = Column(JSON, nullable=True)  # Enabled ISO country codes
    payment_methods = Column(JSON, nullable=True)  # Enabled PaymentGatewayType values
    validate_only = Column(Boolean, nullable=False, default=False)  # Dry-run transfers with the topup provider
    total_orders = Column(Integer, nullable=False, default=0)
    total_revenue = Column(Numeric(20, 2), nullable=False, default=0)
    last_order_at = Column(DateTime(timezone=True), nullable=True)

    organization = relationship("Organization", back_populates="storefront_settings")


class PaymentProvider(BaseModel):
    """Payment gateway configuration for an organization"""

    __tablename__ = "payment_providers"
    __table_args__ = (
        UniqueConstraint("organization_id", "provider", name="uq_payment_providers_org_provider"),
    )

    organization_id = Column(Uuid(as_uuid=True), ForeignKey("organizations.id", name="fk_payment_providers_organization_id"), nullable=False, index=True)
    provider = Column(SQLEnum(PaymentGatewayType, name="payment_gateway_type", create_constraint=True), nullable=False)
    status = Column(SQLEnum(ProviderStatus, name="payment_provider_status", create_constraint=True), nullable=False, default=ProviderStatus.INACTIVE)
    environment = Column(SQLEnum(ProviderEnvironment, name="provider_environment", create_constraint=True), nullable=False, default=ProviderEnvironment.SANDBOX)
    credentials = Column(JSON, nullable=True)  # e.g. {"userId": ..., "secretKey": ...}
    settings = Column(JSON, nullable=True)

    organization = relationship("Organization", back_populates="payment_providers")


class Integration(BaseModel):
    """Topup provider integration for an organization"""

    __tablename__ = "integrations"
    __table_args__ = (
        UniqueConstraint("organization_id", "provider", name="uq_integrations_org_provider"),
    )

    organization_id = Column(Uuid(as_uuid=True), ForeignKey("organizations.id", name="fk_integrations_organization_id"), nullable=False, index=True)
    provider = Column(SQLEnum(TopupProviderType, name="topup_provider_type", create_constraint=True), nullable=False)
    status = Column(SQLEnum(ProviderStatus, name="integration_status", create_constraint=True), nullable=False, default=ProviderStatus.INACTIVE)
    credentials = Column(JSON, nullable=True)  # e.g. {"apiKey": ...}

    organization = relationship("Organization", back_populates="integrations")


class Customer(BaseModel):
    """Storefront customer, upserted when a purchase completes"""

    __tablename__ = "customers"
    __table_args__ = (
        UniqueConstraint("organization_id", "email", name="uq_customers_org_email"),
    )

    organization_id = Column(Uuid(as_uuid=True), ForeignKey("organizations.id", name="fk_customers_organization_id"), nullable=False, index=True)
    email = Column(String(255), nullable=False, index=True)
    phone_number = Column(String(50), nullable=True)
    name = Column(String(255), nullable=True)
    total_purchases = Column(Integer, nullable=False, default=0)
    total_spent = Column(Numeric(20, 2), nullable=False, default=0)
    last_purchase_at = Column(DateTime(timezone=True), nullable=True)
