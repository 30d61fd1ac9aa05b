"""
Catalog model - products an organization sells (maintained by staff tooling)

Checkout reads products to price them; a Transaction snapshots everything it
needs so later catalog edits never affect an in-flight purchase.
"""

from sqlalchemy import (
    Column, String, Boolean, Numeric, ForeignKey, Uuid, UniqueConstraint,
    Enum as SQLEnum,
)
from topup.core.common.base_model import BaseModel
from topup.core.organizations.models import TopupProviderType


class Product(BaseModel):
    """Top-up or data bundle SKU offered by a topup provider"""

    __tablename__ = "products"
    __table_args__ = (
        UniqueConstraint("organization_id", "sku_code", name="uq_products_org_sku"),
    )

    organization_id = Column(Uuid(as_uuid=True), ForeignKey("organizations.id", name="fk_products_organization_id"), nullable=False, index=True)
    provider = Column(SQLEnum(TopupProviderType, name="product_topup_provider", create_constraint=True), nullable=False, default=TopupProviderType.DINGCONNECT)
    sku_code = Column(String(100), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    country_code = Column(String(2), nullable=True, index=True)
    operator_id = Column(String(100), nullable=True)  # Provider code
    operator_name = Column(String(255), nullable=True)

    # Wholesale send value charged by the provider (fixed-value products)
    cost_price = Column(Numeric(20, 2), nullable=True)
    currency = Column(String(3), nullable=False, default="USD")

    # Variable-value products: customer picks an amount within bounds
    is_variable_value = Column(Boolean, nullable=False, default=False)
    min_amount = Column(Numeric(20, 2), nullable=True)
    max_amount = Column(Numeric(20, 2), nullable=True)

    benefit_amount = Column(Numeric(20, 2), nullable=True)
    benefit_unit = Column(String(50), nullable=True)  # e.g. "GB", "minutes", "HTG"

    is_active = Column(Boolean, nullable=False, default=True, index=True)
