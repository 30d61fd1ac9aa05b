"""
Organization resolution - slug -> organization, storefront, payment provider, integration
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from topup.core.organizations.models import (
    Integration,
    Organization,
    OrganizationStatus,
    PaymentGatewayType,
    PaymentProvider,
    ProviderStatus,
    StorefrontSettings,
    TopupProviderType,
)
from topup.services.errors import ConfigurationError, GENERIC_UNAVAILABLE_MESSAGE, NotFoundError, ServiceError

logger = logging.getLogger(__name__)


def resolve_organization(db: Session, slug: str) -> Organization:
    """
    Resolve an active organization by slug (case-insensitive).

    Raises:
        NotFoundError: Unknown or suspended organization
    """
    normalized = (slug or "").strip().lower()
    organization = db.query(Organization).filter(func.lower(Organization.slug) == normalized).first()
    if organization is None or organization.status != OrganizationStatus.ACTIVE:
        raise NotFoundError("Organization not found", code="ORGANIZATION_NOT_FOUND")
    return organization


def get_storefront_settings(db: Session, organization_id: UUID, require_active: bool = True) -> StorefrontSettings:
    storefront = db.query(StorefrontSettings).filter(StorefrontSettings.organization_id == organization_id).first()
    if storefront is None:
        logger.error(f"Storefront settings missing: organization_id={organization_id}")
        raise ConfigurationError(GENERIC_UNAVAILABLE_MESSAGE, code="STOREFRONT_NOT_CONFIGURED")
    if require_active and not storefront.is_active:
        raise ServiceError("This storefront is not currently active", code="STOREFRONT_INACTIVE", status_code=403)
    return storefront


def find_active_payment_provider(db: Session, organization_id: UUID, gateway: PaymentGatewayType):
    return (
        db.query(PaymentProvider)
        .filter(
            PaymentProvider.organization_id == organization_id,
            PaymentProvider.provider == gateway,
            PaymentProvider.status == ProviderStatus.ACTIVE,
        )
        .first()
    )


def get_active_payment_provider(db: Session, organization_id: UUID, gateway: PaymentGatewayType) -> PaymentProvider:
    provider = find_active_payment_provider(db, organization_id, gateway)
    if provider is None:
        logger.error(f"No active payment provider: organization_id={organization_id}, gateway={gateway.value}")
        raise ConfigurationError(GENERIC_UNAVAILABLE_MESSAGE, code="PAYMENT_PROVIDER_NOT_CONFIGURED")
    return provider


def find_active_integration(db: Session, organization_id: UUID, provider: TopupProviderType = TopupProviderType.DINGCONNECT):
    return (
        db.query(Integration)
        .filter(
            Integration.organization_id == organization_id,
            Integration.provider == provider,
            Integration.status == ProviderStatus.ACTIVE,
        )
        .first()
    )


def get_active_integration(db: Session, organization_id: UUID, provider: TopupProviderType = TopupProviderType.DINGCONNECT) -> Integration:
    integration = find_active_integration(db, organization_id, provider)
    if integration is None:
        logger.error(f"No active topup integration: organization_id={organization_id}, provider={provider.value}")
        raise ConfigurationError(GENERIC_UNAVAILABLE_MESSAGE, code="TOPUP_PROVIDER_NOT_CONFIGURED")
    return integration


def record_completed_order(db: Session, organization_id: UUID, amount: Decimal) -> None:
    """Increment storefront order/revenue counters in place"""
    db.execute(
        update(StorefrontSettings)
        .where(StorefrontSettings.organization_id == organization_id)
        .values(
            total_orders=StorefrontSettings.total_orders + 1,
            total_revenue=StorefrontSettings.total_revenue + amount,
            last_order_at=datetime.now(timezone.utc),
        )
        .execution_options(synchronize_session=False)
    )
