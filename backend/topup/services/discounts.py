"""
Discount lookup, validation and usage accounting
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, Tuple
from uuid import UUID

from sqlalchemy import func, or_, update
from sqlalchemy.orm import Session

from topup.core.pricing.models import Discount
from topup.core.transactions.models import Transaction, TransactionStatus
from topup.services.errors import ServiceError
from topup.services.pricing_engine import ZERO, DiscountTerms, round_money, to_decimal

logger = logging.getLogger(__name__)


class DiscountRejected(ServiceError):
    """A discount code that cannot be applied, with a reason safe to show the customer"""
    code = "DISCOUNT_REJECTED"


@dataclass
class AppliedDiscount:
    discount: Discount
    discount_amount: Decimal
    final_amount: Decimal


def find_discount_by_code(db: Session, organization_id: UUID, code: str) -> Optional[Discount]:
    normalized = (code or "").strip().upper()
    if not normalized:
        return None
    return (
        db.query(Discount)
        .filter(Discount.organization_id == organization_id, Discount.code == normalized)
        .first()
    )


def _rejection_reason(terms: DiscountTerms, now: datetime) -> str:
    if not terms.is_active:
        return "This discount code is no longer active"
    if terms.start_date and now < terms.start_date:
        return "This discount code is not yet active"
    if terms.end_date and now > terms.end_date:
        return "This discount code has expired"
    if terms.usage_limit is not None and terms.usage_count >= terms.usage_limit:
        return "This discount code has reached its usage limit"
    return "Invalid discount code"


def validate_discount_code(
    db: Session,
    *,
    organization_id: UUID,
    code: str,
    amount,
    country_code: Optional[str] = None,
    product_sku_code: Optional[str] = None,
    now: Optional[datetime] = None,
) -> AppliedDiscount:
    """
    Explicit validate-code check. Unlike checkout, every rejection carries a
    human-readable reason.

    Raises:
        DiscountRejected: 404 for unknown codes, 400 otherwise
    """
    now = now or datetime.now(timezone.utc)
    amount = to_decimal(amount)

    discount = find_discount_by_code(db, organization_id, code)
    if discount is None:
        raise DiscountRejected("Invalid discount code", status_code=404)

    terms = DiscountTerms.from_discount(discount)
    if not terms.is_valid(now):
        raise DiscountRejected(_rejection_reason(terms, now))
    if country_code and not terms.applies_to_country(country_code):
        raise DiscountRejected("This discount is not available in your country")
    if product_sku_code and not terms.applies_to_product(product_sku_code):
        raise DiscountRejected("This discount is not applicable to the selected product")
    if terms.min_purchase_amount and amount < terms.min_purchase_amount:
        raise DiscountRejected(
            f"Minimum purchase amount of ${terms.min_purchase_amount:.2f} required for this discount"
        )

    discount_amount = round_money(terms.calculate(amount, now))
    if discount_amount <= ZERO:
        raise DiscountRejected("This discount cannot be applied to your purchase")

    logger.info(
        f"Validated discount code: organization_id={organization_id}, code={discount.code}, "
        f"amount={amount}, discount_amount={discount_amount}"
    )
    return AppliedDiscount(
        discount=discount,
        discount_amount=discount_amount,
        final_amount=max(round_money(amount) - discount_amount, ZERO),
    )


def _applicable_amount(
    discount: Discount,
    amount: Decimal,
    country_code: Optional[str],
    product_sku_code: Optional[str],
    now: datetime,
) -> Decimal:
    terms = DiscountTerms.from_discount(discount)
    if not terms.applies_to_country(country_code) or not terms.applies_to_product(product_sku_code):
        return ZERO
    return round_money(terms.calculate(amount, now))


def best_automatic_discount(
    db: Session,
    *,
    organization_id: UUID,
    amount,
    country_code: Optional[str] = None,
    product_sku_code: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Optional[Tuple[Discount, Decimal]]:
    """Largest applicable code-less discount, or None"""
    now = now or datetime.now(timezone.utc)
    amount = to_decimal(amount)
    candidates = (
        db.query(Discount)
        .filter(
            Discount.organization_id == organization_id,
            Discount.code.is_(None),
            Discount.is_active.is_(True),
        )
        .all()
    )
    best = None
    for discount in candidates:
        value = _applicable_amount(discount, amount, country_code, product_sku_code, now)
        if value > ZERO and (best is None or value > best[1]):
            best = (discount, value)
    return best


def customer_usage_count(db: Session, discount_id: UUID, email: str) -> int:
    """Non-failed transactions of one customer email that carried this discount"""
    return (
        db.query(func.count(Transaction.id))
        .filter(
            Transaction.discount_id == discount_id,
            func.lower(Transaction.recipient_email) == email.strip().lower(),
            Transaction.status != TransactionStatus.FAILED,
        )
        .scalar()
        or 0
    )


def increment_usage(db: Session, discount_id: UUID) -> bool:
    """
    Count one use, bounded by usage_limit in the same UPDATE.

    Returns False when the limit was reached concurrently.
    """
    result = db.execute(
        update(Discount)
        .where(
            Discount.id == discount_id,
            Discount.is_active.is_(True),
            or_(Discount.usage_limit.is_(None), Discount.usage_count < Discount.usage_limit),
        )
        .values(usage_count=Discount.usage_count + 1)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def release_usage(db: Session, discount_id: UUID) -> bool:
    """Give back one use after the attempt that counted it failed; never below 0"""
    result = db.execute(
        update(Discount)
        .where(Discount.id == discount_id, Discount.usage_count > 0)
        .values(usage_count=Discount.usage_count - 1)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def apply_checkout_discount(
    db: Session,
    *,
    organization_id: UUID,
    amount,
    code: Optional[str] = None,
    country_code: Optional[str] = None,
    product_sku_code: Optional[str] = None,
    customer_email: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Tuple[Optional[Discount], Decimal]:
    """
    Discount for a checkout. Never raises: an unknown, expired or exhausted
    discount simply yields (None, 0). A positive result has already been
    counted against usage_limit.
    """
    now = now or datetime.now(timezone.utc)
    amount = to_decimal(amount)

    if code:
        discount = find_discount_by_code(db, organization_id, code)
        if discount is None:
            logger.info(f"Checkout discount code not found: organization_id={organization_id}, code={code}")
            return None, ZERO
        discount_amount = _applicable_amount(discount, amount, country_code, product_sku_code, now)
    else:
        found = best_automatic_discount(
            db,
            organization_id=organization_id,
            amount=amount,
            country_code=country_code,
            product_sku_code=product_sku_code,
            now=now,
        )
        if found is None:
            return None, ZERO
        discount, discount_amount = found

    if discount_amount <= ZERO:
        return None, ZERO

    if discount.max_uses_per_customer and customer_email:
        if customer_usage_count(db, discount.id, customer_email) >= discount.max_uses_per_customer:
            logger.info(f"Discount per-customer limit reached: discount_id={discount.id}, email={customer_email}")
            return None, ZERO

    if not increment_usage(db, discount.id):
        logger.info(f"Discount usage limit reached at checkout: discount_id={discount.id}")
        return None, ZERO

    db.refresh(discount)
    return discount, discount_amount
