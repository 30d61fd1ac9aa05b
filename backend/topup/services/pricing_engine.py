"""
Pricing & Discount Engine - pure price calculation

Forward: cost price -> markup -> discount -> final customer price.
Reverse: customer price -> cost price (markup only, discounts are never inverted).

Intermediate math stays in full Decimal precision; outputs are rounded
half-up to cents once, at the end.
"""

import logging
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional, Sequence

from topup.core.pricing.models import AdjustmentType, Discount, PricingRule
from topup.core.pricing.regions import country_in_regions

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
HUNDRED = Decimal("100")
CENT = Decimal("0.01")

DISCOUNT_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"


def to_decimal(value) -> Decimal:
    """Convert int/float/str/Decimal/None into a Decimal (None -> 0)"""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    # str() avoids binary float artifacts (0.1 -> 0.1000000000000000055...)
    return Decimal(str(value))


def round_money(value) -> Decimal:
    """Round a monetary value to cents, half-up"""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def _optional_decimal(value) -> Optional[Decimal]:
    return None if value is None else to_decimal(value)


def _as_aware(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes; stored values are UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _upper_set(values) -> frozenset:
    return frozenset(v.upper() for v in (values or []) if v)


class UnreachablePriceError(ValueError):
    """No cost maps to this customer price under the rule's amount bounds"""

    def __init__(self, price: Decimal):
        self.price = price
        super().__init__(f"No cost price yields customer price {price}")


@dataclass(frozen=True)
class MarkupPolicy:
    """
    Normalized markup: cost * (1 + percentage_markup/100) + fixed_markup

    Both the percentage/fixed representation and the legacy type/value
    representation of a PricingRule load into this single shape.
    """
    percentage_markup: Decimal = ZERO
    fixed_markup: Decimal = ZERO
    min_transaction_amount: Optional[Decimal] = None
    max_transaction_amount: Optional[Decimal] = None

    @classmethod
    def from_rule(cls, rule: Optional[PricingRule]) -> "MarkupPolicy":
        if rule is None:
            return NO_MARKUP

        bounds = dict(
            min_transaction_amount=_optional_decimal(rule.min_transaction_amount),
            max_transaction_amount=_optional_decimal(rule.max_transaction_amount),
        )

        if rule.percentage_markup is not None or rule.fixed_markup is not None:
            return cls(
                percentage_markup=to_decimal(rule.percentage_markup),
                fixed_markup=to_decimal(rule.fixed_markup),
                **bounds,
            )

        if rule.type is not None and rule.value is not None:
            if rule.type == AdjustmentType.PERCENTAGE:
                return cls(percentage_markup=to_decimal(rule.value), **bounds)
            return cls(fixed_markup=to_decimal(rule.value), **bounds)

        return cls(**bounds)

    def applies_to_amount(self, amount: Decimal) -> bool:
        """Markup is zero outside [min_transaction_amount, max_transaction_amount]"""
        # A bound of 0 is treated as unset
        if self.min_transaction_amount and amount < self.min_transaction_amount:
            return False
        if self.max_transaction_amount and amount > self.max_transaction_amount:
            return False
        return True

    def markup_for(self, cost_price) -> Decimal:
        cost = to_decimal(cost_price)
        if not self.applies_to_amount(cost):
            return ZERO
        return cost * self.percentage_markup / HUNDRED + self.fixed_markup

    def reverse(self, customer_price) -> Decimal:
        """
        Unrounded inverse of cost + markup_for(cost).

        Raises UnreachablePriceError when the price falls in the gap the
        amount bounds leave between unmarked and marked-up costs.
        """
        price = to_decimal(customer_price)
        cost = (price - self.fixed_markup) / (1 + self.percentage_markup / HUNDRED)
        if self.applies_to_amount(cost):
            return max(cost, ZERO)
        # Costs outside the bounds are sold at cost
        if not self.applies_to_amount(price):
            return price
        raise UnreachablePriceError(price)


NO_MARKUP = MarkupPolicy()


@dataclass(frozen=True)
class DiscountTerms:
    """Snapshot of a Discount used by the pure calculation functions"""
    type: AdjustmentType
    value: Decimal
    is_active: bool = True
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    min_purchase_amount: Optional[Decimal] = None
    max_discount_amount: Optional[Decimal] = None
    usage_limit: Optional[int] = None
    usage_count: int = 0
    applicable_countries: frozenset = field(default_factory=frozenset)
    applicable_products: frozenset = field(default_factory=frozenset)

    @classmethod
    def from_discount(cls, discount: Discount) -> "DiscountTerms":
        return cls(
            type=AdjustmentType(discount.type),
            value=to_decimal(discount.value),
            is_active=bool(discount.is_active),
            start_date=_as_aware(discount.start_date),
            end_date=_as_aware(discount.end_date),
            min_purchase_amount=_optional_decimal(discount.min_purchase_amount),
            max_discount_amount=_optional_decimal(discount.max_discount_amount),
            usage_limit=discount.usage_limit,
            usage_count=discount.usage_count or 0,
            applicable_countries=_upper_set(discount.applicable_countries),
            applicable_products=frozenset(discount.applicable_products or []),
        )

    def is_valid(self, now: Optional[datetime] = None) -> bool:
        """Active flag, date window and usage counter; never stored"""
        now = now or datetime.now(timezone.utc)
        if not self.is_active:
            return False
        if self.start_date and now < self.start_date:
            return False
        if self.end_date and now > self.end_date:
            return False
        if self.usage_limit is not None and self.usage_count >= self.usage_limit:
            return False
        return True

    def applies_to_country(self, country_code: Optional[str]) -> bool:
        if not self.applicable_countries or not country_code:
            return True
        return country_code.upper() in self.applicable_countries

    def applies_to_product(self, product_sku_code: Optional[str]) -> bool:
        if not self.applicable_products or not product_sku_code:
            return True
        return product_sku_code in self.applicable_products

    def calculate(self, amount, now: Optional[datetime] = None) -> Decimal:
        """
        Unrounded discount for a purchase amount.

        Returns 0 (never raises) when the discount is not valid or the
        minimum purchase amount is not met. The result is clamped to
        [0, amount].
        """
        amount = to_decimal(amount)
        if amount <= ZERO or not self.is_valid(now):
            return ZERO
        if self.min_purchase_amount and amount < self.min_purchase_amount:
            return ZERO

        if self.type == AdjustmentType.PERCENTAGE:
            discount = amount * self.value / HUNDRED
        else:
            discount = self.value

        if self.max_discount_amount and discount > self.max_discount_amount:
            discount = self.max_discount_amount

        return min(max(discount, ZERO), amount)


def calculate_discount(discount: Optional[Discount], amount, now: Optional[datetime] = None) -> Decimal:
    """Rounded discount amount for a Discount model; 0 when not applicable"""
    if discount is None:
        return ZERO
    return round_money(DiscountTerms.from_discount(discount).calculate(amount, now))


@dataclass(frozen=True)
class PriceBreakdown:
    cost_price: Decimal
    markup: Decimal
    price_before_discount: Decimal
    discount: Decimal
    final_price: Decimal


def price(
    cost_price,
    rule: Optional[PricingRule] = None,
    discount: Optional[Discount] = None,
    *,
    country_code: Optional[str] = None,
    product_sku_code: Optional[str] = None,
    now: Optional[datetime] = None,
) -> PriceBreakdown:
    """
    Forward calculation from wholesale cost to customer price.

    Args:
        cost_price: Wholesale cost
        rule: Selected pricing rule (None -> no markup)
        discount: Discount to apply if valid and applicable
        country_code: Target country, checked against the discount allow-list
        product_sku_code: Product, checked against the discount allow-list
        now: Evaluation time for discount validity

    Returns:
        PriceBreakdown with every amount rounded to cents
    """
    cost = to_decimal(cost_price)
    policy = MarkupPolicy.from_rule(rule)

    markup = policy.markup_for(cost)
    price_after_markup = cost + markup

    discount_amount = ZERO
    if discount is not None:
        terms = DiscountTerms.from_discount(discount)
        if terms.applies_to_country(country_code) and terms.applies_to_product(product_sku_code):
            discount_amount = terms.calculate(price_after_markup, now)

    final_price = max(price_after_markup - discount_amount, ZERO)

    return PriceBreakdown(
        cost_price=round_money(cost),
        markup=round_money(markup),
        price_before_discount=round_money(price_after_markup),
        discount=round_money(discount_amount),
        final_price=round_money(final_price),
    )


def cost_price(customer_price, rule: Optional[PricingRule] = None) -> Decimal:
    """
    Reverse calculation: (customer_price - fixed_markup) / (1 + percentage_markup/100).

    Discounts are not inverted; they only apply at checkout. Raises
    UnreachablePriceError for prices no cost maps to under the rule bounds.
    """
    return round_money(MarkupPolicy.from_rule(rule).reverse(customer_price))


def is_rule_applicable(rule: PricingRule, country_code: Optional[str]) -> bool:
    """
    Applicability of a rule to a target country.

    Order: inactive -> excluded countries -> explicit allow-list -> regions -> all.
    """
    if not rule.is_active:
        return False
    if not country_code:
        return not rule.applicable_countries and not rule.applicable_regions

    code = country_code.upper()
    if code in _upper_set(rule.excluded_countries):
        return False
    if rule.applicable_countries:
        return code in _upper_set(rule.applicable_countries)
    if rule.applicable_regions:
        return country_in_regions(code, rule.applicable_regions)
    return True


def _by_priority(rules: Iterable[PricingRule]) -> Sequence[PricingRule]:
    # sorted() is stable, so equal priorities keep query order
    return sorted(rules, key=lambda r: r.priority or 0, reverse=True)


def select_pricing_rule(rules: Iterable[PricingRule], country_code: Optional[str]) -> Optional[PricingRule]:
    """
    Pick the markup rule for a country.

    Highest-priority applicable rule wins. With no country match, fall back
    to the highest-priority active rule; with no active rule, None.
    """
    active = _by_priority(r for r in rules if r.is_active)
    for rule in active:
        if is_rule_applicable(rule, country_code):
            return rule
    if active:
        logger.debug(f"No pricing rule matches country={country_code}, falling back to rule={active[0].id}")
        return active[0]
    return None


def generate_discount_code(length: int = 8) -> str:
    """Random discount code without ambiguous characters (0/O, 1/I)"""
    return "".join(secrets.choice(DISCOUNT_CODE_ALPHABET) for _ in range(length))

