"""
Checkout - quote, estimate and processPayment

Prices are always derived server-side from the catalog Product and the
organization's pricing rules; nothing priced by the client is trusted.
All checks that can reject a purchase run before anything is committed.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from topup.core.accounts.models import Membership
from topup.core.catalog.models import Product
from topup.core.organizations.models import Integration, Organization, PaymentGatewayType, PaymentProvider
from topup.core.pricing.models import PricingRule
from topup.core.transactions.models import TransactionStatus
from topup.infrastructure.settings import get_settings
from topup.services import fulfillment, member_balance, pricing_engine, transaction_engine, wallet_ledger
from topup.services.discounts import apply_checkout_discount, find_discount_by_code
from topup.services.errors import (
    ConfigurationError,
    GENERIC_UNAVAILABLE_MESSAGE,
    InsufficientFundsError,
    NotFoundError,
    ServiceError,
    UpstreamError,
)
from topup.services.organizations import (
    get_active_integration,
    get_active_payment_provider,
    get_storefront_settings,
    resolve_organization,
)
from topup.services.payments import (
    CallbackUrls,
    CustomerInfo,
    GatewayNotConfiguredError,
    PaymentGateway,
    PaymentGatewayError,
)
from topup.services.pricing_engine import PriceBreakdown, ZERO, round_money
from topup.services.providers import PriceEstimate, ProviderError, TopupProvider
from topup.utils.metrics import record_provider_balance_shortfall

logger = logging.getLogger(__name__)

GatewayFactory = Callable[[PaymentProvider], PaymentGateway]
ProviderFactory = Callable[[Integration], TopupProvider]

UNSUPPORTED_GATEWAYS = (PaymentGatewayType.STRIPE, PaymentGatewayType.PAYPAL)


@dataclass
class CheckoutRequest:
    organization_slug: str
    phone_number: str
    product_sku_code: str
    customer_email: str
    payment_method: str
    amount: Optional[Decimal] = None  # Customer-facing amount for variable-value products
    discount_code: Optional[str] = None
    country_code: Optional[str] = None
    membership_id: Optional[UUID] = None  # Required for wallet-funded purchases
    customer_name: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


@dataclass
class CheckoutResult:
    order_id: str
    status: TransactionStatus
    amount: Decimal
    discount_amount: Decimal
    currency: str
    requires_redirect: bool
    checkout_url: Optional[str] = None
    payment_token: Optional[str] = None
    failure_reason: Optional[str] = None


@dataclass
class QuoteResult:
    breakdown: PriceBreakdown
    pricing_rule_id: Optional[UUID] = None
    discount_id: Optional[UUID] = None


@dataclass
class EstimateResult:
    sku_code: str
    customer_send_value: Decimal
    cost_price: Decimal
    pricing_rule_id: Optional[UUID] = None
    estimates: List[PriceEstimate] = field(default_factory=list)


def _active_rules(db: Session, organization_id: UUID) -> List[PricingRule]:
    return (
        db.query(PricingRule)
        .filter(PricingRule.organization_id == organization_id, PricingRule.is_active.is_(True))
        .order_by(PricingRule.priority.desc())
        .all()
    )


def _get_product(db: Session, organization_id: UUID, sku_code: str) -> Product:
    if not sku_code:
        raise ServiceError("Invalid product data: missing SKU code", code="INVALID_PRODUCT")
    product = (
        db.query(Product)
        .filter(
            Product.organization_id == organization_id,
            Product.sku_code == sku_code,
            Product.is_active.is_(True),
        )
        .first()
    )
    if product is None:
        raise NotFoundError("Product not found", code="PRODUCT_NOT_FOUND")
    return product


def _parse_payment_method(value: str) -> PaymentGatewayType:
    try:
        return PaymentGatewayType((value or "").strip().lower())
    except ValueError:
        raise ServiceError("Invalid payment method", code="INVALID_PAYMENT_METHOD")


def quote(
    db: Session,
    *,
    organization_slug: str,
    cost_price,
    country_code: Optional[str] = None,
    product_sku_code: Optional[str] = None,
    discount_code: Optional[str] = None,
) -> QuoteResult:
    """Forward price for a wholesale cost. Read-only; discount usage is not counted."""
    organization = resolve_organization(db, organization_slug)
    rule = pricing_engine.select_pricing_rule(_active_rules(db, organization.id), country_code)
    discount = find_discount_by_code(db, organization.id, discount_code) if discount_code else None
    breakdown = pricing_engine.price(
        cost_price,
        rule,
        discount,
        country_code=country_code,
        product_sku_code=product_sku_code,
    )
    return QuoteResult(
        breakdown=breakdown,
        pricing_rule_id=rule.id if rule is not None else None,
        discount_id=discount.id if discount is not None and breakdown.discount > ZERO else None,
    )


def estimate(
    db: Session,
    *,
    organization_slug: str,
    sku_code: str,
    send_value,
    provider_factory: ProviderFactory,
) -> EstimateResult:
    """
    Reverse-price a customer-facing send value to the provider cost basis and
    ask the provider for its own estimate. Discounts never take part.
    """
    organization = resolve_organization(db, organization_slug)
    customer_value = round_money(send_value)
    if customer_value <= ZERO:
        raise ServiceError("Send value must be greater than 0", code="INVALID_AMOUNT")

    product = (
        db.query(Product)
        .filter(Product.organization_id == organization.id, Product.sku_code == sku_code)
        .first()
    )
    country_code = product.country_code if product is not None else None
    rule = pricing_engine.select_pricing_rule(_active_rules(db, organization.id), country_code)
    cost = _send_value_for(customer_value, rule)

    integration = get_active_integration(db, organization.id)
    try:
        estimates = provider_factory(integration).estimate_prices([
            {"SkuCode": sku_code, "SendValue": float(cost), "BatchItemRef": sku_code}
        ])
    except ProviderError as e:
        logger.error(f"Provider estimate failed: organization_id={organization.id}, sku={sku_code}, error={e.message}")
        raise UpstreamError("Failed to estimate price", code="ESTIMATE_FAILED")

    logger.info(f"Estimate: sku={sku_code}, customer_value={customer_value}, cost_price={cost}")
    return EstimateResult(
        sku_code=sku_code,
        customer_send_value=customer_value,
        cost_price=cost,
        pricing_rule_id=rule.id if rule is not None else None,
        estimates=estimates,
    )


def _resolve_country(request: CheckoutRequest, product: Product, provider: TopupProvider) -> Optional[str]:
    if request.country_code:
        return request.country_code.upper()
    if product.country_code:
        return product.country_code.upper()
    try:
        country = provider.lookup_country(request.phone_number)
    except ProviderError as e:
        logger.warning(f"Account lookup failed: phone={request.phone_number[:5]}***, error={e.message}")
        return None
    return country.upper() if country else None


def _send_value_for(customer_value: Decimal, rule: Optional[PricingRule]) -> Decimal:
    """Provider send value for a customer-entered amount; the amount itself is what gets charged"""
    try:
        return pricing_engine.cost_price(customer_value, rule)
    except pricing_engine.UnreachablePriceError:
        raise ServiceError(
            f"Amount {customer_value} cannot be priced for this product. Please choose a different amount.",
            code="AMOUNT_NOT_PRICEABLE",
            status_code=422,
        )


def _price_product(
    product: Product,
    request: CheckoutRequest,
    rule: Optional[PricingRule],
) -> Dict[str, Any]:
    """Cost basis and pre-discount breakdown for the product being bought"""
    if product.is_variable_value:
        if request.amount is None:
            raise ServiceError("Amount is required for variable-value products", code="AMOUNT_REQUIRED")
        amount = round_money(request.amount)
        if amount <= ZERO:
            raise ServiceError("Purchase amount must be greater than 0", code="INVALID_AMOUNT")
        if product.min_amount is not None and product.max_amount is not None:
            if amount < product.min_amount or amount > product.max_amount:
                raise ServiceError(
                    f"Amount must be between {product.min_amount} and {product.max_amount}",
                    code="AMOUNT_OUT_OF_RANGE",
                )
        send_value = _send_value_for(amount, rule)
        breakdown = PriceBreakdown(
            cost_price=send_value,
            markup=amount - send_value,
            price_before_discount=amount,
            discount=ZERO,
            final_price=amount,
        )
        return {"cost": send_value, "send_value": send_value, "breakdown": breakdown}

    if product.cost_price is None or product.cost_price <= ZERO:
        raise ServiceError("Invalid product pricing", code="INVALID_PRODUCT_PRICING")
    return {"cost": product.cost_price, "send_value": None, "breakdown": pricing_engine.price(product.cost_price, rule)}


def _check_provider_balance(provider: TopupProvider, organization: Organization, required: Decimal) -> None:
    try:
        balance = provider.get_balance()
    except ProviderError as e:
        logger.error(f"Failed to check provider balance: organization_id={organization.id}, error={e.message}")
        raise UpstreamError(GENERIC_UNAVAILABLE_MESSAGE, code="PROVIDER_UNAVAILABLE")

    if balance.account_balance < required:
        # The operator's prepaid account needs funding; the customer sees a generic message
        logger.critical(
            f"Insufficient topup provider balance: organization_id={organization.id}, "
            f"balance={balance.account_balance} {balance.currency}, required={required}"
        )
        record_provider_balance_shortfall(provider.name or "unknown")
        raise ConfigurationError(GENERIC_UNAVAILABLE_MESSAGE, code="SERVICE_UNAVAILABLE")


def process_payment(
    db: Session,
    request: CheckoutRequest,
    *,
    gateway_factory: GatewayFactory,
    provider_factory: ProviderFactory,
) -> CheckoutResult:
    """
    Create a Transaction for a storefront purchase.

    Gateway methods open a hosted payment session and return its checkout
    URL; the Transaction waits in pending for the webhook. The wallet method
    reserves organization funds, consumes the member's limit and fulfills
    immediately.

    Raises:
        ServiceError: Any rejection, before a Transaction is committed, except
            a failed payment session which leaves a FAILED Transaction behind
    """
    try:
        return _process_payment(db, request, gateway_factory, provider_factory)
    except Exception:
        db.rollback()
        raise


def _process_payment(
    db: Session,
    request: CheckoutRequest,
    gateway_factory: GatewayFactory,
    provider_factory: ProviderFactory,
) -> CheckoutResult:
    if not request.phone_number or not request.customer_email:
        raise ServiceError("Missing required fields", code="VALIDATION_ERROR")

    organization = resolve_organization(db, request.organization_slug)
    storefront = get_storefront_settings(db, organization.id)

    method = _parse_payment_method(request.payment_method)
    enabled_methods = [m.lower() for m in (storefront.payment_methods or [])]
    if enabled_methods and method.value not in enabled_methods:
        raise ServiceError("This payment method is not enabled", code="PAYMENT_METHOD_NOT_ENABLED")
    if method in UNSUPPORTED_GATEWAYS:
        raise ServiceError(
            f"Payment method '{method.value}' is not yet implemented",
            code="PAYMENT_METHOD_NOT_SUPPORTED",
        )

    product = _get_product(db, organization.id, request.product_sku_code)
    integration = get_active_integration(db, organization.id, product.provider)
    try:
        provider = provider_factory(integration)
    except ProviderError as e:
        logger.error(f"Topup provider unusable: organization_id={organization.id}, error={e.message}")
        raise ConfigurationError(GENERIC_UNAVAILABLE_MESSAGE, code="TOPUP_PROVIDER_NOT_CONFIGURED")

    country_code = _resolve_country(request, product, provider)
    enabled_countries = {c.upper() for c in (storefront.countries or [])}
    if enabled_countries and country_code not in enabled_countries:
        raise ServiceError("This country is not currently supported", code="COUNTRY_NOT_ENABLED")

    rule = pricing_engine.select_pricing_rule(_active_rules(db, organization.id), country_code)
    priced = _price_product(product, request, rule)
    breakdown: PriceBreakdown = priced["breakdown"]

    _check_provider_balance(provider, organization, priced["cost"])

    gateway = None
    provider_config = None
    if method != PaymentGatewayType.WALLET:
        provider_config = get_active_payment_provider(db, organization.id, method)
        try:
            gateway = gateway_factory(provider_config)
        except GatewayNotConfiguredError as e:
            logger.error(f"Payment provider unusable: organization_id={organization.id}, error={e.message}")
            raise ConfigurationError(GENERIC_UNAVAILABLE_MESSAGE, code="PAYMENT_PROVIDER_NOT_CONFIGURED")

    discount, discount_amount = apply_checkout_discount(
        db,
        organization_id=organization.id,
        amount=breakdown.price_before_discount,
        code=request.discount_code,
        country_code=country_code,
        product_sku_code=product.sku_code,
        customer_email=request.customer_email,
    )
    final_amount = max(breakdown.price_before_discount - discount_amount, ZERO)
    if final_amount <= ZERO:
        raise ServiceError("Invalid product pricing", code="INVALID_PRODUCT_PRICING")

    metadata = {
        "productSkuCode": product.sku_code,
        "productName": product.name,
        "isVariableValue": bool(product.is_variable_value),
        "sendValue": str(priced["send_value"]) if priced["send_value"] is not None else None,
        "costPrice": str(breakdown.cost_price),
        "markup": str(breakdown.markup),
        "priceBeforeDiscount": str(breakdown.price_before_discount),
        "pricingRuleId": str(rule.id) if rule is not None else None,
        "benefitAmount": str(product.benefit_amount) if product.benefit_amount is not None else None,
        "benefitUnit": product.benefit_unit,
        "ipAddress": request.ip_address,
        "userAgent": request.user_agent,
    }
    metadata = {k: v for k, v in metadata.items() if v is not None}

    create_args = dict(
        db=db,
        organization_id=organization.id,
        order_id=transaction_engine.generate_order_id(),
        product_sku_code=product.sku_code,
        amount=final_amount,
        currency=product.currency or "USD",
        recipient_phone=request.phone_number,
        payment_gateway=method,
        provider=product.provider,
        product_name=product.name,
        country_code=country_code,
        operator_id=product.operator_id,
        operator_name=product.operator_name,
        recipient_email=request.customer_email.strip().lower(),
        recipient_name=request.customer_name,
        discount_id=discount.id if discount is not None else None,
        discount_amount=discount_amount,
    )

    if method == PaymentGatewayType.WALLET:
        return _process_wallet_payment(db, request, organization, create_args, metadata, provider_factory)
    return _process_gateway_payment(db, request, organization, gateway, create_args, metadata)


def _process_gateway_payment(
    db: Session,
    request: CheckoutRequest,
    organization: Organization,
    gateway: PaymentGateway,
    create_args: Dict[str, Any],
    metadata: Dict[str, Any],
) -> CheckoutResult:
    transaction = transaction_engine.create_transaction(metadata=metadata, **create_args)
    db.commit()
    db.refresh(transaction)

    settings = get_settings()
    storefront_base = f"{settings.PUBLIC_BASE_URL.rstrip('/')}/{organization.slug}"
    callback_urls = CallbackUrls(
        success_url=f"{storefront_base}/payment/success?orderId={transaction.order_id}",
        error_url=f"{storefront_base}/payment/cancel?orderId={transaction.order_id}",
        webhook_url=settings.pgpay_webhook_url,
    )
    first_name = request.customer_name or request.customer_email.split("@")[0]

    try:
        session = gateway.create_payment_session(
            amount=transaction.amount,
            currency=transaction.currency,
            order_id=transaction.order_id,
            customer=CustomerInfo(
                email=transaction.recipient_email,
                first_name=first_name,
                last_name="Customer",
                phone=transaction.recipient_phone,
            ),
            callback_urls=callback_urls,
            description=f"Top-up for {transaction.recipient_phone} - {transaction.product_name}",
            metadata={
                "transactionId": str(transaction.id),
                "productSkuCode": transaction.product_sku_code,
                "phoneNumber": transaction.recipient_phone,
            },
        )
    except PaymentGatewayError as e:
        logger.error(f"Failed to create payment session: order_id={transaction.order_id}, error={e.message}")
        fulfillment.fail_transaction(db, transaction, reason=f"Failed to create payment: {e.message}")
        raise UpstreamError("Failed to create payment", code="PAYMENT_SESSION_FAILED", details={"orderId": transaction.order_id})

    transaction.payment_token = session.token
    transaction.payment_id = session.gateway_order_id
    transaction.transaction_metadata = {
        **(transaction.transaction_metadata or {}),
        "pgpayToken": session.token,
        "pgpayOrderId": session.gateway_order_id,
    }
    db.commit()
    db.refresh(transaction)

    logger.info(f"Payment session created: order_id={transaction.order_id}, token={session.token[:10]}...")
    return CheckoutResult(
        order_id=transaction.order_id,
        status=transaction.status,
        amount=transaction.amount,
        discount_amount=transaction.discount_amount,
        currency=transaction.currency,
        requires_redirect=True,
        checkout_url=session.redirect_url,
        payment_token=session.token,
    )


def _process_wallet_payment(
    db: Session,
    request: CheckoutRequest,
    organization: Organization,
    create_args: Dict[str, Any],
    metadata: Dict[str, Any],
    provider_factory: ProviderFactory,
) -> CheckoutResult:
    if request.membership_id is None:
        raise ServiceError("A member is required for wallet purchases", code="MEMBERSHIP_REQUIRED")
    membership = db.get(Membership, request.membership_id)
    if membership is None or membership.organization_id != organization.id or not membership.is_active:
        raise NotFoundError("Membership not found", code="MEMBERSHIP_NOT_FOUND")

    wallet = wallet_ledger.get_wallet(db, organization.id)
    if wallet is None:
        raise InsufficientFundsError("Insufficient wallet balance")

    amount = create_args["amount"]
    order_id = create_args["order_id"]

    try:
        member_balance.use_balance(
            db=db,
            membership_id=membership.id,
            amount=amount,
            product_name=create_args["product_name"],
            phone_number=request.phone_number,
            order_id=order_id,
        )
    except member_balance.InsufficientMemberLimitError as e:
        raise ServiceError(e.message, code=e.code, status_code=402)

    try:
        reserved = wallet_ledger.reserve(db, wallet.id, amount)
    except wallet_ledger.WalletNotActiveError:
        raise ServiceError("Wallet is not active", code="WALLET_NOT_ACTIVE", status_code=403)
    if not reserved:
        raise InsufficientFundsError("Insufficient wallet balance")

    transaction = transaction_engine.create_transaction(
        membership_id=membership.id,
        metadata={**metadata, "walletId": str(wallet.id), "fundedBy": "wallet"},
        **create_args,
    )
    db.commit()
    db.refresh(transaction)

    # Funds are held; no gateway round-trip is needed
    transaction_engine.transition(
        db=db,
        transaction=transaction,
        to_status=TransactionStatus.PAID,
        from_status=TransactionStatus.PENDING,
    )
    transaction_engine.transition(
        db=db,
        transaction=transaction,
        to_status=TransactionStatus.PROCESSING,
        from_status=TransactionStatus.PAID,
    )
    fulfillment.fulfill_transaction(db=db, transaction=transaction, provider_factory=provider_factory)

    return CheckoutResult(
        order_id=transaction.order_id,
        status=transaction.status,
        amount=transaction.amount,
        discount_amount=transaction.discount_amount,
        currency=transaction.currency,
        requires_redirect=False,
        failure_reason=transaction.failure_reason,
    )
