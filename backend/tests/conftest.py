"""
Pytest configuration and fixtures
"""

import pytest
import os
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import uuid4

import fakeredis
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

# Set test environment variables before importing the app
os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["REDIS_URL"] = "redis://localhost:6379/1"
os.environ["LOG_LEVEL"] = "DEBUG"
os.environ["ADMIN_API_TOKEN"] = "test-admin-token"
os.environ["PGPAY_WEBHOOK_SECRET"] = ""
os.environ["PUBLIC_BASE_URL"] = "https://shop.test"

from topup.infrastructure.database import Base, get_db
import topup.infrastructure.redis_client as redis_client_module
import topup.models  # noqa: F401
from topup.main import app
from topup.api.dependencies import get_gateway_factory, get_provider_factory
from topup.core.accounts.models import Membership, MemberRole, Wallet, WalletStatus
from topup.core.catalog.models import Product
from topup.core.organizations.models import (
    Integration,
    Organization,
    OrganizationStatus,
    PaymentGatewayType,
    PaymentProvider,
    ProviderEnvironment,
    ProviderStatus,
    StorefrontSettings,
    TopupProviderType,
)
from topup.core.pricing.models import PricingRule
from topup.core.transactions.models import Transaction, TransactionStatus
from topup.services import transaction_engine
from topup.services.payments import (
    CallbackUrls,
    CustomerInfo,
    PaymentGateway,
    PaymentGatewayError,
    PaymentSession,
    PaymentVerification,
)
from topup.services.providers import (
    PriceEstimate,
    ProviderBalance,
    ProviderError,
    TopupProvider,
    TransferRequest,
    TransferResult,
    TransferStatus,
)

ADMIN_HEADERS = {"X-Admin-Token": "test-admin-token"}
CUSTOMER_EMAIL = "jane.doe@acmetopup.com"


test_engine = create_engine(
    "sqlite://",
    poolclass=StaticPool,
    connect_args={"check_same_thread": False},
)

TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


class FakeGateway(PaymentGateway):
    """In-memory payment gateway recording every call"""

    name = "pgpay"

    def __init__(self):
        self.verification = PaymentVerification(status="completed", payment_status="paid")
        self.session_error: Optional[PaymentGatewayError] = None
        self.verify_error: Optional[PaymentGatewayError] = None
        self.sessions: List[Dict[str, Any]] = []
        self.verified_tokens: List[str] = []

    def create_payment_session(
        self,
        *,
        amount: Decimal,
        currency: str,
        order_id: str,
        customer: CustomerInfo,
        callback_urls: CallbackUrls,
        description: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> PaymentSession:
        if self.session_error is not None:
            raise self.session_error
        self.sessions.append({
            "amount": amount,
            "currency": currency,
            "order_id": order_id,
            "customer": customer,
            "callback_urls": callback_urls,
        })
        token = f"tok-{order_id}"
        return PaymentSession(token=token, redirect_url=f"https://pay.test/{token}", gateway_order_id=f"PG-{order_id}")

    def verify_payment(self, token: str) -> PaymentVerification:
        self.verified_tokens.append(token)
        if self.verify_error is not None:
            raise self.verify_error
        return self.verification


class FakeProvider(TopupProvider):
    """In-memory topup provider recording every call"""

    name = "dingconnect"

    def __init__(self):
        self.balance = Decimal("1000.00")
        self.transfer_result = TransferResult(
            status=TransferStatus.COMPLETED,
            transfer_id="T-1001",
            provider_transaction_id="P-1001",
        )
        self.status_result = TransferResult(
            status=TransferStatus.COMPLETED,
            transfer_id="T-1001",
            provider_transaction_id="P-1001",
        )
        self.send_error: Optional[Exception] = None
        self.country: Optional[str] = "HT"
        self.transfers: List[TransferRequest] = []
        self.status_checks: List[str] = []
        self.estimate_calls: List[List[Dict[str, Any]]] = []

    def get_balance(self) -> ProviderBalance:
        return ProviderBalance(account_balance=self.balance, currency="USD")

    def send_transfer(self, request: TransferRequest) -> TransferResult:
        self.transfers.append(request)
        if self.send_error is not None:
            raise self.send_error
        return self.transfer_result

    def get_transfer_status(self, transfer_id: str) -> TransferResult:
        self.status_checks.append(transfer_id)
        return self.status_result

    def estimate_prices(self, items: List[Dict[str, Any]]) -> List[PriceEstimate]:
        self.estimate_calls.append(items)
        return [
            PriceEstimate(
                sku_code=item["SkuCode"],
                send_value=Decimal(str(item["SendValue"])),
                send_currency="USD",
                receive_value=Decimal("1300.00"),
                receive_currency="HTG",
            )
            for item in items
        ]

    def lookup_country(self, account_number: str) -> Optional[str]:
        if self.country is None:
            raise ProviderError("Account lookup failed")
        return self.country


@pytest.fixture(scope="function")
def db_session() -> Session:
    """
    Create a fresh database session for each test.
    Clears all tables before and after each test.
    """
    Base.metadata.drop_all(bind=test_engine)
    Base.metadata.create_all(bind=test_engine)

    db = TestSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture(scope="function")
def fake_redis(monkeypatch):
    """In-memory Redis standing in for the shared client"""
    client = fakeredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)
    monkeypatch.setattr(redis_client_module, "redis_client", client)
    yield client
    client.flushall()


@pytest.fixture
def admin_headers() -> Dict[str, str]:
    return dict(ADMIN_HEADERS)


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def gateway_factory(gateway):
    return lambda provider_config: gateway


@pytest.fixture
def provider_factory(provider):
    return lambda integration: provider


@pytest.fixture(scope="function")
def client(db_session: Session, fake_redis, gateway_factory, provider_factory):
    """
    Create FastAPI test client with dependency overrides.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_gateway_factory] = lambda: gateway_factory
    app.dependency_overrides[get_provider_factory] = lambda: provider_factory

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def organization(db_session: Session) -> Organization:
    """Active organization with storefront, PGPay, DingConnect and a 20% + 0.50 pricing rule"""
    org = Organization(id=uuid4(), name="Acme Mobile", slug="acme", status=OrganizationStatus.ACTIVE)
    db_session.add(org)
    db_session.flush()

    db_session.add_all([
        StorefrontSettings(
            organization_id=org.id,
            is_active=True,
            countries=["HT", "DO"],
            payment_methods=["pgpay", "wallet", "stripe"],
            validate_only=False,
            total_orders=0,
            total_revenue=Decimal("0"),
        ),
        PaymentProvider(
            organization_id=org.id,
            provider=PaymentGatewayType.PGPAY,
            status=ProviderStatus.ACTIVE,
            environment=ProviderEnvironment.SANDBOX,
            credentials={"userId": "merchant-1"},
        ),
        Integration(
            organization_id=org.id,
            provider=TopupProviderType.DINGCONNECT,
            status=ProviderStatus.ACTIVE,
            credentials={"apiKey": "test-api-key"},
        ),
        PricingRule(
            organization_id=org.id,
            name="Default markup",
            percentage_markup=Decimal("20"),
            fixed_markup=Decimal("0.50"),
            priority=0,
            is_active=True,
        ),
    ])
    db_session.commit()
    db_session.refresh(org)
    return org


@pytest.fixture
def product(db_session: Session, organization: Organization) -> Product:
    """Fixed-value product costing 10.00 (sells for 12.50)"""
    item = Product(
        organization_id=organization.id,
        provider=TopupProviderType.DINGCONNECT,
        sku_code="HT_DC_TopUp_10",
        name="Digicel Haiti 10 USD",
        country_code="HT",
        operator_id="DCHT",
        operator_name="Digicel",
        cost_price=Decimal("10.00"),
        currency="USD",
        is_variable_value=False,
        is_active=True,
    )
    db_session.add(item)
    db_session.commit()
    db_session.refresh(item)
    return item


@pytest.fixture
def variable_product(db_session: Session, organization: Organization) -> Product:
    """Open-range product, customer amounts between 1.00 and 100.00"""
    item = Product(
        organization_id=organization.id,
        provider=TopupProviderType.DINGCONNECT,
        sku_code="HT_DC_TopUp_Open",
        name="Digicel Haiti Open Range",
        country_code="HT",
        operator_name="Digicel",
        currency="USD",
        is_variable_value=True,
        min_amount=Decimal("1.00"),
        max_amount=Decimal("100.00"),
        is_active=True,
    )
    db_session.add(item)
    db_session.commit()
    db_session.refresh(item)
    return item


@pytest.fixture
def wallet(db_session: Session, organization: Organization) -> Wallet:
    """Active wallet holding 100.00"""
    item = Wallet(
        organization_id=organization.id,
        currency="USD",
        balance=Decimal("100.00"),
        reserved_balance=Decimal("0"),
        available_balance=Decimal("100.00"),
        status=WalletStatus.ACTIVE,
        total_deposits=Decimal("100.00"),
        total_withdrawals=Decimal("0"),
        total_spent=Decimal("0"),
    )
    db_session.add(item)
    db_session.commit()
    db_session.refresh(item)
    return item


@pytest.fixture
def membership(db_session: Session, organization: Organization) -> Membership:
    """Staff member limited to 100.00, nothing used yet"""
    item = Membership(
        organization_id=organization.id,
        user_id=uuid4(),
        email="staff@acmetopup.com",
        role=MemberRole.STAFF,
        is_active=True,
        balance_limit_enabled=True,
        max_balance=Decimal("100.00"),
        current_used=Decimal("0"),
    )
    db_session.add(item)
    db_session.commit()
    db_session.refresh(item)
    return item


@pytest.fixture
def make_transaction(db_session: Session, organization: Organization, product: Product):
    """Factory for transactions already sitting in a given state"""

    def _make(
        status: TransactionStatus = TransactionStatus.PENDING,
        token: Optional[str] = "tok-test-1",
        amount: Decimal = Decimal("12.50"),
        gateway: PaymentGatewayType = PaymentGatewayType.PGPAY,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Transaction:
        transaction = transaction_engine.create_transaction(
            db=db_session,
            organization_id=organization.id,
            order_id=transaction_engine.generate_order_id(),
            product_sku_code=product.sku_code,
            product_name=product.name,
            country_code="HT",
            amount=amount,
            recipient_phone="50937123456",
            recipient_email=CUSTOMER_EMAIL,
            payment_gateway=gateway,
            metadata=metadata,
        )
        transaction.payment_token = token
        transaction.status = status
        db_session.commit()
        db_session.refresh(transaction)
        return transaction

    return _make
