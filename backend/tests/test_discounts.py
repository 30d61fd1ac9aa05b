"""
Discount validation and checkout accounting tests
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from topup.core.pricing.models import AdjustmentType, Discount
from topup.core.transactions.models import TransactionStatus
from topup.services.discounts import apply_checkout_discount, customer_usage_count, release_usage
from topup.services.payments import PaymentGatewayError, PaymentVerification

from conftest import CUSTOMER_EMAIL


@pytest.fixture
def make_discount(db_session: Session, organization):
    def _make(**kwargs) -> Discount:
        values = dict(
            organization_id=organization.id,
            name="Ten percent off",
            code="SAVE10",
            type=AdjustmentType.PERCENTAGE,
            value=Decimal("10"),
            is_active=True,
            usage_count=0,
        )
        values.update(kwargs)
        discount = Discount(**values)
        db_session.add(discount)
        db_session.commit()
        db_session.refresh(discount)
        return discount

    return _make


def validate(client: TestClient, code: str, amount: str = "50.00", **extra):
    return client.post(
        "/api/v1/discounts/validate",
        json={"code": code, "orgSlug": "acme", "amount": amount, **extra},
    )


def test_validate_code_is_case_insensitive(client: TestClient, make_discount):
    make_discount()

    response = validate(client, "save10")

    assert response.status_code == 200
    data = response.json()
    assert data["valid"] is True
    assert data["discount"]["code"] == "SAVE10"
    assert data["discount"]["discountAmount"] == "5.00"
    assert data["discount"]["finalAmount"] == "45.00"


def test_validate_unknown_code(client: TestClient, organization):
    response = validate(client, "NOPE")
    assert response.status_code == 404
    assert response.json()["error"]["message"] == "Invalid discount code"


def test_validate_expired_code(client: TestClient, make_discount):
    make_discount(end_date=datetime.now(timezone.utc) - timedelta(days=1))

    response = validate(client, "SAVE10")

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "DISCOUNT_REJECTED"
    assert error["message"] == "This discount code has expired"


def test_validate_usage_limit_reached(client: TestClient, make_discount):
    make_discount(usage_limit=3, usage_count=3)

    response = validate(client, "SAVE10")

    assert response.status_code == 400
    assert response.json()["error"]["message"] == "This discount code has reached its usage limit"


def test_validate_min_purchase(client: TestClient, make_discount):
    make_discount(min_purchase_amount=Decimal("20.00"))

    response = validate(client, "SAVE10", amount="12.50")

    assert response.status_code == 400
    assert response.json()["error"]["message"] == "Minimum purchase amount of $20.00 required for this discount"


def test_validate_country_allow_list(client: TestClient, make_discount):
    make_discount(applicable_countries=["DO"])

    response = validate(client, "SAVE10", countryCode="HT")

    assert response.status_code == 400
    assert response.json()["error"]["message"] == "This discount is not available in your country"


def test_validate_does_not_count_usage(client: TestClient, db_session: Session, make_discount):
    discount = make_discount()
    validate(client, "SAVE10")
    db_session.refresh(discount)
    assert discount.usage_count == 0


def test_checkout_discount_counts_usage(db_session: Session, organization, make_discount):
    discount = make_discount(usage_limit=2)

    applied, amount = apply_checkout_discount(
        db_session,
        organization_id=organization.id,
        amount=Decimal("12.50"),
        code="save10",
    )

    assert applied.id == discount.id
    assert amount == Decimal("1.25")
    assert applied.usage_count == 1


def test_checkout_discount_exhausted_is_ignored(db_session: Session, organization, make_discount):
    discount = make_discount(usage_limit=1, usage_count=1)

    applied, amount = apply_checkout_discount(
        db_session,
        organization_id=organization.id,
        amount=Decimal("12.50"),
        code="SAVE10",
    )

    assert applied is None
    assert amount == Decimal("0")
    db_session.refresh(discount)
    assert discount.usage_count == 1


def test_checkout_unknown_code_is_ignored(db_session: Session, organization):
    applied, amount = apply_checkout_discount(
        db_session,
        organization_id=organization.id,
        amount=Decimal("12.50"),
        code="MISSING",
    )
    assert applied is None
    assert amount == Decimal("0")


def test_best_automatic_discount_wins(db_session: Session, organization, make_discount):
    make_discount(name="Small", code=None, type=AdjustmentType.FIXED, value=Decimal("0.50"))
    larger = make_discount(name="Large", code=None, type=AdjustmentType.FIXED, value=Decimal("2.00"))
    make_discount(name="Inactive", code=None, type=AdjustmentType.FIXED, value=Decimal("5.00"), is_active=False)

    applied, amount = apply_checkout_discount(
        db_session,
        organization_id=organization.id,
        amount=Decimal("12.50"),
    )

    assert applied.id == larger.id
    assert amount == Decimal("2.00")


def test_per_customer_limit(db_session: Session, organization, make_discount, make_transaction):
    discount = make_discount(max_uses_per_customer=1)
    previous = make_transaction(status=TransactionStatus.COMPLETED, token="tok-previous")
    previous.discount_id = discount.id
    db_session.commit()

    assert customer_usage_count(db_session, discount.id, CUSTOMER_EMAIL.upper()) == 1

    applied, amount = apply_checkout_discount(
        db_session,
        organization_id=organization.id,
        amount=Decimal("12.50"),
        code="SAVE10",
        customer_email=CUSTOMER_EMAIL,
    )
    assert applied is None
    assert amount == Decimal("0")


def test_failed_transactions_do_not_count_per_customer(db_session: Session, make_discount, make_transaction):
    discount = make_discount(max_uses_per_customer=1)
    failed = make_transaction(status=TransactionStatus.FAILED, token="tok-failed")
    failed.discount_id = discount.id
    db_session.commit()

    assert customer_usage_count(db_session, discount.id, CUSTOMER_EMAIL) == 0


def checkout_with_code(client: TestClient, code: str = "SAVE10"):
    return client.post("/api/v1/payments/process", json={
        "orgSlug": "acme",
        "phoneNumber": "50937123456",
        "productSkuCode": "HT_DC_TopUp_10",
        "customerEmail": CUSTOMER_EMAIL,
        "paymentMethod": "pgpay",
        "discountCode": code,
    })


def test_failed_payment_session_gives_usage_back(client: TestClient, db_session: Session, gateway, product, make_discount):
    discount = make_discount(usage_limit=1)
    gateway.session_error = PaymentGatewayError("PGPay returned HTTP 500", status_code=500)

    assert checkout_with_code(client).status_code == 502
    db_session.refresh(discount)
    assert discount.usage_count == 0

    gateway.session_error = None
    data = checkout_with_code(client).json()
    assert data["discountAmount"] == "1.25"
    db_session.refresh(discount)
    assert discount.usage_count == 1


def test_declined_payment_gives_usage_back(client: TestClient, db_session: Session, gateway, product, make_discount):
    discount = make_discount(usage_limit=1)
    data = checkout_with_code(client).json()
    db_session.refresh(discount)
    assert discount.usage_count == 1

    gateway.verification = PaymentVerification(status="failed", payment_status="declined")
    client.post("/webhooks/v1/pgpay", json={"pgPayToken": data["pgpayToken"]})

    db_session.refresh(discount)
    assert discount.usage_count == 0


def test_completed_purchase_keeps_usage(client: TestClient, db_session: Session, product, make_discount):
    discount = make_discount(usage_limit=1)
    data = checkout_with_code(client).json()

    response = client.post("/webhooks/v1/pgpay", json={"pgPayToken": data["pgpayToken"]})

    assert response.json()["transaction_status"] == "completed"
    db_session.refresh(discount)
    assert discount.usage_count == 1


def test_release_usage_never_goes_below_zero(db_session: Session, make_discount):
    discount = make_discount(usage_count=0)

    assert release_usage(db_session, discount.id) is False
    db_session.commit()
    db_session.refresh(discount)
    assert discount.usage_count == 0
