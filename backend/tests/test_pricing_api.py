"""
Quote, estimate and transaction status endpoints
"""

from decimal import Decimal

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from topup.core.pricing.models import AdjustmentType, Discount
from topup.core.transactions.models import TransactionStatus
from topup.services.providers import ProviderError


def test_quote_applies_organization_rule(client: TestClient, organization):
    response = client.post(
        "/api/v1/pricing/quote",
        json={"orgSlug": "acme", "costPrice": "10.00", "countryCode": "HT"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["cost_price"] == "10.00"
    assert data["markup"] == "2.50"
    assert data["price_before_discount"] == "12.50"
    assert data["discount"] == "0.00"
    assert data["final_price"] == "12.50"
    assert data["pricing_rule_id"] is not None
    assert data["discount_id"] is None


def test_quote_with_discount_does_not_count_usage(client: TestClient, db_session: Session, organization):
    discount = Discount(
        organization_id=organization.id,
        name="Capped ten percent",
        code="SAVE10",
        type=AdjustmentType.PERCENTAGE,
        value=Decimal("10"),
        max_discount_amount=Decimal("1.00"),
        is_active=True,
        usage_count=0,
    )
    db_session.add(discount)
    db_session.commit()

    data = client.post(
        "/api/v1/pricing/quote",
        json={"orgSlug": "acme", "costPrice": "10.00", "discountCode": "save10"},
    ).json()

    assert data["discount"] == "1.00"
    assert data["final_price"] == "11.50"
    assert data["discount_id"] == str(discount.id)
    db_session.refresh(discount)
    assert discount.usage_count == 0


def test_quote_unknown_organization(client: TestClient, organization):
    response = client.post("/api/v1/pricing/quote", json={"orgSlug": "other", "costPrice": "10.00"})
    assert response.status_code == 404


def test_quote_rejects_non_positive_cost(client: TestClient, organization):
    response = client.post("/api/v1/pricing/quote", json={"orgSlug": "acme", "costPrice": "0"})
    assert response.status_code == 422
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_estimate_reverses_markup(client: TestClient, provider, variable_product):
    response = client.post(
        "/api/v1/pricing/estimate",
        json={"orgSlug": "acme", "skuCode": "HT_DC_TopUp_Open", "sendValue": "12.50"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["customer_send_value"] == "12.50"
    assert data["cost_price"] == "10.00"
    assert data["estimates"][0]["receive_currency"] == "HTG"
    assert provider.estimate_calls == [
        [{"SkuCode": "HT_DC_TopUp_Open", "SendValue": 10.0, "BatchItemRef": "HT_DC_TopUp_Open"}]
    ]


def test_estimate_provider_failure(client: TestClient, provider, variable_product, monkeypatch):
    def broken(items):
        raise ProviderError("DingConnect request failed")

    monkeypatch.setattr(provider, "estimate_prices", broken)

    response = client.post(
        "/api/v1/pricing/estimate",
        json={"orgSlug": "acme", "skuCode": "HT_DC_TopUp_Open", "sendValue": "12.50"},
    )
    assert response.status_code == 502
    assert response.json()["error"]["code"] == "ESTIMATE_FAILED"


def test_transaction_status(client: TestClient, make_transaction):
    transaction = make_transaction(status=TransactionStatus.PAID)

    response = client.get(f"/api/v1/transactions/{transaction.order_id}")

    assert response.status_code == 200
    data = response.json()
    assert data["order_id"] == transaction.order_id
    assert data["status"] == "paid"
    assert data["amount"] == "12.50"
    assert data["payment_gateway"] == "pgpay"
    assert data["failure_reason"] is None
    assert data["test_mode"] is False
    assert set(data["timeline"]) == {"createdAt", "paidAt", "processingAt", "completedAt", "failedAt"}


def test_transaction_status_not_found(client: TestClient, organization):
    response = client.get("/api/v1/transactions/ORD-0-MISSING00")
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "TRANSACTION_NOT_FOUND"
