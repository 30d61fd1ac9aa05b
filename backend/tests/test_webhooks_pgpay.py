"""
PGPay webhook reconciliation tests

The payload is only a pointer; every decision rests on the gateway's own
verification and on the current Transaction state.
"""

import json
import time
from decimal import Decimal

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from topup.core.organizations.models import PaymentProvider, StorefrontSettings
from topup.core.transactions.models import TransactionStatus, WebhookLog, WebhookLogStatus
from topup.services.payments import PaymentGatewayError, PaymentVerification
from topup.services.providers import ProviderError, TransferResult, TransferStatus
from topup.utils.webhook_security import compute_signature

WEBHOOK_URL = "/webhooks/v1/pgpay"


def deliver(client: TestClient, token: str = "tok-test-1", **extra):
    return client.post(WEBHOOK_URL, json={"pgPayToken": token, **extra})


class TestDeliveryShape:
    def test_missing_token(self, client: TestClient, organization):
        response = client.post(WEBHOOK_URL, json={"orderId": "ORD-1"})
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "MISSING_TOKEN"

    def test_unknown_token(self, client: TestClient, organization):
        response = deliver(client, "tok-unknown")
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "TRANSACTION_NOT_FOUND"

    def test_body_not_json(self, client: TestClient, organization):
        response = client.post(
            WEBHOOK_URL,
            content=b"not json",
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_PAYLOAD"

    def test_rejections_are_logged(self, client: TestClient, db_session: Session, organization):
        deliver(client, "tok-unknown")
        log = db_session.query(WebhookLog).one()
        assert log.source == "pgpay"
        assert log.status == WebhookLogStatus.FAILED
        assert log.response_code == 404


class TestReconciliation:
    def test_pending_payment_stays_pending(self, client: TestClient, db_session: Session, gateway, provider, make_transaction):
        gateway.verification = PaymentVerification(status="pending", payment_status="pending")
        transaction = make_transaction()

        response = deliver(client)

        assert response.status_code == 200
        assert response.json()["message"] == "Payment not yet completed"
        db_session.refresh(transaction)
        assert transaction.status == TransactionStatus.PENDING
        assert transaction.transaction_metadata["pgpayStatus"] == "pending"
        assert provider.transfers == []

    def test_paid_payment_is_fulfilled(self, client: TestClient, db_session: Session, gateway, provider, make_transaction):
        transaction = make_transaction()

        response = deliver(client)

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["message"] == "Transaction completed"
        assert data["order_id"] == transaction.order_id
        assert data["transaction_status"] == "completed"

        db_session.refresh(transaction)
        assert transaction.status == TransactionStatus.COMPLETED
        assert transaction.provider_transaction_id == "P-1001"
        assert transaction.paid_at is not None
        assert transaction.completed_at is not None
        assert gateway.verified_tokens == ["tok-test-1"]

        assert len(provider.transfers) == 1
        sent = provider.transfers[0]
        assert sent.sku_code == "HT_DC_TopUp_10"
        assert sent.account_number == "50937123456"
        assert sent.distributor_ref == transaction.order_id
        assert sent.validate_only is False

        storefront = db_session.query(StorefrontSettings).one()
        db_session.refresh(storefront)
        assert storefront.total_orders == 1

    def test_replay_after_completion_is_a_no_op(self, client: TestClient, db_session: Session, gateway, provider, make_transaction):
        make_transaction()

        deliver(client)
        response = deliver(client)

        assert response.status_code == 200
        assert response.json()["message"] == "Transaction already completed"
        assert len(provider.transfers) == 1
        assert len(gateway.verified_tokens) == 1

    def test_amount_mismatch_fails(self, client: TestClient, db_session: Session, gateway, provider, make_transaction):
        gateway.verification = PaymentVerification(
            status="completed",
            payment_status="paid",
            amount=Decimal("10.00"),
        )
        transaction = make_transaction()

        response = deliver(client)

        assert response.status_code == 200
        assert response.json()["message"] == "Payment amount mismatch"
        db_session.refresh(transaction)
        assert transaction.status == TransactionStatus.FAILED
        assert transaction.failure_reason == "Payment amount mismatch"
        assert provider.transfers == []

    def test_amount_within_a_cent_is_accepted(self, client: TestClient, db_session: Session, gateway, make_transaction):
        gateway.verification = PaymentVerification(
            status="completed",
            payment_status="paid",
            amount=Decimal("12.49"),
        )
        transaction = make_transaction()

        deliver(client)

        db_session.refresh(transaction)
        assert transaction.status == TransactionStatus.COMPLETED

    def test_declined_payment_fails(self, client: TestClient, db_session: Session, gateway, provider, make_transaction):
        gateway.verification = PaymentVerification(status="failed", payment_status="declined")
        transaction = make_transaction()

        response = deliver(client)

        assert response.json()["message"] == "Payment failed"
        db_session.refresh(transaction)
        assert transaction.status == TransactionStatus.FAILED
        assert transaction.failure_reason == "Payment declined"
        assert provider.transfers == []

    def test_verification_error_fails(self, client: TestClient, db_session: Session, gateway, make_transaction):
        gateway.verify_error = PaymentGatewayError("PGPay request failed: timeout")
        transaction = make_transaction()

        response = deliver(client)

        assert response.status_code == 200
        db_session.refresh(transaction)
        assert transaction.status == TransactionStatus.FAILED
        assert transaction.failure_reason == "Payment verification failed: PGPay request failed: timeout"

    def test_missing_payment_provider_fails(self, client: TestClient, db_session: Session, make_transaction):
        transaction = make_transaction()
        db_session.query(PaymentProvider).delete()
        db_session.commit()

        response = deliver(client)

        assert response.status_code == 200
        assert response.json()["message"] == "Payment provider not configured"
        db_session.refresh(transaction)
        assert transaction.status == TransactionStatus.FAILED
        assert transaction.failure_reason == "Payment provider not configured"

    def test_provider_error_fails_after_payment(self, client: TestClient, db_session: Session, provider, make_transaction):
        provider.send_error = ProviderError("Insufficient balance", provider_error_code="InsufficientBalance")
        transaction = make_transaction()

        response = deliver(client)

        assert response.json()["transaction_status"] == "failed"
        db_session.refresh(transaction)
        assert transaction.status == TransactionStatus.FAILED
        assert transaction.paid_at is not None
        assert transaction.failure_reason == "Top-up provider error: Insufficient balance"

        log = db_session.query(WebhookLog).one()
        assert log.status == WebhookLogStatus.FAILED
        assert log.response_code == 200
        assert log.transaction_id == transaction.id

    def test_provider_reported_failure(self, client: TestClient, db_session: Session, provider, make_transaction):
        provider.transfer_result = TransferResult(
            status=TransferStatus.FAILED,
            transfer_id="T-2002",
            error_message="Invalid account number",
            error_code="AccountNumberInvalid",
        )
        transaction = make_transaction()

        deliver(client)

        db_session.refresh(transaction)
        assert transaction.status == TransactionStatus.FAILED
        assert transaction.failure_reason == "Top-up failed: Invalid account number"
        assert transaction.transaction_metadata["providerErrorCode"] == "AccountNumberInvalid"

    def test_validate_only_storefront(self, client: TestClient, db_session: Session, provider, make_transaction):
        storefront = db_session.query(StorefrontSettings).one()
        storefront.validate_only = True
        db_session.commit()
        transaction = make_transaction()

        deliver(client)

        db_session.refresh(transaction)
        assert transaction.status == TransactionStatus.COMPLETED
        assert transaction.provider_transaction_id == f"TEST-{transaction.order_id}"
        assert transaction.transaction_metadata["testMode"] is True
        assert provider.transfers[0].validate_only is True

        status_response = client.get(f"/api/v1/transactions/{transaction.order_id}")
        assert status_response.json()["test_mode"] is True

    def test_validate_only_still_fails_on_provider_failure(self, client: TestClient, db_session: Session, provider, make_transaction):
        storefront = db_session.query(StorefrontSettings).one()
        storefront.validate_only = True
        db_session.commit()
        provider.transfer_result = TransferResult(status=TransferStatus.FAILED, error_message="Invalid SKU")
        transaction = make_transaction()

        deliver(client)

        db_session.refresh(transaction)
        assert transaction.status == TransactionStatus.FAILED

    def test_provider_still_processing(self, client: TestClient, db_session: Session, provider, make_transaction):
        provider.transfer_result = TransferResult(status=TransferStatus.PROCESSING, transfer_id="T-3003")
        transaction = make_transaction()

        response = deliver(client)

        assert response.json()["transaction_status"] == "processing"
        db_session.refresh(transaction)
        assert transaction.status == TransactionStatus.PROCESSING
        assert transaction.transaction_metadata["transferId"] == "T-3003"


class TestRedelivery:
    def test_paid_transaction_resumes_without_reverifying(self, client: TestClient, db_session: Session, gateway, provider, make_transaction):
        transaction = make_transaction(status=TransactionStatus.PAID)

        response = deliver(client)

        assert response.json()["transaction_status"] == "completed"
        assert gateway.verified_tokens == []
        assert len(provider.transfers) == 1
        db_session.refresh(transaction)
        assert transaction.status == TransactionStatus.COMPLETED

    def test_processing_transaction_is_rechecked_not_resent(self, client: TestClient, db_session: Session, provider, make_transaction):
        transaction = make_transaction(status=TransactionStatus.PROCESSING, metadata={"transferId": "T-1001"})

        response = deliver(client)

        assert response.status_code == 200
        assert provider.transfers == []
        assert provider.status_checks == ["T-1001"]
        db_session.refresh(transaction)
        assert transaction.status == TransactionStatus.COMPLETED

    def test_processing_without_transfer_id_waits(self, client: TestClient, db_session: Session, provider, make_transaction):
        transaction = make_transaction(status=TransactionStatus.PROCESSING)

        response = deliver(client)

        assert response.json()["message"] == "Transaction is being processed"
        assert provider.transfers == []
        assert provider.status_checks == []
        db_session.refresh(transaction)
        assert transaction.status == TransactionStatus.PROCESSING

    def test_failed_transaction_is_final(self, client: TestClient, db_session: Session, gateway, provider, make_transaction):
        transaction = make_transaction(status=TransactionStatus.FAILED)

        response = deliver(client)

        assert response.json()["message"] == "Transaction already failed"
        assert gateway.verified_tokens == []
        assert provider.transfers == []
        db_session.refresh(transaction)
        assert transaction.status == TransactionStatus.FAILED


class TestSignature:
    def test_signature_required_when_secret_configured(self, client: TestClient, make_transaction, monkeypatch):
        from topup.infrastructure.settings import get_settings
        monkeypatch.setattr(get_settings(), "PGPAY_WEBHOOK_SECRET", "whsec-test")
        make_transaction()

        response = deliver(client)

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "WEBHOOK_MISSING_HEADER"

    def test_signed_delivery_is_processed(self, client: TestClient, db_session: Session, make_transaction, monkeypatch):
        from topup.infrastructure.settings import get_settings
        monkeypatch.setattr(get_settings(), "PGPAY_WEBHOOK_SECRET", "whsec-test")
        transaction = make_transaction()
        body = json.dumps({"pgPayToken": "tok-test-1"}).encode("utf-8")

        response = client.post(
            WEBHOOK_URL,
            content=body,
            headers={
                "Content-Type": "application/json",
                "X-PGPay-Signature": compute_signature(body, "whsec-test"),
                "X-PGPay-Timestamp": str(int(time.time())),
            },
        )

        assert response.status_code == 200
        db_session.refresh(transaction)
        assert transaction.status == TransactionStatus.COMPLETED


class TestSuccessPageVerify:
    VERIFY_URL = "/api/v1/payments/verify"

    def test_pending_order_completes(self, client: TestClient, db_session: Session, gateway, provider, make_transaction):
        transaction = make_transaction()

        response = client.post(self.VERIFY_URL, json={"orderId": transaction.order_id})

        assert response.status_code == 200
        data = response.json()
        assert data["orderId"] == transaction.order_id
        assert data["status"] == "completed"
        assert data["failureReason"] is None
        assert gateway.verified_tokens == ["tok-test-1"]
        assert len(provider.transfers) == 1

    def test_completed_order_is_left_alone(self, client: TestClient, db_session: Session, gateway, provider, make_transaction):
        transaction = make_transaction(status=TransactionStatus.COMPLETED)

        data = client.post(self.VERIFY_URL, json={"orderId": transaction.order_id}).json()

        assert data["status"] == "completed"
        assert data["message"] == "Transaction already completed"
        assert gateway.verified_tokens == []
        assert provider.transfers == []

    def test_webhook_after_verify_sends_no_second_transfer(self, client: TestClient, provider, make_transaction):
        transaction = make_transaction()

        client.post(self.VERIFY_URL, json={"orderId": transaction.order_id})
        deliver(client)

        assert len(provider.transfers) == 1

    def test_order_without_payment_session(self, client: TestClient, db_session: Session, make_transaction):
        transaction = make_transaction(token=None)

        response = client.post(self.VERIFY_URL, json={"orderId": transaction.order_id})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "MISSING_TOKEN"
        db_session.refresh(transaction)
        assert transaction.status == TransactionStatus.PENDING

    def test_unknown_order(self, client: TestClient, organization):
        response = client.post(self.VERIFY_URL, json={"orderId": "ORD-0-MISSING00"})
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "TRANSACTION_NOT_FOUND"
