"""
Unit tests for webhook security verification
"""

import pytest
import time
from topup.utils.webhook_security import (
    compute_signature,
    verify_hmac_signature,
    verify_timestamp,
    verify_pgpay_webhook_security,
)


@pytest.fixture
def test_secret():
    """Test webhook secret"""
    return "test-webhook-secret-for-testing-only"


@pytest.fixture
def test_payload():
    """Test payload bytes"""
    return b'{"pgPayToken":"tok-test-1"}'


@pytest.fixture
def valid_signature(test_payload, test_secret):
    """Generate valid HMAC signature for test payload"""
    import hmac
    import hashlib
    return hmac.new(
        test_secret.encode('utf-8'),
        test_payload,
        hashlib.sha256
    ).hexdigest()


class TestHMACSignatureVerification:
    """Tests for HMAC signature verification"""

    def test_valid_signature_passes(self, test_payload, test_secret, valid_signature):
        """Valid signature should pass verification"""
        is_valid, error_code, error_details = verify_hmac_signature(
            payload_body=test_payload,
            signature_header=valid_signature,
            secret=test_secret,
        )
        assert is_valid is True
        assert error_code is None
        assert error_details is None

    def test_compute_signature_matches(self, test_payload, test_secret, valid_signature):
        assert compute_signature(test_payload, test_secret) == valid_signature

    def test_invalid_signature_fails(self, test_payload, test_secret):
        """Invalid signature should fail with WEBHOOK_INVALID_SIGNATURE"""
        is_valid, error_code, error_details = verify_hmac_signature(
            payload_body=test_payload,
            signature_header="invalid_signature_hex_string",
            secret=test_secret,
        )
        assert is_valid is False
        assert error_code == "WEBHOOK_INVALID_SIGNATURE"
        assert error_details["body_length_bytes"] == len(test_payload)
        assert "hint" in error_details

    def test_missing_signature_fails(self, test_payload, test_secret):
        """Missing signature header should fail with WEBHOOK_MISSING_HEADER"""
        is_valid, error_code, error_details = verify_hmac_signature(
            payload_body=test_payload,
            signature_header="",
            secret=test_secret,
        )
        assert is_valid is False
        assert error_code == "WEBHOOK_MISSING_HEADER"
        assert error_details["missing_header"] == "X-PGPay-Signature"

    def test_signature_covers_exact_bytes(self, test_secret, valid_signature):
        """Re-serialized JSON is a different body"""
        reformatted = b'{"pgPayToken": "tok-test-1"}'
        is_valid, error_code, _ = verify_hmac_signature(reformatted, valid_signature, test_secret)
        assert is_valid is False
        assert error_code == "WEBHOOK_INVALID_SIGNATURE"


class TestTimestampVerification:
    """Tests for timestamp verification"""

    def test_valid_timestamp_passes(self):
        is_valid, error_code, error_details = verify_timestamp(
            timestamp_header=str(int(time.time())),
            tolerance_seconds=300,
        )
        assert is_valid is True
        assert error_code is None
        assert error_details is None

    def test_no_timestamp_passes(self):
        """No timestamp provided should pass (idempotent transitions cover replays)"""
        is_valid, error_code, error_details = verify_timestamp(
            timestamp_header=None,
            tolerance_seconds=300,
        )
        assert is_valid is True

    def test_invalid_timestamp_format_fails(self):
        is_valid, error_code, error_details = verify_timestamp(
            timestamp_header="not-a-number",
            tolerance_seconds=300,
        )
        assert is_valid is False
        assert error_code == "WEBHOOK_INVALID_TIMESTAMP"
        assert error_details["received"] == "not-a-number"

    @pytest.mark.parametrize("offset", [-400, 400])
    def test_timestamp_outside_tolerance_fails(self, offset):
        is_valid, error_code, error_details = verify_timestamp(
            timestamp_header=str(int(time.time()) + offset),
            tolerance_seconds=300,
        )
        assert is_valid is False
        assert error_code == "WEBHOOK_TIMESTAMP_SKEW"
        assert error_details["max_skew_seconds"] == 300


class TestCompleteWebhookSecurityVerification:
    """Tests for complete PGPay webhook security verification"""

    def test_no_secret_configured_skips_checks(self, test_payload, monkeypatch):
        from topup.infrastructure.settings import get_settings
        monkeypatch.setattr(get_settings(), "PGPAY_WEBHOOK_SECRET", "")

        is_valid, error_code, _ = verify_pgpay_webhook_security(
            payload_body=test_payload,
            signature_header=None,
        )
        assert is_valid is True
        assert error_code is None

    def test_missing_signature_header_fails(self, test_payload, monkeypatch):
        from topup.infrastructure.settings import get_settings
        settings = get_settings()
        monkeypatch.setattr(settings, "PGPAY_WEBHOOK_SECRET", "test-secret")
        monkeypatch.setattr(settings, "PGPAY_WEBHOOK_TOLERANCE_SECONDS", 300)

        is_valid, error_code, error_details = verify_pgpay_webhook_security(
            payload_body=test_payload,
            signature_header=None,
            timestamp_header=None,
        )
        assert is_valid is False
        assert error_code == "WEBHOOK_MISSING_HEADER"

    def test_valid_webhook_passes(self, test_payload, test_secret, valid_signature, monkeypatch):
        from topup.infrastructure.settings import get_settings
        settings = get_settings()
        monkeypatch.setattr(settings, "PGPAY_WEBHOOK_SECRET", test_secret)
        monkeypatch.setattr(settings, "PGPAY_WEBHOOK_TOLERANCE_SECONDS", 300)

        is_valid, error_code, error_details = verify_pgpay_webhook_security(
            payload_body=test_payload,
            signature_header=valid_signature,
            timestamp_header=str(int(time.time())),
        )
        assert is_valid is True
        assert error_code is None
        assert error_details is None

    def test_stale_timestamp_fails_after_valid_signature(self, test_payload, test_secret, valid_signature, monkeypatch):
        from topup.infrastructure.settings import get_settings
        settings = get_settings()
        monkeypatch.setattr(settings, "PGPAY_WEBHOOK_SECRET", test_secret)
        monkeypatch.setattr(settings, "PGPAY_WEBHOOK_TOLERANCE_SECONDS", 60)

        is_valid, error_code, _ = verify_pgpay_webhook_security(
            payload_body=test_payload,
            signature_header=valid_signature,
            timestamp_header=str(int(time.time()) - 120),
        )
        assert is_valid is False
        assert error_code == "WEBHOOK_TIMESTAMP_SKEW"
