"""
Webhook security utilities - HMAC signature verification and replay protection
"""

import hmac
import hashlib
import time
import logging
from typing import Optional, Tuple, Dict, Any

from topup.infrastructure.settings import get_settings

logger = logging.getLogger(__name__)


def compute_signature(payload_body: bytes, secret: str) -> str:
    """HMAC-SHA256 hex digest over the exact raw body bytes"""
    return hmac.new(secret.encode("utf-8"), payload_body, hashlib.sha256).hexdigest()


def verify_hmac_signature(
    payload_body: bytes,
    signature_header: Optional[str],
    secret: str,
) -> Tuple[bool, Optional[str], Optional[Dict[str, Any]]]:
    """
    Verify HMAC-SHA256 signature using constant-time comparison.

    Returns:
        Tuple of (is_valid, error_code, error_details)
    """
    if not signature_header:
        return False, "WEBHOOK_MISSING_HEADER", {
            "missing_header": "X-PGPay-Signature",
            "hint": "Include X-PGPay-Signature header with HMAC-SHA256 signature of request body",
        }

    expected_signature = compute_signature(payload_body, secret)
    if not hmac.compare_digest(expected_signature, signature_header):
        return False, "WEBHOOK_INVALID_SIGNATURE", {
            "body_length_bytes": len(payload_body),
            "hint": "Signature mismatch. Sign the exact raw body bytes with HMAC-SHA256.",
        }

    return True, None, None


def verify_timestamp(
    timestamp_header: Optional[str],
    tolerance_seconds: int,
) -> Tuple[bool, Optional[str], Optional[Dict[str, Any]]]:
    """
    Verify timestamp to limit replay window. Missing timestamp is accepted;
    idempotent transaction transitions cover replays.
    """
    if not timestamp_header:
        return True, None, None

    try:
        timestamp = int(timestamp_header)
    except (ValueError, TypeError):
        return False, "WEBHOOK_INVALID_TIMESTAMP", {
            "received": timestamp_header,
            "expected_format": "Unix timestamp (integer as string)",
        }

    time_delta = abs(int(time.time()) - timestamp)
    if time_delta > tolerance_seconds:
        return False, "WEBHOOK_TIMESTAMP_SKEW", {
            "time_delta_seconds": time_delta,
            "max_skew_seconds": tolerance_seconds,
        }

    return True, None, None


def verify_pgpay_webhook_security(
    payload_body: bytes,
    signature_header: Optional[str],
    timestamp_header: Optional[str] = None,
) -> Tuple[bool, Optional[str], Optional[Dict[str, Any]]]:
    """
    Signature + timestamp checks for PGPay webhooks.

    Skipped entirely when PGPAY_WEBHOOK_SECRET is not configured; the
    reconciler still verifies every payment with the gateway before acting.
    """
    settings = get_settings()
    if not settings.PGPAY_WEBHOOK_SECRET:
        return True, None, None

    is_valid, error_code, error_details = verify_hmac_signature(
        payload_body=payload_body,
        signature_header=signature_header,
        secret=settings.PGPAY_WEBHOOK_SECRET,
    )
    if not is_valid:
        return False, error_code, error_details

    return verify_timestamp(
        timestamp_header=timestamp_header,
        tolerance_seconds=settings.PGPAY_WEBHOOK_TOLERANCE_SECONDS,
    )
