"""
PGPay API HTTP client

Hosted checkout flow:
  1. POST /token creates a payment session and returns a token
  2. The customer is redirected to the PGPay checkout page for that token
  3. PGPay calls our webhook; we POST /order with the token to verify
"""

import logging
from decimal import Decimal
from typing import Any, Dict, Optional

import httpx

from topup.infrastructure.settings import get_settings
from topup.core.organizations.models import ProviderEnvironment
from topup.services.payments.exceptions import GatewayNotConfiguredError, PaymentGatewayError
from topup.services.payments.gateway import (
    CallbackUrls,
    CustomerInfo,
    PaymentGateway,
    PaymentSession,
    PaymentVerification,
)

logger = logging.getLogger(__name__)


class PGPayClient(PaymentGateway):
    """PGPay gateway bound to one organization's merchant user id"""

    name = "pgpay"

    def __init__(
        self,
        user_id: str,
        environment: ProviderEnvironment = ProviderEnvironment.SANDBOX,
        http_client: Optional[httpx.Client] = None,
    ):
        if not user_id:
            raise GatewayNotConfiguredError("PGPay credentials are missing userId")

        settings = get_settings()
        self.user_id = user_id
        self.environment = ProviderEnvironment(environment)
        if self.environment == ProviderEnvironment.PRODUCTION:
            self.base_url = settings.PGPAY_PRODUCTION_BASE_URL
            self.checkout_base_url = settings.PGPAY_PRODUCTION_CHECKOUT_URL
        else:
            self.base_url = settings.PGPAY_SANDBOX_BASE_URL
            self.checkout_base_url = settings.PGPAY_SANDBOX_CHECKOUT_URL
        self.http = http_client or httpx.Client(timeout=settings.HTTP_CLIENT_TIMEOUT_SECONDS)

    def checkout_url(self, token: str) -> str:
        return f"{self.checkout_base_url.rstrip('/')}/{token}"

    def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            response = self.http.post(url, json=payload)
        except httpx.HTTPError as e:
            logger.error(f"PGPay request failed: path={path}, error={e}")
            raise PaymentGatewayError(f"PGPay request failed: {e}") from e

        try:
            data = response.json()
        except ValueError:
            data = {"message": response.text}

        if response.is_error:
            message = data.get("message") if isinstance(data, dict) else None
            logger.error(f"PGPay error response: path={path}, status={response.status_code}, message={message}")
            raise PaymentGatewayError(
                message or f"PGPay returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

        if not isinstance(data, dict):
            raise PaymentGatewayError(f"Unexpected PGPay response for {path}")
        return data

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
        payload = {
            "userID": self.user_id,
            "amount": float(amount),
            "currency": currency.lower(),
            "orderId": order_id,
            "customerEmail": customer.email,
            "customerFirstName": customer.first_name,
            "customerLastName": customer.last_name,
            "successUrl": callback_urls.success_url,
            "errorUrl": callback_urls.error_url,
            "phone": customer.phone,
            "description": description,
            "metadata": metadata,
            "webhookUrl": callback_urls.webhook_url,
        }
        logger.info(f"Creating PGPay payment: order_id={order_id}, amount={amount}, currency={currency}")

        data = self._post("/token", payload)
        token = data.get("token")
        if not token:
            raise PaymentGatewayError("PGPay did not return a payment token")

        return PaymentSession(
            token=token,
            redirect_url=data.get("redirectUrl") or self.checkout_url(token),
            gateway_order_id=data.get("orderId"),
        )

    def verify_payment(self, token: str) -> PaymentVerification:
        data = self._post("/order", {"pgPayToken": token})
        amount = data.get("amount")
        verification = PaymentVerification(
            status=str(data.get("status") or ""),
            payment_status=str(data.get("paymentStatus") or ""),
            amount=Decimal(str(amount)) if amount is not None else None,
            raw=data,
        )
        logger.info(
            f"PGPay payment verified: order_id={data.get('orderId')}, "
            f"status={verification.status}, payment_status={verification.payment_status}"
        )
        return verification
