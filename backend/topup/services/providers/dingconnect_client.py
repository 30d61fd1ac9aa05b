"""
DingConnect API HTTP client

All endpoints live under /api/V1 and authenticate with an api_key header.
List endpoints wrap results as {ResultCode, ErrorCodes, Items}.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

import httpx

from topup.infrastructure.settings import get_settings
from topup.services.providers.base import (
    PriceEstimate,
    ProviderBalance,
    TopupProvider,
    TransferRequest,
    TransferResult,
    TransferStatus,
)
from topup.services.providers.exceptions import ProviderError, ProviderNotConfiguredError

logger = logging.getLogger(__name__)

# ResultCode 1 means success on every DingConnect endpoint
RESULT_OK = 1

_COMPLETED_STATES = frozenset({"completed", "complete"})
_FAILED_STATES = frozenset({"failed", "cancelled", "canceled"})


def _decimal(value) -> Decimal:
    return Decimal(str(value)) if value is not None else Decimal("0")


def _error_codes(data: Dict[str, Any]) -> List[Dict[str, Any]]:
    codes = data.get("ErrorCodes") or []
    return [c for c in codes if isinstance(c, dict)]


class DingConnectClient(TopupProvider):
    """DingConnect provider bound to one organization's API key"""

    name = "dingconnect"

    def __init__(self, api_key: str, base_url: Optional[str] = None, http_client: Optional[httpx.Client] = None):
        if not api_key:
            raise ProviderNotConfiguredError("DingConnect integration is missing apiKey")

        settings = get_settings()
        self.base_url = (base_url or settings.DINGCONNECT_BASE_URL).rstrip("/")
        self.http = http_client or httpx.Client(timeout=settings.HTTP_CLIENT_TIMEOUT_SECONDS)
        self.headers = {"api_key": api_key, "Content-Type": "application/json"}

    def _request(self, method: str, endpoint: str, *, params=None, json=None) -> Any:
        url = f"{self.base_url}/api/V1/{endpoint}"
        try:
            response = self.http.request(method, url, params=params, json=json, headers=self.headers)
        except httpx.HTTPError as e:
            logger.error(f"DingConnect request failed: endpoint={endpoint}, error={e}")
            raise ProviderError(f"DingConnect request failed: {e}") from e

        try:
            data = response.json()
        except ValueError:
            data = {"message": response.text}

        if response.is_error:
            codes = _error_codes(data) if isinstance(data, dict) else []
            first_code = codes[0].get("Code") if codes else None
            message = (data.get("ErrorMessage") or data.get("message")) if isinstance(data, dict) else None
            logger.error(
                f"DingConnect error response: endpoint={endpoint}, status={response.status_code}, "
                f"error_code={first_code}"
            )
            raise ProviderError(
                f"DingConnect API Error {response.status_code}: {message or first_code or response.reason_phrase}",
                provider_error_code=first_code,
            )
        return data

    def _items(self, data: Any) -> List[Dict[str, Any]]:
        if isinstance(data, dict) and "Items" in data:
            return data["Items"] or []
        return data if isinstance(data, list) else []

    def get_balance(self) -> ProviderBalance:
        data = self._request("GET", "GetBalance")
        if isinstance(data, dict) and "Items" in data and data["Items"]:
            data = data["Items"][0]
        if not isinstance(data, dict) or "AccountBalance" not in data:
            raise ProviderError("DingConnect GetBalance returned no AccountBalance")
        return ProviderBalance(
            account_balance=_decimal(data["AccountBalance"]),
            currency=data.get("CurrencyIso") or data.get("CurrencyCode") or "USD",
        )

    def get_products(self, **filters) -> List[Dict[str, Any]]:
        params = {k: v for k, v in filters.items() if v}
        return self._items(self._request("GET", "GetProducts", params=params or None))

    def get_providers(self, **filters) -> List[Dict[str, Any]]:
        params = {k: v for k, v in filters.items() if v}
        return self._items(self._request("GET", "GetProviders", params=params or None))

    def estimate_prices(self, items: List[Dict[str, Any]]) -> List[PriceEstimate]:
        estimates = []
        for item in self._items(self._request("POST", "EstimatePrices", json=items)):
            price = item.get("Price") or {}
            estimates.append(PriceEstimate(
                sku_code=item.get("SkuCode"),
                send_value=_decimal(price.get("SendValue", item.get("SendValue"))),
                send_currency=price.get("SendCurrencyIso") or item.get("SendCurrencyIso") or "USD",
                receive_value=_decimal(price.get("ReceiveValue", item.get("ReceiveValue"))),
                receive_currency=price.get("ReceiveCurrencyIso") or item.get("ReceiveCurrencyIso") or "",
                fee=_decimal(price.get("CustomerFee", item.get("Fee"))),
                tax_rate=_decimal(price["TaxRate"]) if price.get("TaxRate") is not None else None,
            ))
        return estimates

    def _transfer_result(self, data: Dict[str, Any]) -> TransferResult:
        record = data.get("TransferRecord") if isinstance(data.get("TransferRecord"), dict) else data
        transfer_id = record.get("TransferId")
        if isinstance(transfer_id, dict):
            transfer_id = transfer_id.get("TransferRef")

        state = str(record.get("ProcessingState") or record.get("Status") or "").lower()
        codes = _error_codes(data)
        error_code = record.get("ErrorCode") or (codes[0].get("Code") if codes else None)
        error_message = record.get("ErrorMessage") or (codes[0].get("Context") if codes else None)

        result_code = data.get("ResultCode")
        if state in _COMPLETED_STATES:
            status = TransferStatus.COMPLETED
        elif state in _FAILED_STATES or (result_code is not None and result_code != RESULT_OK and codes):
            status = TransferStatus.FAILED
        else:
            status = TransferStatus.PROCESSING

        return TransferResult(
            status=status,
            transfer_id=str(transfer_id) if transfer_id is not None else None,
            provider_transaction_id=record.get("ProviderTransactionId") or (str(transfer_id) if transfer_id is not None else None),
            error_message=error_message or (error_code if status == TransferStatus.FAILED else None),
            error_code=error_code,
            raw=data,
        )

    def send_transfer(self, request: TransferRequest) -> TransferResult:
        payload = {
            "SkuCode": request.sku_code,
            "AccountNumber": request.account_number,
            "DistributorRef": request.distributor_ref,
            "ValidateOnly": request.validate_only,
        }
        if request.send_value is not None:
            payload["SendValue"] = float(request.send_value)
            payload["SendCurrencyIso"] = request.send_currency

        logger.info(
            f"DingConnect SendTransfer: sku={request.sku_code}, distributor_ref={request.distributor_ref}, "
            f"validate_only={request.validate_only}"
        )
        return self._transfer_result(self._request("POST", "SendTransfer", json=payload))

    def get_transfer_status(self, transfer_id: str) -> TransferResult:
        data = self._request("GET", "GetTransferStatus", params={"TransferId": transfer_id})
        items = self._items(data)
        if items:
            data = {"TransferRecord": items[0], "ResultCode": data.get("ResultCode") if isinstance(data, dict) else None}
        return self._transfer_result(data)

    def lookup_country(self, account_number: str) -> Optional[str]:
        data = self._request("GET", "GetAccountLookup", params={"accountNumber": account_number})
        if isinstance(data, dict):
            return data.get("CountryIso")
        return None
