"""Midtrans payment gateway client.

Two calls are used by the storefront:

* ``GET /v2/{order_id}/status`` (Core API) to read the authoritative
  transaction status when a client polls;
* ``POST /snap/v1/transactions`` (Snap) to open a hosted payment page at
  checkout.

Both authenticate with HTTP Basic using the server key as user name and an
empty password.  The sandbox/production environment is inferred from the
server key prefix and falls back to ``MIDTRANS_IS_PRODUCTION``.
"""

from __future__ import annotations

import hashlib
import hmac
from typing import Any, Dict, Mapping, Optional
from urllib.parse import quote

import requests
import structlog
from django.conf import settings

from modules.payments.exceptions import PaymentGatewayError, PaymentGatewayNotConfigured
from modules.payments.interfaces import (
    ChargeRequest,
    IPaymentGateway,
    SnapTransaction,
    TransactionStatus,
)

logger = structlog.get_logger(__name__)

SANDBOX_SERVER_KEY_PREFIX = "SB-Mid-server-"
PRODUCTION_SERVER_KEY_PREFIX = "Mid-server-"

API_BASE_URLS = {
    True: "https://api.midtrans.com",
    False: "https://api.sandbox.midtrans.com",
}
SNAP_BASE_URLS = {
    True: "https://app.midtrans.com",
    False: "https://app.sandbox.midtrans.com",
}


def resolve_server_mode(server_key: Optional[str], production_flag: bool = False) -> bool:
    """Return ``True`` for production, ``False`` for sandbox."""
    if server_key:
        if server_key.startswith(SANDBOX_SERVER_KEY_PREFIX):
            return False
        if server_key.startswith(PRODUCTION_SERVER_KEY_PREFIX):
            return True
    return bool(production_flag)


def notification_signature(
    order_id: str, status_code: str, gross_amount: str, server_key: str
) -> str:
    raw = f"{order_id}{status_code}{gross_amount}{server_key}"
    return hashlib.sha512(raw.encode()).hexdigest()


class MidtransGateway(IPaymentGateway):
    """``requests``-based Midtrans client configured from Django settings."""

    def __init__(
        self,
        server_key: Optional[str] = None,
        client_key: Optional[str] = None,
        merchant_id: Optional[str] = None,
        is_production: Optional[bool] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.server_key = (
            server_key if server_key is not None else settings.MIDTRANS_SERVER_KEY
        )
        self.client_key = (
            client_key if client_key is not None else settings.MIDTRANS_CLIENT_KEY
        )
        self.merchant_id = (
            merchant_id if merchant_id is not None else settings.MIDTRANS_MERCHANT_ID
        )
        if is_production is None:
            is_production = resolve_server_mode(
                self.server_key, settings.MIDTRANS_IS_PRODUCTION
            )
        self.is_production = is_production
        self.timeout = timeout if timeout is not None else settings.MIDTRANS_TIMEOUT_SECONDS

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def is_configured(self) -> bool:
        return bool(self.server_key and self.client_key and self.merchant_id)

    @property
    def api_base_url(self) -> str:
        return API_BASE_URLS[self.is_production]

    @property
    def snap_base_url(self) -> str:
        return SNAP_BASE_URLS[self.is_production]

    def _auth(self) -> tuple[str, str]:
        if not self.server_key:
            raise PaymentGatewayNotConfigured("MIDTRANS_SERVER_KEY is missing")
        return (self.server_key, "")

    # ------------------------------------------------------------------
    # Core API
    # ------------------------------------------------------------------

    def get_transaction_status(self, order_number: str) -> TransactionStatus:
        url = f"{self.api_base_url}/v2/{quote(order_number, safe='')}/status"
        log = logger.bind(order_number=order_number)
        try:
            resp = requests.get(
                url,
                auth=self._auth(),
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            log.error("payment.status_lookup_unreachable", error=str(exc))
            raise PaymentGatewayError(f"Midtrans status lookup failed ({exc})") from exc

        payload = self._json_or_none(resp)
        if not resp.ok or payload is None:
            log.warning("payment.status_lookup_failed", http_status=resp.status_code)
            raise PaymentGatewayError(
                f"Midtrans status lookup failed ({resp.status_code})",
                status_code=resp.status_code,
            )

        status = TransactionStatus.from_payload(order_number, payload)
        log.info(
            "payment.status_fetched",
            transaction_status=status.transaction_status,
            fraud_status=status.fraud_status,
        )
        return status

    # ------------------------------------------------------------------
    # Snap
    # ------------------------------------------------------------------

    def create_transaction(self, charge: ChargeRequest) -> SnapTransaction:
        payload = self._build_snap_payload(charge)
        log = logger.bind(order_number=charge.order_id)
        try:
            resp = requests.post(
                f"{self.snap_base_url}/snap/v1/transactions",
                json=payload,
                auth=self._auth(),
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            log.error("payment.snap_unreachable", error=str(exc))
            raise PaymentGatewayError(f"Midtrans transaction failed ({exc})") from exc

        body = self._json_or_none(resp)
        if not resp.ok or not body or "token" not in body:
            log.warning("payment.snap_failed", http_status=resp.status_code)
            messages = (body or {}).get("error_messages") or []
            detail = "; ".join(str(m) for m in messages) or str(resp.status_code)
            raise PaymentGatewayError(
                f"Midtrans transaction failed ({detail})",
                status_code=resp.status_code,
            )

        log.info("payment.snap_created")
        return SnapTransaction(token=body["token"], redirect_url=body.get("redirect_url", ""))

    @staticmethod
    def _build_snap_payload(charge: ChargeRequest) -> Dict[str, Any]:
        first_name, _, last_name = charge.customer.full_name.strip().partition(" ")
        address = {
            "city": charge.customer.city,
            "postal_code": charge.customer.zip_code,
        }
        payload: Dict[str, Any] = {
            "transaction_details": {
                "order_id": charge.order_id,
                "gross_amount": charge.gross_amount,
            },
            "credit_card": {"secure": True},
            "customer_details": {
                "first_name": first_name,
                "last_name": last_name.strip(),
                "email": charge.customer.email,
                "billing_address": address,
                "shipping_address": dict(address),
            },
        }
        if charge.callbacks:
            payload["callbacks"] = dict(charge.callbacks)
        if charge.enabled_payments:
            payload["enabled_payments"] = list(charge.enabled_payments)
        return payload

    # ------------------------------------------------------------------
    # Webhook signature
    # ------------------------------------------------------------------

    def verify_notification_signature(self, payload: Mapping[str, Any]) -> bool:
        if not self.server_key:
            return False
        expected = notification_signature(
            str(payload.get("order_id", "")),
            str(payload.get("status_code", "")),
            str(payload.get("gross_amount", "")),
            self.server_key,
        )
        return hmac.compare_digest(expected, str(payload.get("signature_key", "")))

    @staticmethod
    def _json_or_none(resp: requests.Response) -> Optional[Dict[str, Any]]:
        try:
            body = resp.json()
        except ValueError:
            return None
        return body if isinstance(body, dict) else None
