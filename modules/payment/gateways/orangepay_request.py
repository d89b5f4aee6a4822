"""
Orangepay Request Adapter
==========================
Builds outbound JSON, calls the Orangepay REST API, and flattens the
nested response envelopes:

    POST /charges              -> data.links.redirect_uri
    GET  /charges/{order_key}  -> data.charge
    POST /refunds              -> data.charge.included[type=refund].id

Every public method returns None when the call yields nothing usable.
Transport errors, non-JSON bodies and missing keys all end up there; the
specific cause only goes to the logs.
"""

import logging
from dataclasses import dataclass, asdict
from decimal import Decimal
from typing import Any, Optional
from urllib.parse import quote, urlsplit, urlunsplit, parse_qsl, urlencode

import httpx

from config.settings import APP_VERSION, CHARGE_TIMEOUT, REFUND_TIMEOUT
from common.envelope import Envelope
from common.exceptions import RemoteCallError
from modules.payment.gateway_log import GatewayLog
from modules.payment.host import Host, HostOrder

logger = logging.getLogger("orangepay.request")

WEBHOOK_HOOK = "orangepay_webhook"
EMAIL_LIMIT = 127
ELLIPSIS = "..."


@dataclass
class ChargeRequest:
    reference_id: str
    pay_method: str
    email: str
    description: str
    amount: str
    currency: str
    return_success_url: str
    return_error_url: str
    callback_url: str


@dataclass
class RefundRequest:
    charge_id: str
    amount: str


def format_amount(value: Any) -> str:
    """Amounts travel as decimal strings, never floats in JSON."""
    if isinstance(value, Decimal):
        return format(value, "f")
    return str(value)


def add_query_arg(url: str, key: str, value: str) -> str:
    parts = urlsplit(url)
    query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k != key]
    query.append((key, value))
    return urlunsplit(parts._replace(query=urlencode(query)))


def _encoded_len(text: str) -> int:
    return len(quote(text, safe="", errors="replace"))


def limit_length(value: Optional[str], limit: int = EMAIL_LIMIT) -> str:
    """Cut a string so its percent-encoded form fits in `limit` characters.

    The remote side measures the URL-encoded form, so a short-looking string
    with multi-byte characters can still be too long. Whole characters are
    kept while they fit in `limit - 3`, then "..." is appended. For
    multi-byte input this can differ from a raw cut of the encoded bytes,
    which may split a character and re-encode past the limit.
    """
    value = value or ""
    if _encoded_len(value) <= limit:
        return value

    budget = limit - len(ELLIPSIS)
    used = 0
    kept = []
    for ch in value:
        size = _encoded_len(ch)
        if used + size > budget:
            break
        kept.append(ch)
        used += size
    return "".join(kept) + ELLIPSIS


class OrangepayRequest:
    """Generates requests to send to the Orangepay API."""

    def __init__(self, gateway, host: Host, client: Optional[httpx.Client] = None, log: Optional[GatewayLog] = None):
        self.gateway = gateway
        self.host = host
        self.settings = gateway.settings
        self.endpoint = self.settings.endpoint
        self.notify_url = host.api_request_url(WEBHOOK_HOOK)
        self.client = client or httpx.Client()
        self.log = log or gateway.log

    # ==========================================
    # Transport
    # ==========================================

    def _headers(self) -> dict:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.settings.api_token}",
            "User-Agent": f"Orangepay-Gateway/{APP_VERSION}",
        }

    def _call(self, operation: str, method: str, path: str, timeout: float, payload: Optional[dict] = None) -> Envelope:
        url = f"{self.endpoint}{path}"
        try:
            resp = self.client.request(method, url, json=payload, headers=self._headers(), timeout=timeout)
        except httpx.TimeoutException as e:
            raise RemoteCallError(RemoteCallError.TRANSPORT, f"{method} {path} timed out after {timeout}s: {e}") from e
        except httpx.HTTPError as e:
            raise RemoteCallError(RemoteCallError.TRANSPORT, f"{method} {path} failed: {e}") from e

        self.log.exchange(operation, "response", {"status": resp.status_code, "body": resp.text})
        if resp.status_code >= 400:
            logger.warning(f"Orangepay {operation}: HTTP {resp.status_code}")

        env = Envelope.parse(resp.content)
        if env.mapping() is None:
            raise RemoteCallError(RemoteCallError.MALFORMED, f"{method} {path} returned a non-object body")
        return env

    def _fail(self, operation: str, order: HostOrder, reason: str) -> None:
        logger.warning(f"Orangepay {operation} [{order.order_number}]: {reason}")
        self.log.log(f"Orangepay - {operation} failed: {reason}", logging.WARNING)
        return None

    # ==========================================
    # Charges
    # ==========================================

    def build_charge_request(self, order: HostOrder) -> ChargeRequest:
        return ChargeRequest(
            reference_id=order.order_key,
            pay_method="card",
            email=limit_length(order.billing_email),
            description=f"Payment for order #{order.id}",
            amount=format_amount(order.total),
            currency=self.host.get_currency(),
            return_success_url=add_query_arg(self.host.get_return_url(order), "utm_nooverride", "1"),
            return_error_url=self.host.get_cancel_url(order),
            callback_url=self.notify_url,
        )

    def get_payment_url(self, order: HostOrder) -> Optional[str]:
        """Create a charge and return the URL the customer is sent to."""
        operation = "get_payment_url()"
        request = asdict(self.build_charge_request(order))
        self.log.exchange(operation, f"request parameters: {order.order_number}", request)

        try:
            env = self._call(operation, "POST", "/charges", CHARGE_TIMEOUT, request)
        except RemoteCallError as e:
            return self._fail(operation, order, f"{e.kind}: {e.message}")

        redirect_uri = env.path("data", "links", "redirect_uri").text()
        if not redirect_uri:
            return self._fail(operation, order, "response has no data.links.redirect_uri")
        return redirect_uri

    def get_payment_details(self, order: HostOrder) -> Optional[dict]:
        """Fetch the charge stored under the order key."""
        operation = "get_payment_details()"
        try:
            env = self._call(operation, "GET", f"/charges/{quote(order.order_key, safe='')}", CHARGE_TIMEOUT)
        except RemoteCallError as e:
            return self._fail(operation, order, f"{e.kind}: {e.message}")

        charge = env.path("data", "charge").mapping()
        if charge is None:
            return self._fail(operation, order, "response has no data.charge")
        return charge

    # ==========================================
    # Refunds
    # ==========================================

    def make_payment_refund(self, order: HostOrder, amount) -> Optional[str]:
        """Refund `amount` against the order's charge; returns the refund id."""
        operation = "make_payment_refund()"
        details = self.get_payment_details(order)
        if details is None:
            return None

        charge_id = Envelope(details)["id"].text()
        if not charge_id:
            return self._fail(operation, order, "charge has no id")

        request = asdict(RefundRequest(charge_id=charge_id, amount=format_amount(amount)))
        self.log.exchange(operation, f"request parameters: {order.order_number}", request)

        try:
            env = self._call(operation, "POST", "/refunds", REFUND_TIMEOUT, request)
        except RemoteCallError as e:
            return self._fail(operation, order, f"{e.kind}: {e.message}")

        for included in env.path("data", "charge", "included").items():
            if included["type"].text() == "refund":
                return included["id"].text()
        return self._fail(operation, order, "response has no refund in data.charge.included")
