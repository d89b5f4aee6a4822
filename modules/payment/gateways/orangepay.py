"""
Orangepay Gateway
==================
REST/JSON with bearer auth. Create charge → redirect → webhook → re-fetch charge.
Refunds go through /refunds and are disabled in sandbox mode.
"""

import logging
import re
from typing import Any, Dict, Iterable, Mapping, Optional

import httpx

from common.envelope import Envelope
from common.exceptions import OrangepayError
from modules.payment.gateway_log import GatewayLog
from modules.payment.gateways import (
    BaseGateway, FailureCause, GatewayCreateResult, GatewayRefundResult, WebhookOutcome,
)
from modules.payment.gateways.orangepay_request import OrangepayRequest, format_amount
from modules.payment.gateways.orangepay_settings import (
    FORM_FIELDS, OrangepaySettings, clean_options, load_settings,
)
from modules.payment.host import Host, HostOrder, OrderStatus, SettingsStore

logger = logging.getLogger("orangepay.gateway")
webhook_logger = logging.getLogger("orangepay.webhook")

AMOUNT_PATTERN = re.compile(r"^\d+(\.\d+)?$", re.ASCII)
CHARGE_SUCCESSFUL = "successful"


def is_valid_amount(amount: Any) -> bool:
    if amount is None or isinstance(amount, bool):
        return False
    return AMOUNT_PATTERN.fullmatch(format_amount(amount)) is not None


class OrangepayGateway(BaseGateway):
    name = "orangepay"
    label = "Orangepay"
    method_title = "Orangepay"
    method_description = "Redirects customers to Orangepay to enter their payment information."
    order_button_text = "Proceed to Orangepay"
    supports = ("products", "refunds")

    def __init__(
        self,
        host: Host,
        settings: OrangepaySettings,
        store: Optional[SettingsStore] = None,
        client: Optional[httpx.Client] = None,
        log_sink: Optional[logging.Logger] = None,
    ):
        self.host = host
        self.settings = settings
        self.store = store
        self.log = GatewayLog(
            settings.debug,
            log_sink or logging.getLogger("orangepay"),
            secrets=(settings.api_token,),
        )
        self.request = OrangepayRequest(self, host, client=client, log=self.log)

    @classmethod
    def from_store(
        cls,
        host: Host,
        store: Optional[SettingsStore] = None,
        client: Optional[httpx.Client] = None,
        supported_currencies: Optional[Iterable[str]] = None,
        log_sink: Optional[logging.Logger] = None,
    ) -> "OrangepayGateway":
        return cls(host, load_settings(store, supported_currencies), store=store, client=client, log_sink=log_sink)

    def close(self):
        self.request.client.close()

    # ==========================================
    # 🔧 Availability & Settings
    # ==========================================

    @property
    def title(self) -> str:
        return self.settings.title

    @property
    def description(self) -> str:
        return self.settings.description

    @property
    def testmode(self) -> bool:
        return self.settings.testmode

    def is_available(self) -> bool:
        """Gateway can only take payments in the currencies Orangepay settles."""
        return self.host.get_currency().upper() in self.settings.supported_currencies

    @property
    def is_enabled(self) -> bool:
        return self.settings.enabled and self.is_available()

    def admin_notice(self) -> Optional[str]:
        if self.is_available():
            return None
        return "Gateway disabled: Orangepay does not support your store currency."

    def form_fields(self) -> Dict[str, dict]:
        fields = {key: dict(spec) for key, spec in FORM_FIELDS.items()}
        for spec in fields.values():
            if spec["type"] == "password":
                spec["default"] = ""
        return fields

    def process_admin_options(self, form: Mapping[str, object]) -> OrangepaySettings:
        """Validate and persist admin options.

        The running instance keeps its snapshot; the new settings apply to
        gateways built afterwards.
        """
        if self.store is None:
            raise OrangepayError("Orangepay - no settings store configured.")
        cleaned = clean_options(form)
        self.store.update_options(cleaned)
        logger.info(f"Orangepay options saved: {sorted(cleaned)}")
        return load_settings(self.store, self.settings.supported_currencies)

    # ==========================================
    # 🏦 Payment
    # ==========================================

    def initiate_payment(self, order: HostOrder) -> GatewayCreateResult:
        try:
            url = self.request.get_payment_url(order)
        except Exception as e:
            logger.error(f"Orangepay create failed [{order.order_number}]: {e}")
            url = None

        if url:
            # Charge already exists remotely; cart errors are only logged.
            try:
                self.host.empty_cart()
            except Exception as e:
                logger.error(f"Orangepay empty_cart failed [{order.order_number}]: {e}")
            return GatewayCreateResult(success=True, redirect_url=url)

        return GatewayCreateResult(
            success=False,
            error_message="Orangepay - Could not initialize transaction.",
            cause=FailureCause.INIT_FAILED,
        )

    # ==========================================
    # 🔄 Refund
    # ==========================================

    def can_refund(self, order: Optional[HostOrder]) -> bool:
        return not self.settings.testmode

    def process_refund(self, order_id: int, amount=None, reason: str = "") -> GatewayRefundResult:
        try:
            order = self.host.get_order(order_id)
        except Exception as e:
            logger.error(f"Orangepay refund: order #{order_id} lookup failed: {e}")
            order = None

        if not self.can_refund(order):
            return GatewayRefundResult(success=False, error_message="Refund failed.", cause=FailureCause.REFUND_DISABLED)
        if not is_valid_amount(amount):
            return GatewayRefundResult(success=False, error_message="Refund failed.", cause=FailureCause.INVALID_AMOUNT)
        if order is None:
            return GatewayRefundResult(success=False, error_message="Refund failed.", cause=FailureCause.ORDER_NOT_FOUND)

        amount_text = format_amount(amount)
        try:
            refund_id = self.request.make_payment_refund(order, amount_text)
        except Exception as e:
            logger.error(f"Orangepay refund failed [{order.order_number}]: {e}")
            refund_id = None

        if not refund_id:
            return GatewayRefundResult(
                success=False,
                error_message="Orangepay - Refund failed.",
                cause=FailureCause.REMOTE_FAILED,
            )

        note = f"Refunded {amount_text} - Refund ID: {refund_id}"
        if reason:
            note += f" - Reason: {reason}"
        # Refund is settled remotely; note errors are only logged.
        try:
            order.add_note(note)
        except Exception as e:
            logger.error(f"Orangepay refund note failed [{order.order_number}] ({refund_id}): {e}")
        logger.info(f"Order #{order.id} refunded {amount_text} via Orangepay ({refund_id})")
        return GatewayRefundResult(success=True, refund_id=refund_id)

    # ==========================================
    # 📩 Webhook
    # ==========================================

    def receive_webhook(self, raw_body) -> WebhookOutcome:
        """Settle a pending order from an Orangepay notification.

        The notification only identifies the order; settlement is decided by
        a fresh GET of the charge. The pending check and the update below are
        not atomic, so hosts that can receive concurrent notifications for
        one order must lock it around this call.
        """
        try:
            return self._handle_webhook(raw_body)
        except Exception as e:
            webhook_logger.error(f"Orangepay webhook error: {e}")
            return WebhookOutcome.rejected("error")

    def _handle_webhook(self, raw_body) -> WebhookOutcome:
        charge = Envelope.parse(raw_body).path("data", "charge")
        reference_id = charge.path("attributes", "reference_id").text()
        if not reference_id:
            return self._reject("invalid_payload")

        transaction_id = charge["id"].text(default="")
        order_id = self.host.get_order_id_by_key(reference_id)
        order = self.host.get_order(order_id) if order_id else None
        if order is None:
            return self._reject("order_not_found", reference_id)
        if order.status != OrderStatus.PENDING:
            return self._reject("order_not_pending", reference_id)

        details = self.request.get_payment_details(order)
        if details is None:
            return self._reject("charge_not_found", reference_id)
        if Envelope(details).path("attributes", "status").text() != CHARGE_SUCCESSFUL:
            return self._reject("charge_not_successful", reference_id)

        order.add_note(f"Transaction has been paid - ID: {transaction_id}")
        order.payment_complete(transaction_id)
        order.reduce_stock()
        webhook_logger.info(f"Order #{order.id} paid via Orangepay ({transaction_id})")
        return WebhookOutcome(handled=True, transaction_id=transaction_id)

    def _reject(self, reason: str, reference_id: str = "") -> WebhookOutcome:
        webhook_logger.info(f"Orangepay webhook ignored [{reference_id or '-'}]: {reason}")
        self.log.log(f"Orangepay - webhook rejected: {reason}")
        return WebhookOutcome.rejected(reason)
