"""
Payment Gateway Abstraction
=============================
Each gateway implements initiate_payment(), process_refund() and
receive_webhook(). Registry pattern for gateway lookup by name.
"""

import enum
import logging
from typing import Dict, Optional, Tuple
from dataclasses import dataclass

logger = logging.getLogger("orangepay.gateway")

WEBHOOK_REJECTED = "-1"


class FailureCause(str, enum.Enum):
    INIT_FAILED = "init_failed"
    REFUND_DISABLED = "refund_disabled"
    INVALID_AMOUNT = "invalid_amount"
    ORDER_NOT_FOUND = "order_not_found"
    REMOTE_FAILED = "remote_failed"


@dataclass
class GatewayCreateResult:
    """Result of initiate_payment()."""
    success: bool
    redirect_url: Optional[str] = None
    error_message: Optional[str] = None
    cause: Optional[FailureCause] = None


@dataclass
class GatewayRefundResult:
    """Result of process_refund()."""
    success: bool
    refund_id: Optional[str] = None
    error_message: Optional[str] = None
    cause: Optional[FailureCause] = None


@dataclass
class WebhookOutcome:
    """Result of receive_webhook(). `body` is what goes back to the remote caller."""
    handled: bool
    body: str = ""
    reason: Optional[str] = None
    transaction_id: Optional[str] = None

    @classmethod
    def rejected(cls, reason: str) -> "WebhookOutcome":
        return cls(handled=False, body=WEBHOOK_REJECTED, reason=reason)


class BaseGateway:
    """Abstract gateway interface."""
    name: str = ""
    label: str = ""
    supports: Tuple[str, ...] = ("products",)

    def is_available(self) -> bool:
        raise NotImplementedError

    def initiate_payment(self, order) -> GatewayCreateResult:
        raise NotImplementedError

    def can_refund(self, order) -> bool:
        return False

    def process_refund(self, order_id: int, amount=None, reason: str = "") -> GatewayRefundResult:
        raise NotImplementedError

    def receive_webhook(self, raw_body) -> WebhookOutcome:
        raise NotImplementedError


# ── Registry ──

_GATEWAYS: Dict[str, BaseGateway] = {}


def register_gateway(gw: BaseGateway):
    _GATEWAYS[gw.name] = gw
    logger.info(f"Registered payment gateway: {gw.name}")


def unregister_gateway(name: str) -> Optional[BaseGateway]:
    return _GATEWAYS.pop(name, None)


def get_gateway(name: str) -> Optional[BaseGateway]:
    return _GATEWAYS.get(name)
