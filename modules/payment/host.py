"""
Host Contract
===============
The narrow surface of the order-management host this plugin talks to.
The host owns orders, the cart and the persisted settings; the gateway
only reads and nudges them through these methods.
"""

from typing import Any, Mapping, Optional, Protocol, runtime_checkable


class OrderStatus:
    PENDING = "pending"
    PAID = "paid"
    CANCELLED = "cancelled"


@runtime_checkable
class HostOrder(Protocol):
    id: int
    order_key: str
    status: str
    total: Any
    billing_email: str

    @property
    def order_number(self) -> str: ...

    def add_note(self, note: str) -> None: ...

    def payment_complete(self, transaction_id: str = "") -> None:
        """Mark the order paid."""

    def reduce_stock(self) -> None: ...


@runtime_checkable
class Host(Protocol):
    def get_order(self, order_id: int) -> Optional[HostOrder]: ...

    def get_order_id_by_key(self, order_key: str) -> Optional[int]: ...

    def get_currency(self) -> str: ...

    def empty_cart(self) -> None: ...

    def api_request_url(self, name: str) -> str:
        """Absolute URL the host routes to the named API hook."""

    def get_return_url(self, order: HostOrder) -> str: ...

    def get_cancel_url(self, order: HostOrder) -> str: ...


@runtime_checkable
class SettingsStore(Protocol):
    def get_option(self, key: str, default: Optional[str] = None) -> Optional[str]: ...

    def update_options(self, options: Mapping[str, str]) -> None: ...
