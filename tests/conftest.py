"""Pytest bootstrap configuration.

Point the app at an in-memory database before any module builds the
engine, and provide a fake host plus a scripted Orangepay API.
"""
import json
import os
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple, Union

os.environ.setdefault("DATABASE_URL", "sqlite://")

import httpx
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from config.database import Base
from modules.admin.settings_store import DbSettingsStore
from modules.payment.gateways import unregister_gateway
from modules.payment.gateways.orangepay import OrangepayGateway
from modules.payment.gateways.orangepay_settings import OrangepaySettings

API_URL = "https://api.orangepay.test/v1"
API_TOKEN = "tok_live_secret"


@dataclass
class FakeOrder:
    id: int
    order_key: str
    status: str = "pending"
    total: str = "25.50"
    billing_email: str = "buyer@example.com"
    notes: List[str] = field(default_factory=list)
    stock_reduced: int = 0
    transaction_id: Optional[str] = None

    @property
    def order_number(self) -> str:
        return str(self.id)

    def add_note(self, note: str) -> None:
        self.notes.append(note)

    def payment_complete(self, transaction_id: str = "") -> None:
        self.status = "paid"
        self.transaction_id = transaction_id

    def reduce_stock(self) -> None:
        self.stock_reduced += 1


class FakeHost:
    def __init__(self, currency: str = "EUR"):
        self.currency = currency
        self.orders: Dict[int, FakeOrder] = {}
        self.cart_emptied = 0

    def add(self, order: FakeOrder) -> FakeOrder:
        self.orders[order.id] = order
        return order

    def get_order(self, order_id):
        return self.orders.get(order_id)

    def get_order_id_by_key(self, order_key):
        for order in self.orders.values():
            if order.order_key == order_key:
                return order.id
        return None

    def get_currency(self):
        return self.currency

    def empty_cart(self):
        self.cart_emptied += 1

    def api_request_url(self, name):
        return f"https://shop.test/api/{name}"

    def get_return_url(self, order):
        return f"https://shop.test/checkout/order-received/{order.id}?key={order.order_key}"

    def get_cancel_url(self, order):
        return f"https://shop.test/cart?cancel_order=true&order={order.order_key}"


Reply = Union[Exception, Callable[[httpx.Request], httpx.Response]]


class FakeOrangepay:
    """Scripted Orangepay API keyed by (method, path)."""

    def __init__(self):
        self.replies: Dict[Tuple[str, str], Reply] = {}
        self.requests: List[httpx.Request] = []

    def reply(self, method: str, path: str, payload=None, *, status: int = 200, text: Optional[str] = None):
        if text is not None:
            self.replies[(method, path)] = lambda request: httpx.Response(status, text=text)
        else:
            self.replies[(method, path)] = lambda request: httpx.Response(status, json=payload)

    def fail(self, method: str, path: str, exc: Exception):
        self.replies[(method, path)] = exc

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path[len(httpx.URL(API_URL).path):]
        reply = self.replies.get((request.method, path))
        if reply is None:
            return httpx.Response(404, json={"errors": [{"detail": "not found"}]})
        if isinstance(reply, Exception):
            raise reply
        return reply(request)

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self.handler))

    def calls(self, method: str, path: str) -> List[httpx.Request]:
        full = httpx.URL(API_URL).path + path
        return [r for r in self.requests if r.method == method and r.url.path == full]

    @staticmethod
    def body(request: httpx.Request) -> dict:
        return json.loads(request.content)


@pytest.fixture
def host():
    return FakeHost()


@pytest.fixture
def remote():
    return FakeOrangepay()


@pytest.fixture
def make_order(host):
    def _make(id: int = 1, order_key: str = "ORD-1", **kwargs) -> FakeOrder:
        return host.add(FakeOrder(id=id, order_key=order_key, **kwargs))
    return _make


@pytest.fixture
def make_gateway(host, remote):
    gateways = []

    def _make(**overrides) -> OrangepayGateway:
        values = dict(
            enabled=True, title="Orangepay", description="Pay by card", email="shop@example.com",
            receiver_email="shop@example.com", api_url=API_URL, api_token=API_TOKEN,
            testmode=False, debug=False,
        )
        values.update(overrides)
        gw = OrangepayGateway(host, OrangepaySettings(**values), client=remote.client())
        gateways.append(gw)
        return gw

    yield _make
    for gw in gateways:
        gw.close()


@pytest.fixture
def store():
    """Settings store over a private in-memory database."""
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield DbSettingsStore(session_factory=factory)
    engine.dispose()


@pytest.fixture(autouse=True)
def _clean_registry():
    yield
    unregister_gateway("orangepay")
