import threading
import time

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from main import create_app
from modules.payment.gateways import get_gateway, unregister_gateway
from modules.payment.plugin import register_plugin

API_URL = "https://api.orangepay.test/v1"
API_TOKEN = "tok_live_secret"

WEBHOOK_BODY = b'{"data":{"charge":{"id":"c1","attributes":{"reference_id":"ORD-1"}}}}'


@pytest.fixture
def plugin(host, store, remote):
    store.update_options({"api_url": API_URL, "api_token": API_TOKEN})
    descriptor = register_plugin(host, store, client=remote.client())
    yield descriptor
    descriptor.gateway.close()


@pytest.fixture
def client(plugin):
    app = FastAPI()
    app.include_router(plugin.router)
    with TestClient(app) as c:
        yield c


# ==========================================
# Registration
# ==========================================

def test_register_plugin_returns_descriptor(plugin):
    assert plugin.id == "orangepay"
    assert plugin.title == "Orangepay"
    assert plugin.method_title == "Orangepay"
    assert plugin.supports == ("products", "refunds")
    assert plugin.webhook_path == "/payment/orangepay/webhook"
    assert get_gateway("orangepay") is plugin.gateway


def test_register_plugin_is_idempotent(plugin, host, store):
    assert register_plugin(host, store) is plugin


def test_register_plugin_after_unregister_builds_new_gateway(plugin, host, store):
    unregister_gateway("orangepay")
    again = register_plugin(host, store)
    assert again is not plugin
    assert get_gateway("orangepay") is again.gateway
    again.gateway.close()


def test_create_app_health(host, store):
    with TestClient(create_app(host, store)) as c:
        resp = c.get("/health")
    assert resp.status_code == 200
    assert resp.json()["gateway"] == "orangepay"
    assert resp.json()["available"] is True


# ==========================================
# Webhook
# ==========================================

def test_webhook_route_settles_order(client, make_order, remote):
    order = make_order()
    remote.reply("GET", "/charges/ORD-1", {"data": {"charge": {"id": "c1", "attributes": {"status": "successful"}}}})

    resp = client.post("/payment/orangepay/webhook", content=WEBHOOK_BODY)

    assert resp.status_code == 200
    assert resp.text == ""
    assert order.status == "paid"


def test_webhook_route_rejects_with_sentinel(client, make_order):
    order = make_order()
    resp = client.post("/payment/orangepay/webhook", content=b"garbage")

    assert resp.status_code == 200
    assert resp.text == "-1"
    assert resp.headers["content-type"].startswith("text/plain")
    assert order.status == "pending"


# ==========================================
# Redirect
# ==========================================

def test_pay_redirects_to_orangepay(client, make_order, host, remote):
    make_order()
    remote.reply("POST", "/charges", {"data": {"links": {"redirect_uri": "https://pay.test/r/1"}}})

    resp = client.post("/payment/1/orangepay", follow_redirects=False)

    assert resp.status_code == 303
    assert resp.headers["location"] == "https://pay.test/r/1"
    assert host.cart_emptied == 1


def test_pay_failure_redirects_back_to_order(client, make_order, host, remote):
    make_order()
    remote.reply("POST", "/charges", {"data": {}})

    resp = client.post("/payment/1/orangepay", follow_redirects=False)

    assert resp.status_code == 303
    assert resp.headers["location"].startswith("/orders/1?error=")
    assert host.cart_emptied == 0


def test_pay_unknown_order(client):
    assert client.post("/payment/99/orangepay", follow_redirects=False).status_code == 404


def test_pay_unsupported_currency(client, make_order, host, remote):
    make_order()
    host.currency = "JPY"

    resp = client.post("/payment/1/orangepay", follow_redirects=False)

    assert resp.status_code == 303
    assert "error=" in resp.headers["location"]
    assert remote.requests == []


# ==========================================
# Refund
# ==========================================

def test_refund_route_success(client, make_order, remote):
    order = make_order(status="paid")
    remote.reply("GET", "/charges/ORD-1", {"data": {"charge": {"id": "c1", "attributes": {"status": "successful"}}}})
    remote.reply("POST", "/refunds", {"data": {"charge": {"included": [{"type": "refund", "id": "r9"}]}}})

    resp = client.post("/payment/1/orangepay/refund", data={"amount": "5.00", "reason": ""})

    assert resp.status_code == 200
    assert resp.json()["refund_id"] == "r9"
    assert order.notes == ["Refunded 5.00 - Refund ID: r9"]


def test_slow_refund_does_not_block_other_requests(client, make_order, remote):
    make_order(status="paid")
    entered = threading.Event()
    release = threading.Event()

    def slow_charge(request):
        entered.set()
        release.wait(timeout=5)
        return httpx.Response(200, json={"data": {"charge": {"id": "c1", "attributes": {"status": "successful"}}}})

    remote.replies[("GET", "/charges/ORD-1")] = slow_charge
    remote.reply("POST", "/refunds", {"data": {"charge": {"included": [{"type": "refund", "id": "r9"}]}}})

    responses = []
    worker = threading.Thread(
        target=lambda: responses.append(client.post("/payment/1/orangepay/refund", data={"amount": "5.00"}))
    )
    worker.start()
    try:
        assert entered.wait(timeout=5)
        started = time.monotonic()
        assert client.get("/payment/orangepay/settings").status_code == 200
        assert time.monotonic() - started < 2
        assert responses == []
    finally:
        release.set()
        worker.join(timeout=5)

    assert responses[0].json()["refund_id"] == "r9"


def test_refund_route_rejects_bad_amount(client, make_order, remote):
    make_order(status="paid")
    resp = client.post("/payment/1/orangepay/refund", data={"amount": "-5"})

    assert resp.status_code == 400
    assert resp.json()["cause"] == "invalid_amount"
    assert remote.requests == []


# ==========================================
# Settings
# ==========================================

def test_settings_form(client):
    body = client.get("/payment/orangepay/settings").json()
    assert "api_token" in body["fields"]
    assert body["notice"] is None


def test_settings_save(client, store):
    resp = client.post("/payment/orangepay/settings", data={"enabled": "yes", "testmode": "yes"})
    assert resp.status_code == 200
    assert resp.json()["testmode"] is True
    assert store.get_option("testmode") == "yes"


def test_settings_save_rejects_invalid_email(client):
    resp = client.post("/payment/orangepay/settings", data={"email": "nope"})
    assert resp.status_code == 400
    assert resp.json()["field"] == "email"
