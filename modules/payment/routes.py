"""
Payment Routes
================
Gateway redirect, Orangepay webhook, admin refund and admin settings.

Gateway and host calls block, so they run in a worker thread.
"""

import urllib.parse
from functools import partial

import anyio
from fastapi import APIRouter, Request, Form, status
from fastapi.responses import JSONResponse, PlainTextResponse, RedirectResponse

from common.exceptions import GatewayConfigError, OrangepayError, OrderNotFoundError, raise_http
from modules.payment.gateways.orangepay import OrangepayGateway

WEBHOOK_PATH = "/payment/orangepay/webhook"


def build_router(gateway: OrangepayGateway) -> APIRouter:
    router = APIRouter(prefix="/payment", tags=["payment"])

    # ==========================================
    # 📩 Orangepay: Webhook (POST, raw JSON body)
    # ==========================================

    @router.post("/orangepay/webhook")
    async def orangepay_webhook(request: Request):
        """Orangepay server notification. Body is "-1" when nothing was settled."""
        raw = await request.body()
        outcome = await anyio.to_thread.run_sync(partial(gateway.receive_webhook, raw))
        return PlainTextResponse(outcome.body)

    # ==========================================
    # ⚙️ Admin: Settings
    # ==========================================

    @router.get("/orangepay/settings")
    async def orangepay_settings_form():
        return {
            "fields": gateway.form_fields(),
            "notice": gateway.admin_notice(),
        }

    @router.post("/orangepay/settings")
    async def orangepay_settings_save(request: Request):
        form = await request.form()
        try:
            saved = await anyio.to_thread.run_sync(partial(gateway.process_admin_options, dict(form)))
        except GatewayConfigError as e:
            return JSONResponse({"success": False, "field": e.field, "message": e.message}, status_code=400)
        except OrangepayError as e:
            raise_http(e, status.HTTP_409_CONFLICT)
        return {"success": True, "testmode": saved.testmode, "debug": saved.debug}

    # ==========================================
    # 🏦 Orangepay: Redirect
    # ==========================================

    @router.post("/{order_id}/orangepay")
    async def pay_orangepay(order_id: int):
        order = await anyio.to_thread.run_sync(partial(gateway.host.get_order, order_id))
        if order is None:
            raise_http(OrderNotFoundError(f"Order #{order_id} not found."), status.HTTP_404_NOT_FOUND)
        if not gateway.is_enabled:
            error = urllib.parse.quote(gateway.admin_notice() or "Orangepay is disabled.")
            return RedirectResponse(f"/orders/{order_id}?error={error}", status_code=303)

        result = await anyio.to_thread.run_sync(partial(gateway.initiate_payment, order))
        if result.success and result.redirect_url:
            return RedirectResponse(result.redirect_url, status_code=303)
        error = urllib.parse.quote(result.error_message or "Payment failed")
        return RedirectResponse(f"/orders/{order_id}?error={error}", status_code=303)

    # ==========================================
    # 🔄 Admin: Refund
    # ==========================================

    @router.post("/{order_id}/orangepay/refund")
    async def refund_orangepay(
        order_id: int,
        amount: str = Form(""),
        reason: str = Form(""),
    ):
        result = await anyio.to_thread.run_sync(partial(gateway.process_refund, order_id, amount, reason))
        body = {
            "success": result.success,
            "message": result.error_message or f"Refund ID: {result.refund_id}",
            "refund_id": result.refund_id,
            "cause": result.cause.value if result.cause else None,
        }
        return JSONResponse(body, status_code=200 if result.success else 400)

    return router
