"""
Orangepay Gateway - Application Entry Point
============================================
FastAPI app for a host that mounts the Orangepay plugin.
The host passes its own order/cart adapter; settings live in SystemSetting.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from config import settings
from config.database import Base, engine
from modules.admin.settings_store import DbSettingsStore
from modules.payment.host import Host, SettingsStore
from modules.payment.plugin import register_plugin

logger = logging.getLogger("orangepay")


def create_app(host: Host, settings_store: Optional[SettingsStore] = None) -> FastAPI:
    if settings_store is None:
        # Auto-create the settings table (safe for existing tables)
        Base.metadata.create_all(bind=engine)
        settings_store = DbSettingsStore()

    plugin = register_plugin(host, settings_store)

    @asynccontextmanager
    async def lifespan(app):
        logger.info(f"Orangepay gateway ready (webhook: {plugin.webhook_path}, testmode: {plugin.gateway.testmode})")
        yield
        plugin.gateway.close()

    app = FastAPI(
        title="Orangepay Gateway",
        version=settings.APP_VERSION,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url=None,
        lifespan=lifespan,
    )
    app.include_router(plugin.router)
    app.state.orangepay = plugin

    @app.get("/health")
    async def health():
        return {
            "status": "ok",
            "version": settings.APP_VERSION,
            "gateway": plugin.id,
            "available": plugin.gateway.is_available(),
        }

    return app
