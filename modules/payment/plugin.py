"""
Orangepay Plugin Registration
==============================
Called once by the host's extension loader at startup.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

import httpx
from fastapi import APIRouter

from modules.payment.gateways import get_gateway, register_gateway
from modules.payment.gateways.orangepay import OrangepayGateway
from modules.payment.host import Host, SettingsStore
from modules.payment.routes import WEBHOOK_PATH, build_router

logger = logging.getLogger("orangepay")

_DESCRIPTORS = {}


@dataclass(frozen=True)
class PluginDescriptor:
    """What the host needs to wire the gateway in."""
    id: str
    title: str
    method_title: str
    supports: Tuple[str, ...]
    gateway: OrangepayGateway
    router: APIRouter
    webhook_path: str = WEBHOOK_PATH


def register_plugin(
    host: Host,
    settings_store: Optional[SettingsStore] = None,
    *,
    client: Optional[httpx.Client] = None,
    supported_currencies: Optional[Iterable[str]] = None,
    log_sink: Optional[logging.Logger] = None,
) -> PluginDescriptor:
    """Build the Orangepay gateway and register it. Repeated calls return the first descriptor."""
    existing = _DESCRIPTORS.get(OrangepayGateway.name)
    if existing is not None and get_gateway(OrangepayGateway.name) is existing.gateway:
        return existing

    gateway = OrangepayGateway.from_store(
        host, settings_store,
        client=client,
        supported_currencies=supported_currencies,
        log_sink=log_sink,
    )
    register_gateway(gateway)

    descriptor = PluginDescriptor(
        id=gateway.name,
        title=gateway.title,
        method_title=gateway.method_title,
        supports=gateway.supports,
        gateway=gateway,
        router=build_router(gateway),
    )
    _DESCRIPTORS[gateway.name] = descriptor

    if not gateway.is_available():
        logger.warning(f"Orangepay registered but disabled: store currency {host.get_currency()} is not supported")
    return descriptor
