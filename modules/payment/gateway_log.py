"""
Gateway Debug Log
==================
Request/response trail for a gateway, switched on by its "debug" option.
Built once per gateway instance and handed to whatever needs it; when
disabled every call is a no-op.
"""

import logging
from typing import Any, Iterable, Optional

MASK = "***"
SENSITIVE_KEYS = frozenset({"api_token", "authorization", "token", "password"})


def mask_secrets(value: Any, secrets: Iterable[str] = ()) -> Any:
    """Return a copy of value with sensitive keys and known secret strings masked."""
    secrets = [s for s in secrets if s]
    if isinstance(value, dict):
        return {
            k: MASK if str(k).lower() in SENSITIVE_KEYS else mask_secrets(v, secrets)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [mask_secrets(v, secrets) for v in value]
    if isinstance(value, str):
        for secret in secrets:
            value = value.replace(secret, MASK)
        return value
    return value


class GatewayLog:

    def __init__(self, enabled: bool, logger: Optional[logging.Logger] = None, secrets: Iterable[str] = ()):
        self.enabled = enabled
        self.logger = logger or logging.getLogger("orangepay")
        self._secrets = tuple(s for s in secrets if s)

    def log(self, message: str, level: int = logging.INFO):
        if not self.enabled:
            return
        self.logger.log(level, mask_secrets(message, self._secrets))

    def exchange(self, operation: str, label: str, payload: Any):
        """Record one side of a request/response pair."""
        if not self.enabled:
            return
        self.log(f"Orangepay - {operation} {label}: {mask_secrets(payload, self._secrets)!r}")
