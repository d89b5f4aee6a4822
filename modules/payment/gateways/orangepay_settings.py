"""
Orangepay Settings
===================
Admin form definition, immutable settings snapshot, and load/save helpers.
Booleans are persisted as "yes"/"no".
"""

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, Mapping, Optional
from urllib.parse import urlparse

from config import settings
from common.exceptions import GatewayConfigError
from modules.payment.host import SettingsStore

FORM_FIELDS: Dict[str, dict] = {
    "enabled": {
        "title": "Enable/Disable",
        "type": "checkbox",
        "label": "Enable Orangepay",
        "default": "yes" if settings.ORANGEPAY_ENABLED else "no",
    },
    "title": {
        "title": "Title",
        "type": "text",
        "description": "This controls the title which the user sees during checkout.",
        "default": settings.ORANGEPAY_TITLE,
    },
    "description": {
        "title": "Description",
        "type": "textarea",
        "description": "This controls the description which the user sees during checkout.",
        "default": settings.ORANGEPAY_DESCRIPTION,
    },
    "email": {
        "title": "Orangepay email",
        "type": "email",
        "description": "Please enter your Orangepay email address.",
        "default": settings.ORANGEPAY_EMAIL,
    },
    "receiver_email": {
        "title": "Receiver email",
        "type": "email",
        "description": "If your main Orangepay email differs from the one used for payments, enter it here.",
        "default": "",
    },
    "testmode": {
        "title": "Orangepay sandbox",
        "type": "checkbox",
        "label": "Enable Orangepay sandbox",
        "description": "Sandbox mode disables refunds.",
        "default": "yes" if settings.ORANGEPAY_TESTMODE else "no",
    },
    "debug": {
        "title": "Debug log",
        "type": "checkbox",
        "label": "Enable logging",
        "description": "Log Orangepay requests and responses. The API token is masked.",
        "default": "yes" if settings.ORANGEPAY_DEBUG else "no",
    },
    "api_url": {
        "title": "API endpoint",
        "type": "text",
        "description": "Base URL of the Orangepay API, without a trailing slash.",
        "default": settings.ORANGEPAY_API_URL,
    },
    "api_token": {
        "title": "API token",
        "type": "password",
        "description": "Bearer token issued by Orangepay.",
        "default": settings.ORANGEPAY_API_TOKEN,
    },
}

CHECKBOX_FIELDS = frozenset(k for k, f in FORM_FIELDS.items() if f["type"] == "checkbox")


def _yes(value: Optional[str]) -> bool:
    return (value or "").strip().lower() == "yes"


@dataclass(frozen=True)
class OrangepaySettings:
    enabled: bool = True
    title: str = ""
    description: str = ""
    email: str = ""
    receiver_email: str = ""
    api_url: str = ""
    api_token: str = field(default="", repr=False)
    testmode: bool = False
    debug: bool = False
    supported_currencies: FrozenSet[str] = frozenset(settings.ORANGEPAY_SUPPORTED_CURRENCIES)

    @property
    def endpoint(self) -> str:
        return self.api_url.rstrip("/")


def load_settings(
    store: Optional[SettingsStore] = None,
    supported_currencies: Optional[Iterable[str]] = None,
) -> OrangepaySettings:
    """Build a settings snapshot: stored values over form defaults."""
    values = {}
    for key, spec in FORM_FIELDS.items():
        stored = store.get_option(key) if store is not None else None
        values[key] = spec["default"] if stored is None else stored

    email = values["email"]
    currencies = settings.ORANGEPAY_SUPPORTED_CURRENCIES if supported_currencies is None else supported_currencies
    return OrangepaySettings(
        enabled=_yes(values["enabled"]),
        title=values["title"],
        description=values["description"],
        email=email,
        receiver_email=values["receiver_email"] or email,
        api_url=values["api_url"],
        api_token=values["api_token"],
        testmode=_yes(values["testmode"]),
        debug=_yes(values["debug"]),
        supported_currencies=frozenset(c.upper() for c in currencies),
    )


def clean_options(form: Mapping[str, object]) -> Dict[str, str]:
    """Validate submitted admin form values and normalize them for storage.

    Unknown keys are ignored. An unticked checkbox is absent from an HTML
    form post, so every checkbox is always written. Password fields are
    rendered blank, so a blank password means "keep the stored one".
    """
    cleaned: Dict[str, str] = {}
    for key in FORM_FIELDS:
        raw = form.get(key)
        if key in CHECKBOX_FIELDS:
            cleaned[key] = "yes" if raw in (True, "yes", "on", "1", 1) else "no"
            continue
        if raw is None:
            continue
        value = str(raw).strip()
        if FORM_FIELDS[key]["type"] == "password" and not value:
            continue
        if FORM_FIELDS[key]["type"] == "email" and value and "@" not in value:
            raise GatewayConfigError(key, f"'{value}' is not a valid email address.")
        if key == "api_url" and value:
            parsed = urlparse(value)
            if parsed.scheme not in ("http", "https") or not parsed.netloc:
                raise GatewayConfigError(key, "API endpoint must be an absolute http(s) URL.")
            value = value.rstrip("/")
        cleaned[key] = value
    return cleaned
