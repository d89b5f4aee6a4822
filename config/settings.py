"""
Orangepay Gateway - Centralized Configuration
==============================================
All environment variables and constants are loaded here.
No other module should call os.getenv() directly.
"""

import os
from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str = "no") -> bool:
    return os.getenv(name, default).strip().lower() in ("yes", "true", "1")


# ==========================================
# 🗄️ Database
# ==========================================
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./orangepay.db")


# ==========================================
# 💳 Orangepay Gateway (defaults, overridable from admin settings)
# ==========================================
ORANGEPAY_ENABLED = _env_flag("ORANGEPAY_ENABLED", "yes")
ORANGEPAY_TITLE = os.getenv("ORANGEPAY_TITLE", "Orangepay")
ORANGEPAY_DESCRIPTION = os.getenv(
    "ORANGEPAY_DESCRIPTION", "Pay via Orangepay; you can pay with your credit card."
)
ORANGEPAY_EMAIL = os.getenv("ORANGEPAY_EMAIL", "")
ORANGEPAY_API_URL = os.getenv("ORANGEPAY_API_URL", "https://api.orange-pay.com/v1")
ORANGEPAY_API_TOKEN = os.getenv("ORANGEPAY_API_TOKEN", "")
ORANGEPAY_TESTMODE = _env_flag("ORANGEPAY_TESTMODE")
ORANGEPAY_DEBUG = _env_flag("ORANGEPAY_DEBUG")

ORANGEPAY_SUPPORTED_CURRENCIES = (
    "EUR", "USD", "RUB", "CZK", "HUF", "PLN", "CHF", "AUD", "GBP", "THB",
)

# Remote call budgets (seconds)
CHARGE_TIMEOUT = 30
REFUND_TIMEOUT = 300


# ==========================================
# 🔧 App
# ==========================================
DEBUG = _env_flag("DEBUG", "false")
APP_VERSION = "0.1.0"

