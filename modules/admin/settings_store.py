"""
Admin Module - Settings Store
===============================
Persists gateway options as SystemSetting rows under a key prefix
("orangepay_title", "orangepay_api_token", ...).
"""

import logging
from typing import Callable, Mapping, Optional

from sqlalchemy.orm import Session

from config.database import SessionLocal
from modules.admin.models import SystemSetting

logger = logging.getLogger("orangepay.settings")


class DbSettingsStore:

    def __init__(self, prefix: str = "orangepay_", session_factory: Callable[[], Session] = SessionLocal):
        self.prefix = prefix
        self._session_factory = session_factory

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def get_option(self, key: str, default: Optional[str] = None) -> Optional[str]:
        db = self._session_factory()
        try:
            setting = db.query(SystemSetting).filter(SystemSetting.key == self._key(key)).first()
            return setting.value if setting else default
        finally:
            db.close()

    def update_options(self, options: Mapping[str, str]) -> None:
        db = self._session_factory()
        try:
            for key, value in options.items():
                setting = db.query(SystemSetting).filter(SystemSetting.key == self._key(key)).first()
                if setting:
                    setting.value = value
                else:
                    db.add(SystemSetting(key=self._key(key), value=value))
            db.commit()
            logger.info(f"Saved {len(options)} option(s) under '{self.prefix}'")
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()
