"""
Orangepay Gateway - JSON Envelope Decoder
==========================================
Safe, chainable access to nested JSON payloads.

    env = Envelope.parse(body)
    env["data"]["links"]["redirect_uri"].text()     # -> str or None
    env.path("data", "charge", "id").text()          # same thing

A missing key, a wrong container type or a JSON null at any segment
produces an absent Envelope; further lookups on it stay absent. Nothing
here raises on shape mismatches.
"""

import json
from typing import Any, Iterator, Optional, Union

Key = Union[str, int]


class Envelope:
    __slots__ = ("_value",)

    def __init__(self, value: Any = None):
        self._value = value

    @classmethod
    def parse(cls, raw: Union[str, bytes, bytearray, None]) -> "Envelope":
        """Decode a JSON document. Invalid input yields an absent Envelope."""
        if raw is None:
            return ABSENT
        try:
            return cls(json.loads(raw))
        except (ValueError, TypeError):
            return ABSENT

    # ── Navigation ──

    def __getitem__(self, key: Key) -> "Envelope":
        value = self._value
        if isinstance(value, dict) and isinstance(key, str):
            return Envelope(value.get(key))
        if isinstance(value, list) and isinstance(key, int) and -len(value) <= key < len(value):
            return Envelope(value[key])
        return ABSENT

    def path(self, *keys: Key) -> "Envelope":
        env = self
        for key in keys:
            env = env[key]
        return env

    def items(self) -> Iterator["Envelope"]:
        """Iterate list entries; anything else iterates as empty."""
        if isinstance(self._value, list):
            for entry in self._value:
                yield Envelope(entry)

    # ── Extraction ──

    @property
    def present(self) -> bool:
        return self._value is not None

    def __bool__(self) -> bool:
        return self.present

    def value(self, default: Any = None) -> Any:
        return default if self._value is None else self._value

    def mapping(self) -> Optional[dict]:
        return self._value if isinstance(self._value, dict) else None

    def text(self, default: Optional[str] = None) -> Optional[str]:
        """Scalar as string; ids may arrive as numbers. Containers and booleans are not text."""
        value = self._value
        if isinstance(value, bool) or value is None:
            return default
        if isinstance(value, (str, int, float)):
            return str(value)
        return default

    def __repr__(self):
        return f"Envelope({self._value!r})" if self.present else "Envelope(<absent>)"


ABSENT = Envelope()
