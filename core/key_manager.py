"""
Key Manager — Round-robin API key rotation.
Distributes Gemini calls across a pool of keys to spread rate limits.

Two key sets:
  - default: loaded from .env at startup, must contain at least one key
  - custom:  set at runtime via the API, overrides default while non-empty

The rotation cursor belongs to whichever set is active and is reset to 0
every time the custom set is replaced or cleared.
"""
import threading
import time
from typing import Iterable, List

from core.errors import ConfigurationError


def _clean(keys: Iterable[str]) -> List[str]:
    return [k.strip() for k in keys if isinstance(k, str) and k.strip()]


def mask_key(key: str) -> str:
    """Show only the last 4 characters of a key in logs."""
    return f"…{key[-4:]}" if len(key) > 4 else "…"


class KeyManager:
    """Manages a pool of API keys with round-robin rotation (thread safe)."""

    def __init__(self, default_keys: Iterable[str], service_name: str = "Gemini",
                 failure_cooldown: float = 0.0, clock=time.monotonic):
        self.service_name = service_name
        self.failure_cooldown = failure_cooldown
        self._clock = clock
        self._lock = threading.Lock()

        self._default_keys = _clean(default_keys or [])
        if not self._default_keys:
            raise ConfigurationError(f"No valid default API keys provided for {service_name}")

        self._custom_keys: List[str] = []
        self._index = 0
        self._failed_at: dict[str, float] = {}
        print(f"🔑 KeyManager for {self.service_name}: {len(self._default_keys)} key(s) loaded.")

    # ──────────────────────────────────────────
    # Custom key override
    # ──────────────────────────────────────────
    def set_custom_keys(self, keys: Iterable[str]) -> None:
        """Replace the custom set. An all-blank list clears the override."""
        cleaned = _clean(keys)
        with self._lock:
            self._custom_keys = cleaned
            self._index = 0
        if cleaned:
            print(f"🔑 {self.service_name}: using {len(cleaned)} custom key(s).")
        else:
            print(f"🔑 {self.service_name}: custom keys empty, back to default keys.")

    def clear_custom_keys(self) -> None:
        with self._lock:
            self._custom_keys = []
            self._index = 0
        print(f"🔑 {self.service_name}: custom keys cleared.")

    # ──────────────────────────────────────────
    # Rotation
    # ──────────────────────────────────────────
    def get_key(self) -> str:
        """Get the next API key in rotation from the active set."""
        with self._lock:
            keys = self._active_keys()
            index = self._index
            if self.failure_cooldown > 0:
                index = self._first_healthy(keys, index)
            self._index = (index + 1) % len(keys)
            return keys[index]

    def report_failure(self, key: str) -> None:
        """Mark a key as rejected upstream. No-op unless a cooldown is configured."""
        if self.failure_cooldown <= 0:
            return
        with self._lock:
            self._failed_at[key] = self._clock()
        print(f"⚠️  {self.service_name}: key {mask_key(key)} cooling down for {self.failure_cooldown:.0f}s")

    def _first_healthy(self, keys: List[str], start: int) -> int:
        now = self._clock()
        for offset in range(len(keys)):
            candidate = (start + offset) % len(keys)
            failed_at = self._failed_at.get(keys[candidate])
            if failed_at is None or now - failed_at >= self.failure_cooldown:
                return candidate
        # Every key is cooling down — fall back to plain rotation
        return start

    def _active_keys(self) -> List[str]:
        return self._custom_keys if self._custom_keys else self._default_keys

    # ──────────────────────────────────────────
    # Observers
    # ──────────────────────────────────────────
    def get_all_keys(self) -> List[str]:
        with self._lock:
            return list(self._active_keys())

    def key_count(self) -> int:
        with self._lock:
            return len(self._active_keys())

    def is_using_custom_keys(self) -> bool:
        with self._lock:
            return bool(self._custom_keys)

    def status(self) -> dict:
        """Snapshot used by the /api/keys endpoints."""
        with self._lock:
            return {
                "isUsingCustomKeys": bool(self._custom_keys),
                "keyCount": len(self._active_keys()),
            }
