import threading
from typing import Dict, List, Optional


class APIKeyManager:
    """
    Per-provider pools of API keys.

    Each environment variable may hold several comma-separated keys. A
    provider whose key is refused advances its own pool only; the other
    providers keep their active key.
    """

    def __init__(self):
        self._keys: Dict[str, List[str]] = {}
        self._active: Dict[str, int] = {}
        self._lock = threading.Lock()

    def register(self, name: str, raw_value: Optional[str]) -> None:
        """
        Register a provider's keys.

        Args:
            name: Pool identifier (e.g., 'RAPIDAPI')
            raw_value: Raw environment string (e.g., 'key1, key2'); None or '' means no keys
        """
        keys = [k.strip() for k in (raw_value or "").split(',') if k.strip()]
        with self._lock:
            self._keys[name] = keys
            self._active[name] = 0

    def get(self, name: str) -> Optional[str]:
        """Active key of a pool, or None when the pool is empty."""
        keys = self._keys.get(name) or []
        if not keys:
            return None
        return keys[self._active.get(name, 0) % len(keys)]

    def rotate(self, name: str, rejected: Optional[str] = None) -> bool:
        """
        Move a pool past a refused key.

        Several threads can report the same refused key at once; only the
        first report advances the pool.

        Returns:
            False when the pool has no other key to offer
        """
        with self._lock:
            keys = self._keys.get(name) or []
            if len(keys) < 2:
                return False
            current = self._active.get(name, 0)
            if rejected is None or keys[current % len(keys)] == rejected:
                self._active[name] = current + 1
            return True

    def has_key(self, name: str) -> bool:
        return bool(self._keys.get(name))

    def key_count(self, name: str) -> int:
        return len(self._keys.get(name) or [])
