"""
Result cache for NAC Policy Intelligence
Bounded in-memory cache with per-entry expiration
"""

from collections import OrderedDict
from typing import Any, Callable, Iterator, List, Optional, Tuple
import logging
import time

logger = logging.getLogger(__name__)

class ResultCache:
    """Keyed cache that evicts the oldest entry once max_entries is reached"""

    def __init__(
        self,
        name: str,
        max_entries: int = 5000,
        ttl_seconds: Optional[int] = 3600,
        clock: Callable[[], float] = time.time
    ):
        self.name = name
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: "OrderedDict[str, dict]" = OrderedDict()
        self.evicted_count = 0

    def _is_expired(self, item: dict) -> bool:
        return item['expire_at'] is not None and self._clock() > item['expire_at']

    def set(self, key: str, value: Any, expire: Optional[int] = None) -> None:
        if expire is None:
            expire = self.ttl_seconds

        if key in self._entries:
            self._entries.move_to_end(key)

        self._entries[key] = {
            'value': value,
            'expire_at': self._clock() + expire if expire else None
        }

        while len(self._entries) > self.max_entries:
            oldest_key, _ = self._entries.popitem(last=False)
            self.evicted_count += 1
            logger.debug(f"{self.name} cache full, evicted {oldest_key}")

    def get(self, key: str) -> Optional[Any]:
        item = self._entries.get(key)
        if item is None:
            return None
        if self._is_expired(item):
            del self._entries[key]
            return None
        return item['value']

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def exists(self, key: str) -> bool:
        return self.get(key) is not None

    def items(self) -> List[Tuple[str, Any]]:
        return [
            (key, item['value'])
            for key, item in list(self._entries.items())
            if not self._is_expired(item)
        ]

    def values(self) -> List[Any]:
        return [value for _, value in self.items()]

    def purge_expired(self) -> int:
        expired = [key for key, item in list(self._entries.items()) if self._is_expired(item)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return sum(1 for item in self._entries.values() if not self._is_expired(item))

    def __iter__(self) -> Iterator[str]:
        return iter([key for key, _ in self.items()])

    def get_stats(self) -> dict:
        return {
            "name": self.name,
            "total_keys": len(self._entries),
            "max_entries": self.max_entries,
            "ttl_seconds": self.ttl_seconds,
            "evicted_keys": self.evicted_count,
            "expired_keys": len([
                k for k, v in self._entries.items() if self._is_expired(v)
            ])
        }
