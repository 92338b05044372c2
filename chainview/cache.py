import asyncio
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Hashable, Optional


@dataclass
class CacheEntry:
    value: Any
    stored_at: float
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class TTLCache:
    """In-memory TTL cache, least recently used entries evicted first.

    Keys are any hashable (price ids, ``(price_id, window)`` tuples). The
    clock is injectable so expiry can be driven from tests.
    """

    def __init__(
        self,
        default_ttl: float = 300,
        max_size: int = 1000,
        clock: Callable[[], float] = time.time,
    ):
        self.default_ttl = default_ttl
        self.max_size = max_size
        self._clock = clock
        self._entries: "OrderedDict[Hashable, CacheEntry]" = OrderedDict()
        self._lock = asyncio.Lock()

    async def get(self, key: Hashable) -> Optional[Any]:
        entry = await self.get_entry(key)
        return None if entry is None else entry.value

    async def get_entry(self, key: Hashable) -> Optional[CacheEntry]:
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.is_expired(self._clock()):
                del self._entries[key]
                return None
            self._entries.move_to_end(key)
            return entry

    async def set(self, key: Hashable, value: Any, ttl: Optional[float] = None) -> None:
        lifetime = self.default_ttl if ttl is None else ttl
        async with self._lock:
            now = self._clock()
            self._entries[key] = CacheEntry(value=value, stored_at=now, expires_at=now + lifetime)
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_size:
                self._entries.popitem(last=False)

    async def delete(self, key: Hashable) -> None:
        async with self._lock:
            self._entries.pop(key, None)

    async def clear(self) -> None:
        async with self._lock:
            self._entries.clear()

    def size(self) -> int:
        return len(self._entries)
