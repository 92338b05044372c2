import pytest

from chainview.cache import TTLCache


class _Clock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


@pytest.mark.asyncio
async def test_entries_expire_after_ttl():
    clock = _Clock()
    cache = TTLCache(default_ttl=15, clock=clock)

    await cache.set("ethereum", 2000)
    clock.now = 14.9
    assert await cache.get("ethereum") == 2000

    clock.now = 15
    assert await cache.get("ethereum") is None
    assert cache.size() == 0


@pytest.mark.asyncio
async def test_per_entry_ttl_and_tuple_keys():
    clock = _Clock()
    cache = TTLCache(default_ttl=15, clock=clock)

    await cache.set(("ethereum", "7d"), 1800, ttl=300)
    clock.now = 200
    entry = await cache.get_entry(("ethereum", "7d"))

    assert entry.value == 1800
    assert entry.stored_at == 0
    assert entry.expires_at == 300


@pytest.mark.asyncio
async def test_least_recently_used_entry_is_evicted():
    cache = TTLCache(default_ttl=60, max_size=2, clock=_Clock())

    await cache.set("a", 1)
    await cache.set("b", 2)
    await cache.get("a")
    await cache.set("c", 3)

    assert await cache.get("a") == 1
    assert await cache.get("b") is None
    assert await cache.get("c") == 3


@pytest.mark.asyncio
async def test_delete_and_clear():
    cache = TTLCache(clock=_Clock())
    await cache.set("a", 1)
    await cache.set("b", 2)

    await cache.delete("a")
    assert await cache.get("a") is None

    await cache.clear()
    assert cache.size() == 0
