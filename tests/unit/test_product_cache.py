import pytest

from flashhold.core.product_cache import ProductCache


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def view(product_id, reserved=0):
    return {"id": product_id, "name": "Mobile Phone", "stock": 10, "reserved": reserved}


def test_entry_expires_after_ttl():
    clock = FakeClock()
    cache = ProductCache(ttl_seconds=10, max_size=10, clock=clock)
    cache.set(1, view(1))

    clock.now += 9
    assert cache.get(1)["id"] == 1

    clock.now += 2
    assert cache.get(1) is None
    assert cache.get_stats()["size"] == 0


def test_least_recently_used_entry_is_evicted():
    cache = ProductCache(ttl_seconds=10, max_size=2, clock=FakeClock())
    cache.set(1, view(1))
    cache.set(2, view(2))
    cache.get(1)  # 2 is now the oldest
    cache.set(3, view(3))

    assert cache.get(2) is None
    assert cache.get(1) is not None
    assert cache.get(3) is not None
    assert cache.get_stats()["evictions"] == 1


def test_invalidate_drops_entry():
    cache = ProductCache(ttl_seconds=10, max_size=10, clock=FakeClock())
    cache.set(1, view(1))

    assert cache.invalidate(1) is True
    assert cache.invalidate(1) is False
    assert cache.get(1) is None
    assert cache.get_stats()["invalidations"] == 2


def test_returned_snapshot_is_a_copy():
    cache = ProductCache(ttl_seconds=10, max_size=10, clock=FakeClock())
    cache.set(1, view(1))

    cache.get(1)["reserved"] = 99

    assert cache.get(1)["reserved"] == 0


@pytest.mark.anyio
async def test_get_or_fetch_caches_hits_but_not_misses():
    cache = ProductCache(ttl_seconds=10, max_size=10, clock=FakeClock())
    calls = []

    async def load(product_id):
        calls.append(product_id)
        return view(product_id) if product_id == 1 else None

    assert (await cache.get_or_fetch(1, load))["id"] == 1
    assert (await cache.get_or_fetch(1, load))["id"] == 1
    assert await cache.get_or_fetch(2, load) is None
    assert await cache.get_or_fetch(2, load) is None

    assert calls == [1, 2, 2]
    stats = cache.get_stats()
    assert stats["hits"] == 1
    assert stats["misses"] == 3
