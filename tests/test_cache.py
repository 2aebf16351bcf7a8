from property_search.cache import NAMESPACE_TTLS, InMemoryCache, default_ttl


def test_set_get_and_expiry(cache, fake_clock):
    cache.set("k", {"v": 1}, ttl=10, namespace="property_search")
    assert cache.get("k", "property_search") == {"v": 1}
    fake_clock.advance(9.9)
    assert cache.get("k", "property_search") == {"v": 1}
    fake_clock.advance(0.2)
    assert cache.get("k", "property_search") is None


def test_namespaces_do_not_collide(cache):
    cache.set("k", "a", namespace="autocomplete")
    cache.set("k", "b", namespace="property_detail")
    assert cache.get("k", "autocomplete") == "a"
    assert cache.get("k", "property_detail") == "b"
    assert cache.get("k") is None


def test_zero_ttl_uses_namespace_default(cache, fake_clock):
    cache.set("k", "v", ttl=0, namespace="autocomplete")
    fake_clock.advance(NAMESPACE_TTLS["autocomplete"] - 1)
    assert cache.get("k", "autocomplete") == "v"
    fake_clock.advance(2)
    assert cache.get("k", "autocomplete") is None


def test_default_ttls():
    assert default_ttl("property_search") == 120
    assert default_ttl("property_detail") == 3600
    assert default_ttl("geocode") == 30 * 24 * 3600
    assert default_ttl("autocomplete") == 300
    assert default_ttl("something_else") == 3600


def test_get_or_compute_computes_once_within_ttl(cache, fake_clock):
    calls = []

    def compute():
        calls.append(1)
        return len(calls)

    assert cache.get_or_compute("k", 120, "property_search", compute) == 1
    assert cache.get_or_compute("k", 120, "property_search", compute) == 1
    fake_clock.advance(121)
    assert cache.get_or_compute("k", 120, "property_search", compute) == 2
    assert len(calls) == 2


def test_none_results_are_not_cached(cache):
    calls = []

    def compute():
        calls.append(1)
        return None

    assert cache.get_or_compute("missing", 60, "property_detail", compute) is None
    assert cache.get_or_compute("missing", 60, "property_detail", compute) is None
    assert len(calls) == 2


def test_forget_and_invalidate_namespace(cache):
    cache.set("a", 1, namespace="property_search")
    cache.set("b", 2, namespace="property_search")
    cache.set("c", 3, namespace="autocomplete")
    assert cache.forget("a", "property_search") is True
    assert cache.forget("a", "property_search") is False
    assert cache.invalidate_namespace("property_search") == 1
    assert cache.get("b", "property_search") is None
    assert cache.get("c", "autocomplete") == 3


def test_eviction_drops_soonest_expiring(fake_clock):
    cache = InMemoryCache(max_entries=2, clock=fake_clock)
    cache.set("long", 1, ttl=1000)
    cache.set("short", 2, ttl=10)
    cache.set("new", 3, ttl=500)
    assert cache.get("short") is None
    assert cache.get("long") == 1
    assert cache.get("new") == 3
    assert cache.stats()["evictions"] == 1


def test_disabled_cache_passes_through(fake_clock):
    cache = InMemoryCache(enabled=False, clock=fake_clock)
    calls = []
    for _ in range(3):
        cache.get_or_compute("k", 60, "default", lambda: calls.append(1) or "v")
    assert len(calls) == 3
    assert cache.set("k", "v") is False


def test_stats_and_flush(cache):
    cache.set("k", "v")
    cache.get("k")
    cache.get("k")
    cache.get("nope")
    stats = cache.stats()
    assert stats["hits"] == 2
    assert stats["misses"] == 1
    assert stats["sets"] == 1
    assert stats["hit_ratio"] == round(2 / 3, 4)
    cache.flush()
    assert cache.get("k") is None
    assert cache.stats()["hits"] == 0
