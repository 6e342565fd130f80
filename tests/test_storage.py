from storage import MemoryStore, ResponseCache, cache_key


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_entries_expire_lazily_after_ttl():
    clock = FakeClock()
    cache = ResponseCache(MemoryStore(clock=clock))
    cache.put("k", b"<urlset/>", 60)
    clock.now += 59
    assert cache.get("k") == b"<urlset/>"
    clock.now += 1
    assert cache.get("k") is None


def test_zero_ttl_is_not_stored():
    cache = ResponseCache(MemoryStore())
    cache.put("k", b"doc", 0)
    assert cache.get("k") is None


def test_store_without_ttl_and_delete():
    store = MemoryStore()
    store.put("token:shop", {"access_token": "x"})
    assert store.get("token:shop") == {"access_token": "x"}
    store.delete("token:shop")
    store.delete("token:shop")
    assert store.get("token:shop") is None


def test_lru_bound_evicts_least_recently_used():
    store = MemoryStore(max_entries=2)
    store.put("a", 1)
    store.put("b", 2)
    assert store.get("a") == 1
    store.put("c", 3)
    assert store.get("b") is None
    assert store.get("a") == 1
    assert store.get("c") == 3
    assert len(store) == 2


def test_cache_key_covers_every_parameter():
    base = dict(route="image.xml", shop="s.myshopify.com", host="s.fr", type="all", page=1,
                per_page=100, locale="fr", captions=1, prefer_host=1)
    assert cache_key(**base) == cache_key(**dict(reversed(list(base.items()))))
    for name, other in [("locale", "it"), ("page", 2), ("per_page", 50), ("type", "products"),
                        ("host", "s.it"), ("shop", "t.myshopify.com"), ("captions", 0), ("prefer_host", 0)]:
        assert cache_key(**{**base, name: other}) != cache_key(**base), name
