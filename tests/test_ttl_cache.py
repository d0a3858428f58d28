from app.util.ttl_cache import StatsCaches, TTLCache, key_for
from tests.fakes import FakeClock


def test_get_miss_and_hit() -> None:
  c = TTLCache(clock=FakeClock())
  assert c.get("k") is None
  c.set("k", 1, ttl=10)
  assert c.get("k") == 1


def test_lazy_expiry_deletes_entry() -> None:
  clock = FakeClock()
  c = TTLCache(clock=clock)
  c.set("k", "v", ttl=60)
  clock.advance(60)
  assert c.get("k") == "v"  # still valid at the boundary
  clock.advance(1)
  assert c.get("k") is None
  assert len(c) == 0


def test_structural_keys() -> None:
  c = TTLCache(clock=FakeClock())
  c.set({"cluster": "asia", "queues": [420, 440], "limit": 300}, "ids", ttl=10)
  assert c.get({"limit": 300, "queues": [420, 440], "cluster": "asia"}) == "ids"
  assert key_for(("a", 1)) == key_for(["a", 1])


def test_prune_drops_least_recently_accessed_fifth() -> None:
  clock = FakeClock()
  c = TTLCache(max_size=10, clock=clock)
  for i in range(11):
    c.set(i, i, ttl=1000)
    clock.advance(1)
  # touch the two oldest so they survive
  c.get(0)
  c.get(1)
  clock.advance(1)
  c.set("new", "x", ttl=1000)  # 11 > 10 -> prune ceil(11 * 0.2) = 3
  assert len(c) == 9
  assert c.get(0) == 0 and c.get(1) == 1
  for gone in (2, 3, 4):
    assert c.get(gone) is None
  assert c.get("new") == "x"


def test_no_prune_at_capacity() -> None:
  c = TTLCache(max_size=3, clock=FakeClock())
  for i in range(4):
    c.set(i, i, ttl=10)
  assert len(c) == 4


def test_stats_caches_share_clock() -> None:
  clock = FakeClock()
  caches = StatsCaches(clock=clock)
  caches.accounts.set("a", 1, ttl=5)
  caches.matches.set("m", 2, ttl=5)
  clock.advance(6)
  assert caches.accounts.get("a") is None
  assert caches.matches.get("m") is None
