import json
import math
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from app.config import (
  CACHE_SIZE_ACCOUNT,
  CACHE_SIZE_CLUSTER,
  CACHE_SIZE_MATCH,
  CACHE_SIZE_MATCH_IDS,
  CACHE_SIZE_VERSION,
)

PRUNE_FRACTION = 0.2


def key_for(key: Any) -> str:
  """Structural cache key: equal values give equal keys, whatever the identity."""
  return json.dumps(key, sort_keys=True, separators=(",", ":"), default=str)


@dataclass
class _Entry:
  value: Any
  expires_at: float
  last_accessed_at: float


class TTLCache:
  """
  Expiring memo store with approximate LRU pruning.

  - get() expires lazily and refreshes the access time on a hit.
  - set() prunes the least recently accessed 20% once the store holds
    more than max_size entries.
  No locking: concurrent requests may race on prune vs insert.
  """

  def __init__(self, max_size: int = 1000, *, clock: Callable[[], float] = time.time) -> None:
    self.max_size = max_size
    self._clock = clock
    self._m: Dict[str, _Entry] = {}

  def __len__(self) -> int:
    return len(self._m)

  def get(self, key: Any) -> Optional[Any]:
    k = key_for(key)
    e = self._m.get(k)
    if e is None:
      return None
    now = self._clock()
    if now > e.expires_at:
      self._m.pop(k, None)
      return None
    e.last_accessed_at = now
    return e.value

  def set(self, key: Any, value: Any, ttl: float) -> None:
    if len(self._m) > self.max_size:
      self._prune()
    now = self._clock()
    self._m[key_for(key)] = _Entry(value=value, expires_at=now + ttl, last_accessed_at=now)

  def _prune(self) -> None:
    oldest = sorted(self._m.items(), key=lambda kv: kv[1].last_accessed_at)
    remove = math.ceil(len(oldest) * PRUNE_FRACTION)
    for k, _e in oldest[:remove]:
      self._m.pop(k, None)


@dataclass
class StatsCaches:
  """Process-wide caches, one per call site."""
  clock: Callable[[], float] = time.time
  accounts: TTLCache = field(init=False)
  clusters: TTLCache = field(init=False)
  match_ids: TTLCache = field(init=False)
  matches: TTLCache = field(init=False)
  versions: TTLCache = field(init=False)

  def __post_init__(self) -> None:
    self.accounts = TTLCache(CACHE_SIZE_ACCOUNT, clock=self.clock)
    self.clusters = TTLCache(CACHE_SIZE_CLUSTER, clock=self.clock)
    self.match_ids = TTLCache(CACHE_SIZE_MATCH_IDS, clock=self.clock)
    self.matches = TTLCache(CACHE_SIZE_MATCH, clock=self.clock)
    self.versions = TTLCache(CACHE_SIZE_VERSION, clock=self.clock)
