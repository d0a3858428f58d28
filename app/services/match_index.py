# app/services/match_index.py
from typing import Iterable, List, Optional

from app.config import MATCH_IDS_PAGE_SIZE, MATCH_IDS_SAFETY_CAP, TTL_MATCH_IDS
from app.errors import RateLimited, Unauthorized, UpstreamUnavailable
from app.riot_client import RiotClient
from app.util.ttl_cache import StatsCaches


def _raise_for_listing(status: int) -> None:
  if status in (401, 403):
    raise Unauthorized(f"match listing rejected the credential ({status})")
  if status == 429:
    raise RateLimited("match listing still rate limited after retries")
  raise UpstreamUnavailable(f"match listing failed ({status})")


async def list_match_ids(
    rc: RiotClient,
    caches: StatsCaches,
    cluster: str,
    puuid: str,
    start_time: int,
    end_time: int,
    queues: Iterable[int] = (),
    limit: Optional[int] = None,
) -> List[str]:
  """
  Page through match-v5 ids (newest first) inside [start_time, end_time].
  Stops at `limit`, on a short page, or past the safety cap.
  """
  qs = sorted(set(queues))
  ck = {
    "cluster": cluster, "puuid": puuid, "start": start_time, "end": end_time,
    "queues": qs, "limit": limit,
  }
  hit = caches.match_ids.get(ck)
  if hit is not None:
    return list(hit)

  ids: List[str] = []
  start = 0
  while True:
    r = await rc.match_ids(
        cluster, puuid,
        start=start, count=MATCH_IDS_PAGE_SIZE,
        start_time=start_time, end_time=end_time, queues=qs,
    )
    if r.status_code != 200:
      _raise_for_listing(r.status_code)
    batch = r.json()
    ids.extend(batch)
    if limit is not None and len(ids) >= limit:
      break
    if len(batch) < MATCH_IDS_PAGE_SIZE:
      break
    start += MATCH_IDS_PAGE_SIZE
    if len(ids) >= MATCH_IDS_SAFETY_CAP:
      break

  out = ids[:limit] if limit is not None else ids
  caches.match_ids.set(ck, out, TTL_MATCH_IDS)
  return list(out)
