# app/services/slices.py
import asyncio
import logging
import re
from typing import AsyncIterator, List, Optional, Sequence, Tuple

from app.config import SLICE_CHUNK_SIZE, TTL_MATCH
from app.errors import StatsError
from app.models import UNKNOWN_LANE, PlayerSlice
from app.riot_client import RiotClient
from app.util.ttl_cache import StatsCaches

log = logging.getLogger("slices")
if not log.handlers:
  h = logging.StreamHandler()
  h.setFormatter(logging.Formatter("[SL] %(levelname)s: %(message)s"))
  log.addHandler(h)
  log.setLevel(logging.INFO)


def patch_from_version(game_version: Optional[str]) -> Optional[str]:
  """'14.20.625.1234' -> '14.20'; None when no MAJOR.MINOR is present."""
  nums = re.findall(r"\d+", game_version or "")
  if len(nums) >= 2:
    return f"{int(nums[0])}.{int(nums[1])}"
  return None


def normalize_lane(p: dict) -> str:
  pos = (p.get("teamPosition") or p.get("individualPosition") or "").strip().upper()
  return pos or UNKNOWN_LANE


def slice_from_match(data: dict, puuid: str) -> Optional[PlayerSlice]:
  info = data.get("info") if isinstance(data, dict) else None
  if not isinstance(info, dict):
    return None
  participants = info.get("participants") or []
  you = next((p for p in participants if isinstance(p, dict) and p.get("puuid") == puuid), None)
  if not you:
    return None
  ts = info.get("gameStartTimestamp") or info.get("gameCreation")
  return PlayerSlice(
      championName=you.get("championName") or "Unknown",
      win=bool(you.get("win")),
      lane=normalize_lane(you),
      patch=patch_from_version(info.get("gameVersion")),
      timestamp=int(ts) if ts else None,
  )


async def fetch_slice(
    rc: RiotClient, caches: StatsCaches, cluster: str, match_id: str, puuid: str
) -> Optional[PlayerSlice]:
  ck = {"matchId": match_id, "puuid": puuid}
  hit = caches.matches.get(ck)
  if hit is not None:
    return hit
  try:
    r = await rc.match(cluster, match_id)
  except StatsError as e:
    log.warning("match %s dropped: %s", match_id, e)
    return None
  if r.status_code != 200:
    log.info("match %s dropped: HTTP %s", match_id, r.status_code)
    return None
  try:
    s = slice_from_match(r.json(), puuid)
  except (ValueError, TypeError) as e:
    log.warning("match %s dropped: bad payload (%s)", match_id, e)
    return None
  if s is not None:
    caches.matches.set(ck, s, TTL_MATCH)
  return s


async def iter_slice_chunks(
    rc: RiotClient,
    caches: StatsCaches,
    cluster: str,
    match_ids: Sequence[str],
    puuid: str,
    *,
    chunk_size: int = SLICE_CHUNK_SIZE,
) -> AsyncIterator[Tuple[int, List[PlayerSlice]]]:
  """
  Yield (processed, slices) once per chunk.
  Chunks run in id order; ids inside a chunk run concurrently.
  """
  total = len(match_ids)
  for i in range(0, total, chunk_size):
    chunk = match_ids[i:i + chunk_size]
    results = await asyncio.gather(
        *[fetch_slice(rc, caches, cluster, mid, puuid) for mid in chunk],
        return_exceptions=True
    )
    slices: List[PlayerSlice] = []
    for mid, s in zip(chunk, results):
      if isinstance(s, Exception):
        log.warning("match %s dropped: %r", mid, s)
        continue
      if isinstance(s, BaseException):
        raise s
      if s is not None:
        slices.append(s)
    yield min(i + chunk_size, total), slices


async def fetch_slices(
    rc: RiotClient,
    caches: StatsCaches,
    cluster: str,
    match_ids: Sequence[str],
    puuid: str,
    *,
    chunk_size: int = SLICE_CHUNK_SIZE,
) -> List[PlayerSlice]:
  out: List[PlayerSlice] = []
  async for _processed, slices in iter_slice_chunks(rc, caches, cluster, match_ids, puuid, chunk_size=chunk_size):
    out.extend(slices)
  return out
