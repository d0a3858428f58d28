# app/services/pipeline.py
from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import AsyncIterator, Callable, List, Optional, Tuple

from app.errors import ServerMisconfigured, StatsError
from app.models import (
  Account,
  DoneEvent,
  ErrorEvent,
  IdsEvent,
  MetaEvent,
  PhaseEvent,
  ProgressEvent,
  StatsQuery,
  StreamEvent,
  StreamQuery,
)
from app.riot_client import RiotClient
from app.services.account import resolve_account, resolve_cluster
from app.services.aggregator import (
  SeasonAggregator,
  by_patch,
  by_split,
  date_window,
  filter_patch,
  year_window,
)
from app.services.assets import champion_icon, latest_ddragon_version
from app.services.insights import analyze_season
from app.services.match_index import list_match_ids
from app.services.slices import fetch_slices, iter_slice_chunks
from app.util.ttl_cache import StatsCaches

log = logging.getLogger("pipeline")
if not log.handlers:
  h = logging.StreamHandler()
  h.setFormatter(logging.Formatter("[PL] %(levelname)s: %(message)s"))
  log.addHandler(h)
  log.setLevel(logging.INFO)

ClientFactory = Callable[[], RiotClient]

SNAPSHOT_LANES = 5

# ----------------------------
# Shared steps
# ----------------------------
def _require_key(rc: RiotClient) -> None:
  if not rc.api_key:
    raise ServerMisconfigured("RIOT_API_KEY missing")

def _mask_puuid(puuid: str) -> str:
  return puuid[:8] + "…"

def _window(query: StreamQuery) -> Tuple[int, int]:
  if isinstance(query, StatsQuery) and query.mode == "custom":
    return date_window(query.from_, query.to)
  return year_window(query.year)

async def _account_and_cluster(rc: RiotClient, caches: StatsCaches, query: StreamQuery) -> Tuple[Account, str]:
  account = await resolve_account(rc, caches, query.riotId)
  cluster = query.cluster or await resolve_cluster(rc, caches, account.puuid, account.tagLine)
  return account, cluster

def _with_icons(rows: List[dict], ver: Optional[str]) -> None:
  for r in rows:
    r["icon"] = champion_icon(ver, r["name"])

def _result(
    query: StreamQuery,
    account: Account,
    cluster: str,
    queues: List[int],
    agg: SeasonAggregator,
    ver: Optional[str],
) -> dict:
  snap = agg.snapshot()
  _with_icons(snap["champions"], ver)  # top lists share these row dicts
  meta = {
    "riotId": account.riot_id,
    "puuid": _mask_puuid(account.puuid),
    "cluster": cluster,
    "year": query.year,
    "queues": queues,
    "totalGames": agg.total_games,
    "generatedAt": datetime.now(timezone.utc).isoformat(),
  }
  if isinstance(query, StatsQuery):
    meta["mode"] = query.mode
    if query.mode == "patch":
      meta["patch"] = query.patch
    if query.mode == "custom":
      meta["from"] = query.from_.isoformat()
      meta["to"] = query.to.isoformat()
  insights = analyze_season(agg.total_games, snap["champions"], snap["lanes"])
  return {
    "meta": meta,
    "champions": snap["champions"],
    "lanes": snap["lanes"],
    "topUsed": snap["topUsed"],
    "topWinRate": snap["topWinRate"],
    "bestLane": snap["bestLane"],
    "insights": insights.model_dump(),
  }

# ----------------------------
# Whole result
# ----------------------------
async def build_stats(query: StatsQuery, client_factory: ClientFactory, caches: StatsCaches) -> dict:
  async with client_factory() as rc:
    _require_key(rc)
    queues = query.queue_ids()
    start, end = _window(query)

    account, cluster = await _account_and_cluster(rc, caches, query)
    ids = await list_match_ids(rc, caches, cluster, account.puuid, start, end, queues, query.limit)
    slices = await fetch_slices(rc, caches, cluster, ids, account.puuid)
    log.info("%s on %s: %d ids, %d slices", account.riot_id, cluster, len(ids), len(slices))

    if query.mode == "patch":
      slices = filter_patch(slices, query.patch)
    agg = SeasonAggregator().extend(slices)
    ver = await latest_ddragon_version(rc, caches)

  out = _result(query, account, cluster, queues, agg, ver)
  if query.mode == "patches":
    out["byPatch"] = by_patch(slices, query.patchCount)
  elif query.mode == "splits":
    out["bySplit"] = by_split(slices, query.year)
  return out

# ----------------------------
# Progress stream
# ----------------------------
def _light_snapshot(account: Account, agg: SeasonAggregator, ver: Optional[str], started: float) -> dict:
  snap = agg.snapshot()
  _with_icons(snap["champions"], ver)
  return {
    "meta": {"riotId": account.riot_id},
    "champions": snap["topUsed"],
    "lanes": snap["lanes"][:SNAPSHOT_LANES],
    "topWinRate": snap["topWinRate"],
    "elapsedMs": int((time.monotonic() - started) * 1000),
  }

async def stream_stats(
    query: StreamQuery, client_factory: ClientFactory, caches: StatsCaches
) -> AsyncIterator[StreamEvent]:
  """
  started -> account_lookup -> listing_ids -> retrieving* -> done | error.
  Exactly one of DoneEvent / ErrorEvent is yielded, always last.
  """
  try:
    async with client_factory() as rc:
      _require_key(rc)
      queues = query.queue_ids()
      start, end = _window(query)

      yield PhaseEvent(phase="account_lookup")
      account, cluster = await _account_and_cluster(rc, caches, query)
      yield MetaEvent(meta={
        "riotId": account.riot_id,
        "cluster": cluster,
        "year": query.year,
        "queues": queues,
      })

      yield PhaseEvent(phase="listing_ids")
      ids = await list_match_ids(rc, caches, cluster, account.puuid, start, end, queues, query.limit)
      yield IdsEvent(total=len(ids))

      ver = await latest_ddragon_version(rc, caches)
      agg = SeasonAggregator()
      started = time.monotonic()
      async for processed, slices in iter_slice_chunks(rc, caches, cluster, ids, account.puuid):
        agg.extend(slices)
        yield ProgressEvent(
            processed=processed,
            total=len(ids),
            snapshot=_light_snapshot(account, agg, ver, started),
        )

    yield DoneEvent(result=_result(query, account, cluster, queues, agg, ver))
  except StatsError as e:
    log.warning("stream failed: %s (%s)", e.code, e.message)
    yield ErrorEvent(error=e.code, message=e.message)
  except Exception as e:
    log.exception("stream failed unexpectedly")
    yield ErrorEvent(error="unknown_error", message=str(e))
