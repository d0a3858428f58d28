# app/services/account.py
import logging
from typing import Optional, Tuple

from app.config import CLUSTERS, DEFAULT_CLUSTER, TTL_ACCOUNT, TTL_CLUSTER
from app.errors import (
  InvalidIdentifier,
  NotFound,
  ResolutionFailed,
  StatsError,
  Unauthorized,
)
from app.models import Account
from app.riot_client import RiotClient
from app.util.ttl_cache import StatsCaches

log = logging.getLogger("account")
if not log.handlers:
  h = logging.StreamHandler()
  h.setFormatter(logging.Formatter("[ACC] %(levelname)s: %(message)s"))
  log.addHandler(h)
  log.setLevel(logging.INFO)

# ----------------------------
# Tag line -> cluster
# ----------------------------
TAG_TO_CLUSTER = {
  **{t: "americas" for t in ("NA1", "BR1", "LA1", "LA2", "OC1", "NA", "BR", "LAN", "LAS", "OCE")},
  **{t: "europe" for t in ("EUW1", "EUN1", "TR1", "RU", "EUW", "EUNE", "TR")},
  **{t: "asia" for t in ("JP1", "KR", "SG2", "PH2", "TW2", "TH2", "VN2", "JP", "KR1")},
}


def split_riot_id(identifier: str) -> Tuple[str, str]:
  """'Name#Tag' -> ('Name', 'Tag'); both halves must be non-empty."""
  name, sep, tag = (identifier or "").replace("%23", "#").partition("#")
  if not sep or not name.strip() or not tag.strip():
    raise InvalidIdentifier("riotId must be Name#TAG (e.g., Hide on bush#KR1)")
  return name, tag


def cluster_from_tag(tag: Optional[str]) -> Optional[str]:
  if not tag:
    return None
  return TAG_TO_CLUSTER.get(tag.strip().upper())


async def resolve_account(rc: RiotClient, caches: StatsCaches, identifier: str) -> Account:
  name, tag = split_riot_id(identifier)
  cache_key = {"name": name, "tag": tag}
  hit = caches.accounts.get(cache_key)
  if hit is not None:
    return hit

  saw_not_found = False
  for cluster in CLUSTERS:
    try:
      r = await rc.account_by_riot_id(cluster, name, tag)
    except StatsError as e:
      log.warning("account lookup on %s failed: %s", cluster, e)
      continue
    if r.status_code == 200:
      acc = Account.model_validate(r.json())
      caches.accounts.set(cache_key, acc, TTL_ACCOUNT)
      return acc
    if r.status_code in (401, 403):
      raise Unauthorized(f"Riot API rejected the credential ({r.status_code})")
    if r.status_code == 404:
      saw_not_found = True
      continue
    log.warning("account lookup on %s returned %s", cluster, r.status_code)

  if saw_not_found:
    raise NotFound(f"No account for {name}#{tag}")
  raise ResolutionFailed(f"Could not resolve {name}#{tag} on any cluster")


async def detect_cluster_by_puuid(rc: RiotClient, caches: StatsCaches, puuid: str) -> Optional[str]:
  ck = {"t": "cluster", "puuid": puuid}
  hit = caches.clusters.get(ck)
  if hit is not None:
    return hit
  for cluster in CLUSTERS:
    try:
      r = await rc.match_ids(cluster, puuid, start=0, count=1)
    except StatsError:
      continue
    if r.status_code != 200:
      continue
    try:
      data = r.json()
    except ValueError:
      continue
    if isinstance(data, list) and data:
      caches.clusters.set(ck, cluster, TTL_CLUSTER)
      return cluster
  return None


async def resolve_cluster(rc: RiotClient, caches: StatsCaches, puuid: str, tag: Optional[str] = None) -> str:
  """
  Static tag table first, live probe second, DEFAULT_CLUSTER last.
  Never raises: detection is best effort.
  """
  guess = cluster_from_tag(tag)
  if guess:
    return guess
  found = await detect_cluster_by_puuid(rc, caches, puuid)
  if found:
    return found
  log.info("cluster detection failed for %s…, defaulting to %s", puuid[:8], DEFAULT_CLUSTER)
  return DEFAULT_CLUSTER
