# app/services/assets.py
import logging
from typing import Optional
from urllib.parse import quote

from app.config import DDRAGON_CDN, DDRAGON_VERSIONS_URL, TTL_DDRAGON_VERSION
from app.errors import StatsError
from app.riot_client import RiotClient
from app.util.ttl_cache import StatsCaches

log = logging.getLogger("assets")
if not log.handlers:
  logging.basicConfig(level=logging.INFO, format="[DD] %(message)s")


async def latest_ddragon_version(rc: RiotClient, caches: StatsCaches) -> Optional[str]:
  """Newest Data Dragon version, or None when the CDN is unreachable."""
  hit = caches.versions.get("ddragon")
  if hit is not None:
    return hit
  try:
    r = await rc.get_public(DDRAGON_VERSIONS_URL)
    arr = r.json() if r.status_code == 200 else []
  except (StatsError, ValueError) as e:
    log.warning("ddragon version lookup failed: %s", e)
    return None
  if not isinstance(arr, list) or not arr:
    return None
  ver = str(arr[0])
  caches.versions.set("ddragon", ver, TTL_DDRAGON_VERSION)
  return ver


def champion_icon(ver: Optional[str], champion_name: str) -> Optional[str]:
  if not ver:
    return None
  return f"{DDRAGON_CDN}/{ver}/img/champion/{quote(champion_name, safe='')}.png"
