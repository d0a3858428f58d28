import os
from dotenv import load_dotenv

load_dotenv()

def riot_api_key() -> str:
  # read per request so a missing key is a 500 for that request, not an import crash
  return (os.getenv("RIOT_API_KEY") or "").strip()

def _env_int(name: str, default: int) -> int:
  try:
    return int((os.getenv(name) or "").strip())
  except ValueError:
    return default

#regional routing hosts for account-v1 / match-v5, in probe order
CLUSTERS = ("americas", "asia", "europe")
DEFAULT_CLUSTER = "asia"

REGIONAL = {c: f"{c}.api.riotgames.com" for c in CLUSTERS}

DDRAGON_VERSIONS_URL = "https://ddragon.leagueoflegends.com/api/versions.json"
DDRAGON_CDN = "https://ddragon.leagueoflegends.com/cdn"

#UI-game mode
QUEUES = {
  "solo": [420],
  "flex": [440],
  "normal": [400, 430],
  "aram": [450],
  "clash": [700],
}

# comma separated queue ids used when the request has none
DEFAULT_QUEUES = os.getenv("DEFAULT_QUEUES", "")

# upstream client
RIOT_TIMEOUT_SEC = float(_env_int("RIOT_TIMEOUT_SEC", 10))
RIOT_MAX_RETRIES = _env_int("RIOT_MAX_RETRIES", 5)

# retrieval
SLICE_CHUNK_SIZE = _env_int("SLICE_CHUNK_SIZE", 8)
MATCH_IDS_PAGE_SIZE = 100
MATCH_IDS_SAFETY_CAP = 3000

# pipeline reference time zone (hours east of UTC)
STATS_TZ_OFFSET_HOURS = _env_int("STATS_TZ_OFFSET_HOURS", 9)

# cache TTLs (seconds)
TTL_ACCOUNT = 15 * 60
TTL_CLUSTER = 30 * 60
TTL_MATCH_IDS = 10 * 60
TTL_MATCH = 30 * 60
TTL_DDRAGON_VERSION = 60 * 60

# cache capacities (entries)
CACHE_SIZE_ACCOUNT = 200
CACHE_SIZE_CLUSTER = 500
CACHE_SIZE_MATCH_IDS = 500
CACHE_SIZE_MATCH = 2000
CACHE_SIZE_VERSION = 8

# year thirds: (first month, last month), both inclusive
SPLITS = {
  "s1": (1, 4),
  "s2": (5, 8),
  "s3": (9, 12),
}

SPLIT_LABELS = {
  "s1": "Split 1 (Jan-Apr)",
  "s2": "Split 2 (May-Aug)",
  "s3": "Split 3 (Sep-Dec)",
}
