import math
import re
from collections import defaultdict
from datetime import date, datetime, timedelta, timezone
from typing import Dict, Hashable, Iterable, List, Mapping, Optional, Tuple, TypeVar

from app.config import SPLIT_LABELS, SPLITS, STATS_TZ_OFFSET_HOURS
from app.models import UNKNOWN_LANE, PlayerSlice

K = TypeVar("K", bound=Hashable)

# ----------------------------
# Thresholds
# ----------------------------
MIN_GAMES_FOR_WINRATE = 5
MIN_GAMES_FOR_BEST_LANE = 10
TOP_N = 10
TOP_N_BUCKET = 5
DEFAULT_PATCH_COUNT = 12

REFERENCE_TZ = timezone(timedelta(hours=STATS_TZ_OFFSET_HOURS))

# ----------------------------
# Helpers
# ----------------------------
def win_rate(wins: int, games: int) -> float:
  """Percent with one decimal, half rounded up: 2/3 -> 66.7, 0 games -> 0."""
  if games <= 0:
    return 0.0
  return math.floor(wins / games * 1000 + 0.5) / 10

def argmax(hist: Mapping[K, int]) -> Optional[K]:
  """
  Key with the highest count. Ties go to the key inserted first,
  so the result does not depend on incidental sort stability.
  """
  best: Optional[K] = None
  best_n = -1
  for k, n in hist.items():
    if n > best_n:
      best, best_n = k, n
  return best

def patch_tuple(game_version: str) -> Tuple[int, int]:
  """Extract first two integers from version string (robust)."""
  nums = re.findall(r"\d+", game_version or "")
  if len(nums) >= 2:
    return int(nums[0]), int(nums[1])
  return (0, 0)

def year_window(year: int, tz: timezone = REFERENCE_TZ) -> Tuple[int, int]:
  """Epoch seconds for Jan 1 00:00:00 .. Dec 31 23:59:59 in tz."""
  return date_window(date(year, 1, 1), date(year, 12, 31), tz)

def date_window(start: date, end: date, tz: timezone = REFERENCE_TZ) -> Tuple[int, int]:
  """Inclusive day range -> epoch seconds, end of day inclusive."""
  lo = datetime(start.year, start.month, start.day, tzinfo=tz)
  hi = datetime(end.year, end.month, end.day, 23, 59, 59, tzinfo=tz)
  return int(lo.timestamp()), int(hi.timestamp())

def split_ranges(year: int) -> List[Tuple[str, date, date]]:
  out = []
  for key, (m_lo, m_hi) in SPLITS.items():
    lo = date(year, m_lo, 1)
    hi = (date(year + 1, 1, 1) if m_hi == 12 else date(year, m_hi + 1, 1)) - timedelta(days=1)
    out.append((key, lo, hi))
  return out

def split_of(ts_ms: Optional[int], year: int, tz: timezone = REFERENCE_TZ) -> Optional[str]:
  if ts_ms is None:
    return None
  d = datetime.fromtimestamp(ts_ms / 1000, tz=tz).date()
  if d.year != year:
    return None
  for key, lo, hi in split_ranges(year):
    if lo <= d <= hi:
      return key
  return None

# ----------------------------
# Incremental tables
# ----------------------------
class SeasonAggregator:
  """
  Running champion / lane tables. add() is commutative, so slices inside
  a chunk can be folded in any order; snapshots are taken between chunks.
  """

  def __init__(self) -> None:
    self.total_games = 0
    self._champs: Dict[str, Dict[str, int]] = {}
    self._lanes: Dict[str, Dict[str, int]] = {}
    self._champ_lanes: Dict[str, Dict[str, int]] = defaultdict(dict)
    self._champ_patches: Dict[str, Dict[str, int]] = defaultdict(dict)

  def add(self, s: PlayerSlice) -> None:
    w = 1 if s.win else 0
    c = self._champs.setdefault(s.championName, {"games": 0, "wins": 0})
    c["games"] += 1
    c["wins"] += w

    lane = (s.lane or UNKNOWN_LANE).upper()
    l = self._lanes.setdefault(lane, {"games": 0, "wins": 0})
    l["games"] += 1
    l["wins"] += w

    lm = self._champ_lanes[s.championName]
    lm[lane] = lm.get(lane, 0) + 1
    if s.patch:
      pm = self._champ_patches[s.championName]
      pm[s.patch] = pm.get(s.patch, 0) + 1
    self.total_games += 1

  def extend(self, slices: Iterable[PlayerSlice]) -> "SeasonAggregator":
    for s in slices:
      self.add(s)
    return self

  @property
  def total_wins(self) -> int:
    return sum(c["wins"] for c in self._champs.values())

  def champion_rows(self) -> List[dict]:
    rows = []
    for name, c in self._champs.items():
      rows.append({
        "name": name,
        "games": c["games"],
        "wins": c["wins"],
        "winRate": win_rate(c["wins"], c["games"]),
        "lane": argmax(self._champ_lanes.get(name, {})),
        "primaryPatch": argmax(self._champ_patches.get(name, {})),
      })
    rows.sort(key=lambda r: (-r["games"], r["name"]))
    return rows

  def lane_rows(self) -> List[dict]:
    rows = [
      {"lane": lane, "games": l["games"], "wins": l["wins"], "winRate": win_rate(l["wins"], l["games"])}
      for lane, l in self._lanes.items()
    ]
    rows.sort(key=lambda r: (-r["games"], r["lane"]))
    return rows

  def snapshot(self, top: int = TOP_N) -> dict:
    champions = self.champion_rows()
    lanes = self.lane_rows()
    return {
      "totalGames": self.total_games,
      "champions": champions,
      "lanes": lanes,
      "topUsed": top_by_usage(champions, top),
      "topWinRate": top_by_win_rate(champions, top),
      "bestLane": best_lane(lanes),
    }

# ----------------------------
# Derived views
# ----------------------------
def top_by_usage(champions: List[dict], n: int = TOP_N) -> List[dict]:
  return sorted(champions, key=lambda c: (-c["games"], c["name"]))[:n]

def top_by_win_rate(champions: List[dict], n: int = TOP_N) -> List[dict]:
  eligible = [c for c in champions if c["games"] >= MIN_GAMES_FOR_WINRATE]
  return sorted(eligible, key=lambda c: (-c["winRate"], -c["games"], c["name"]))[:n]

def best_lane_row(lanes: List[dict]) -> Optional[dict]:
  eligible = [l for l in lanes if l["games"] >= MIN_GAMES_FOR_BEST_LANE]
  if not eligible:
    return None
  return sorted(eligible, key=lambda l: (-l["winRate"], -l["games"], l["lane"]))[0]

def best_lane(lanes: List[dict]) -> str:
  row = best_lane_row(lanes)
  return row["lane"] if row else UNKNOWN_LANE

# ----------------------------
# Buckets
# ----------------------------
def bucket_summary(slices: Iterable[PlayerSlice]) -> dict:
  snap = SeasonAggregator().extend(slices).snapshot(top=TOP_N_BUCKET)
  return {
    "totalGames": snap["totalGames"],
    "topUsed": snap["topUsed"],
    "topWinRate": snap["topWinRate"],
    "lanes": snap["lanes"],
    "bestLane": snap["bestLane"],
  }

def filter_patch(slices: Iterable[PlayerSlice], patch: str) -> List[PlayerSlice]:
  want = patch_tuple(patch)
  return [s for s in slices if s.patch and patch_tuple(s.patch) == want]

def by_patch(slices: Iterable[PlayerSlice], count: int = DEFAULT_PATCH_COUNT) -> List[dict]:
  groups: Dict[str, List[PlayerSlice]] = defaultdict(list)
  for s in slices:
    if s.patch:
      groups[s.patch].append(s)
  patches = sorted(groups, key=patch_tuple, reverse=True)[:count]
  return [{"patch": p, **bucket_summary(groups[p])} for p in patches]

def by_split(slices: Iterable[PlayerSlice], year: int, tz: timezone = REFERENCE_TZ) -> List[dict]:
  groups: Dict[str, List[PlayerSlice]] = {key: [] for key in SPLITS}
  for s in slices:
    key = split_of(s.timestamp, year, tz)
    if key:
      groups[key].append(s)
  out = []
  for key, lo, hi in split_ranges(year):
    out.append({
      "key": key,
      "label": SPLIT_LABELS.get(key, key),
      "from": lo.isoformat(),
      "to": hi.isoformat(),
      **bucket_summary(groups[key]),
    })
  return out
