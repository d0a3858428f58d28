import itertools
import random
from datetime import date

from app.models import PlayerSlice
from app.services.aggregator import (
  SeasonAggregator,
  argmax,
  best_lane,
  by_patch,
  by_split,
  date_window,
  filter_patch,
  patch_tuple,
  split_of,
  top_by_usage,
  top_by_win_rate,
  win_rate,
  year_window,
)
from tests.fakes import ts_ms


def S(champ: str, win: bool, lane: str = "MIDDLE", patch: str = "14.20", ts: int = None) -> PlayerSlice:
  return PlayerSlice(championName=champ, win=win, lane=lane, patch=patch, timestamp=ts)


def _tables(slices):
  agg = SeasonAggregator().extend(slices)
  return agg.champion_rows(), agg.lane_rows()


def test_ahri_lux_scenario() -> None:
  slices = [S("Ahri", True), S("Ahri", True), S("Ahri", False), S("Lux", True), S("Lux", False)]
  snap = SeasonAggregator().extend(slices).snapshot()
  champs = {c["name"]: (c["games"], c["wins"], c["winRate"]) for c in snap["champions"]}
  assert champs == {"Ahri": (3, 2, 66.7), "Lux": (2, 1, 50.0)}
  assert snap["lanes"] == [{"lane": "MIDDLE", "games": 5, "wins": 3, "winRate": 60.0}]
  assert snap["bestLane"] == "UNKNOWN"
  assert snap["topWinRate"] == []
  assert [c["name"] for c in snap["topUsed"]] == ["Ahri", "Lux"]


def test_win_rate_rule() -> None:
  assert win_rate(0, 0) == 0.0
  assert win_rate(2, 3) == 66.7
  assert win_rate(1, 16) == 6.3  # half rounds up
  assert win_rate(5, 5) == 100.0


def test_invariants_hold_on_random_input() -> None:
  rng = random.Random(7)
  champs = ["Ahri", "Lux", "Zed", "Jinx", "Thresh"]
  lanes = ["TOP", "JUNGLE", "MIDDLE", "BOTTOM", "UTILITY", "UNKNOWN"]
  slices = [S(rng.choice(champs), rng.random() < 0.5, rng.choice(lanes)) for _ in range(300)]
  c_rows, l_rows = _tables(slices)
  for r in c_rows + l_rows:
    assert 0 <= r["wins"] <= r["games"]
    assert r["winRate"] == win_rate(r["wins"], max(r["games"], 1))
  assert sum(r["games"] for r in c_rows) == 300
  assert sum(r["games"] for r in l_rows) == 300


def test_fold_is_order_independent() -> None:
  base = [S("Ahri", True, "MIDDLE"), S("Lux", False, "UTILITY"), S("Ahri", False, "MIDDLE"),
          S("Zed", True, "MIDDLE"), S("Lux", True, "UTILITY")]
  expected = _tables(base)
  for perm in itertools.permutations(base):
    assert _tables(list(perm)) == expected


def test_only_observed_keys_materialize() -> None:
  c_rows, l_rows = _tables([S("Ahri", True, "TOP")])
  assert [c["name"] for c in c_rows] == ["Ahri"]
  assert [l["lane"] for l in l_rows] == ["TOP"]
  assert _tables([]) == ([], [])


def test_empty_lane_becomes_unknown() -> None:
  _c, l_rows = _tables([S("Ahri", True, "")])
  assert l_rows[0]["lane"] == "UNKNOWN"


def test_argmax_first_key_wins_ties() -> None:
  assert argmax({"TOP": 2, "MIDDLE": 3, "JUNGLE": 3}) == "MIDDLE"
  assert argmax({"b": 1, "a": 1}) == "b"
  assert argmax({}) is None


def test_primary_lane_and_patch() -> None:
  slices = [S("Ahri", True, "MIDDLE", "14.19"), S("Ahri", True, "TOP", "14.20"),
            S("Ahri", False, "TOP", "14.20"), S("Lux", True, "UTILITY", None)]
  rows = {r["name"]: r for r in SeasonAggregator().extend(slices).champion_rows()}
  assert rows["Ahri"]["lane"] == "TOP"
  assert rows["Ahri"]["primaryPatch"] == "14.20"
  assert rows["Lux"]["primaryPatch"] is None


def test_top_lists() -> None:
  champs = [
    {"name": "A", "games": 4, "wins": 4, "winRate": 100.0},
    {"name": "B", "games": 12, "wins": 6, "winRate": 50.0},
    {"name": "C", "games": 6, "wins": 4, "winRate": 66.7},
    {"name": "D", "games": 5, "wins": 1, "winRate": 20.0},
  ]
  assert [c["name"] for c in top_by_usage(champs)] == ["B", "C", "D", "A"]
  wr = top_by_win_rate(champs)
  assert [c["name"] for c in wr] == ["C", "B", "D"]
  assert all(c["games"] >= 5 for c in wr)
  assert len(top_by_usage(champs, 2)) == 2


def test_top_by_usage_is_non_increasing_and_capped() -> None:
  slices = [S(f"C{i}", True) for i in range(15) for _ in range(i + 1)]
  top = SeasonAggregator().extend(slices).snapshot()["topUsed"]
  assert len(top) == 10
  games = [c["games"] for c in top]
  assert games == sorted(games, reverse=True)
  assert games[0] == 15


def test_best_lane_threshold() -> None:
  lanes = [
    {"lane": "TOP", "games": 9, "wins": 9, "winRate": 100.0},
    {"lane": "MIDDLE", "games": 10, "wins": 5, "winRate": 50.0},
    {"lane": "UTILITY", "games": 20, "wins": 12, "winRate": 60.0},
  ]
  assert best_lane(lanes) == "UTILITY"
  assert best_lane(lanes[:1]) == "UNKNOWN"


def test_patch_tuple_orders_numerically() -> None:
  assert patch_tuple("14.9") < patch_tuple("14.10")
  assert patch_tuple("garbage") == (0, 0)


def test_by_patch_keeps_most_recent_n() -> None:
  slices = [S("Ahri", True, patch=p) for p in ("14.17", "14.18", "14.20", "14.19", "14.20")]
  slices.append(S("Lux", True, patch=None))
  buckets = by_patch(slices, 3)
  assert [b["patch"] for b in buckets] == ["14.20", "14.19", "14.18"]
  assert buckets[0]["totalGames"] == 2
  assert set(buckets[0]) == {"patch", "totalGames", "topUsed", "topWinRate", "lanes", "bestLane"}


def test_by_patch_numeric_not_lexical() -> None:
  slices = [S("Ahri", True, patch=p) for p in ("14.9", "14.10", "13.24")]
  assert [b["patch"] for b in by_patch(slices, 12)] == ["14.10", "14.9", "13.24"]


def test_bucket_top_lists_are_top_five() -> None:
  slices = [S(f"C{i}", True, patch="14.20") for i in range(8) for _ in range(6)]
  bucket = by_patch(slices, 1)[0]
  assert len(bucket["topUsed"]) == 5
  assert len(bucket["topWinRate"]) == 5


def test_filter_patch() -> None:
  slices = [S("Ahri", True, patch="14.20"), S("Lux", True, patch="14.2"), S("Zed", True, patch=None)]
  assert [s.championName for s in filter_patch(slices, "14.20")] == ["Ahri"]


def test_split_boundaries() -> None:
  assert split_of(ts_ms(2024, 1, 1), 2024) == "s1"
  assert split_of(ts_ms(2024, 4, 30), 2024) == "s1"
  assert split_of(ts_ms(2024, 5, 1), 2024) == "s2"
  assert split_of(ts_ms(2024, 8, 31), 2024) == "s2"
  assert split_of(ts_ms(2024, 9, 1), 2024) == "s3"
  assert split_of(ts_ms(2024, 12, 31), 2024) == "s3"
  assert split_of(ts_ms(2023, 12, 31), 2024) is None
  assert split_of(None, 2024) is None


def test_by_split_independent_tables() -> None:
  slices = [
    S("Ahri", True, ts=ts_ms(2024, 2, 1)),
    S("Ahri", False, ts=ts_ms(2024, 3, 1)),
    S("Lux", True, ts=ts_ms(2024, 10, 1)),
    S("Zed", True, ts=None),
  ]
  splits = by_split(slices, 2024)
  assert [s["key"] for s in splits] == ["s1", "s2", "s3"]
  assert [s["totalGames"] for s in splits] == [2, 0, 1]
  assert splits[0]["from"] == "2024-01-01" and splits[0]["to"] == "2024-04-30"
  assert splits[2]["to"] == "2024-12-31"
  assert splits[1]["bestLane"] == "UNKNOWN"
  assert [c["name"] for c in splits[2]["topUsed"]] == ["Lux"]


def test_windows_are_end_of_day_inclusive() -> None:
  lo, hi = year_window(2024)
  assert hi - lo == 366 * 86400 - 1
  lo, hi = date_window(date(2024, 3, 1), date(2024, 3, 1))
  assert hi - lo == 86399
