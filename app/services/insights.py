from typing import List

from app.models import Insights
from app.services.aggregator import (
  best_lane_row,
  top_by_usage,
  top_by_win_rate,
  win_rate,
)

SMALL_SAMPLE_GAMES = 30
WEAK_MAIN_WINRATE = 50.0
STRONG_LANE_WINRATE = 55.0


def analyze_season(total_games: int, champions: List[dict], lanes: List[dict]) -> Insights:
  """Rule-based summary + advice bullets. Pure: same tables, same text."""
  top_use = next(iter(top_by_usage(champions, 1)), None)
  top_win = next(iter(top_by_win_rate(champions, 1)), None)
  lane = best_lane_row(lanes)
  overall = win_rate(sum(c["wins"] for c in champions), total_games)

  parts = [f"{total_games} games played with an estimated overall win rate of {overall}%."]
  if top_use:
    parts.append(f"Most played: {top_use['name']} ({top_use['games']} games).")
  if top_win:
    parts.append(f"Highest win rate with 5+ games: {top_win['name']} ({top_win['winRate']}%).")
  if lane:
    parts.append(f"Strongest lane: {lane['lane']} ({lane['winRate']}% over {lane['games']} games).")

  bullets: List[str] = []
  if top_use and top_use["winRate"] < WEAK_MAIN_WINRATE:
    bullets.append(
        f"{top_use['name']} is your most played champion but wins under half its games. "
        "Consider sharing the load with a second main."
    )
  if lane and lane["winRate"] >= STRONG_LANE_WINRATE:
    bullets.append(
        f"Prioritise {lane['lane']} in role selection; it is lifting your win rate."
    )
  if total_games < SMALL_SAMPLE_GAMES:
    bullets.append("Small sample: 30-50+ games give a much steadier read.")

  return Insights(summary=" ".join(parts), bullets=bullets)
