# app/riot_client.py
import asyncio
import logging
from typing import Any, Awaitable, Callable, Iterable, Optional
from urllib.parse import quote

import httpx

from app.config import REGIONAL, RIOT_MAX_RETRIES, RIOT_TIMEOUT_SEC, riot_api_key
from app.errors import UpstreamUnavailable

log = logging.getLogger("riot_client")
if not log.handlers:
  h = logging.StreamHandler()
  h.setFormatter(logging.Formatter("[RC] %(levelname)s: %(message)s"))
  log.addHandler(h)
  log.setLevel(logging.INFO)

Sleep = Callable[[float], Awaitable[Any]]


def retry_after_seconds(r: httpx.Response, default: float = 1.0) -> float:
  raw = (r.headers.get("Retry-After") or "").strip()
  try:
    return max(0.0, float(raw)) if raw else default
  except ValueError:
    return default


class RiotClient:
  """
  Thin async client for the Riot regional APIs.

  Returns raw httpx responses; callers decide what a status means.
  Only 429 is retried here, using the advertised Retry-After.
  """

  def __init__(
      self,
      api_key: Optional[str] = None,
      *,
      transport: Optional[httpx.AsyncBaseTransport] = None,
      sleep: Sleep = asyncio.sleep,
      timeout: float = RIOT_TIMEOUT_SEC,
      max_retries: int = RIOT_MAX_RETRIES,
  ):
    self.api_key = riot_api_key() if api_key is None else api_key
    self.timeout = timeout
    self.max_retries = max_retries
    self._transport = transport
    self._sleep = sleep
    self._client: Optional[httpx.AsyncClient] = None

  async def __aenter__(self):
    limits = httpx.Limits(max_keepalive_connections=10, max_connections=20)
    self._client = httpx.AsyncClient(
        timeout=httpx.Timeout(self.timeout),
        limits=limits,
        transport=self._transport,
    )
    return self

  async def __aexit__(self, *exc):
    if self._client:
      await self._client.aclose()
      self._client = None

  @staticmethod
  def _norm_cluster(cluster: str) -> str:
    c = (cluster or "").lower()
    if c not in REGIONAL:
      raise ValueError(f"cluster must be one of: {', '.join(REGIONAL)}")
    return c

  async def _send(self, url: str, *, params: Any = None, headers: Optional[dict] = None) -> httpx.Response:
    try:
      # httpx timeouts are per phase; wait_for bounds the whole call
      return await asyncio.wait_for(
          self._client.get(url, params=params, headers=headers),
          timeout=self.timeout,
      )
    except (asyncio.TimeoutError, httpx.TimeoutException) as e:
      log.warning("timeout after %.0fs: %s", self.timeout, url)
      raise UpstreamUnavailable("upstream_timeout") from e
    except httpx.TransportError as e:
      log.warning("transport error on %s: %s", url, e)
      raise UpstreamUnavailable(f"transport_error: {e}") from e

  async def call(self, url: str, *, params: Any = None, attempt: int = 0) -> httpx.Response:
    """
    GET with:
      - X-Riot-Token auth and no transport caching,
      - absolute per-call timeout,
      - Retry-After backoff on 429, re-invoking with attempt+1.
    After max_retries the 429 is handed back untouched.
    """
    headers = {"X-Riot-Token": self.api_key, "Cache-Control": "no-cache"}
    r = await self._send(url, params=params, headers=headers)
    if r.status_code == 429 and attempt < self.max_retries:
      delay = retry_after_seconds(r)
      log.info("429 on %s, sleeping %.1fs (attempt %d)", url, delay, attempt + 1)
      await self._sleep(delay)
      return await self.call(url, params=params, attempt=attempt + 1)
    return r

  async def get_public(self, url: str) -> httpx.Response:
    # static CDN endpoints: no token
    return await self._send(url, headers={"Cache-Control": "no-cache"})

  # -------- Account / PUUID via REGIONAL --------
  async def account_by_riot_id(self, cluster: str, game_name: str, tag_line: str) -> httpx.Response:
    reg = self._norm_cluster(cluster)
    url = f"https://{REGIONAL[reg]}/riot/account/v1/accounts/by-riot-id/{quote(game_name, safe='')}/{quote(tag_line, safe='')}"
    return await self.call(url)

  # -------- Match IDs via REGIONAL --------
  async def match_ids(
      self,
      cluster: str,
      puuid: str,
      *,
      start: int = 0,
      count: int = 100,
      start_time: Optional[int] = None,
      end_time: Optional[int] = None,
      queues: Iterable[int] = (),
  ) -> httpx.Response:
    reg = self._norm_cluster(cluster)
    url = f"https://{REGIONAL[reg]}/lol/match/v5/matches/by-puuid/{puuid}/ids"
    params: list = [("start", start), ("count", count)]
    if start_time is not None:
      params.append(("startTime", start_time))
    if end_time is not None:
      params.append(("endTime", end_time))
    for q in queues:
      params.append(("queue", q))
    return await self.call(url, params=params)

  # -------- Match detail via REGIONAL --------
  async def match(self, cluster: str, match_id: str) -> httpx.Response:
    reg = self._norm_cluster(cluster)
    url = f"https://{REGIONAL[reg]}/lol/match/v5/matches/{match_id}"
    return await self.call(url)
