from typing import List

import httpx
import pytest

from app.riot_client import RiotClient
from app.util.ttl_cache import StatsCaches
from tests.fakes import FakeClock, FakeRiot


@pytest.fixture
def clock() -> FakeClock:
  return FakeClock()


@pytest.fixture
def caches(clock: FakeClock) -> StatsCaches:
  return StatsCaches(clock=clock)


@pytest.fixture
def fake() -> FakeRiot:
  return FakeRiot()


@pytest.fixture
def sleeps() -> List[float]:
  return []


@pytest.fixture
def client_factory(fake: FakeRiot, sleeps: List[float]):
  async def _sleep(d: float) -> None:
    sleeps.append(d)

  def _make() -> RiotClient:
    return RiotClient("test-key", transport=httpx.MockTransport(fake), sleep=_sleep)
  return _make
