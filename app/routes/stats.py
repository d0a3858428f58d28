# app/routes/stats.py
import logging
from typing import Annotated, Any, Dict, List

from fastapi import APIRouter, Depends, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, StreamingResponse

from app.errors import InvalidQuery, StatsError
from app.models import StatsQuery, StreamQuery
from app.riot_client import RiotClient
from app.services.pipeline import ClientFactory, build_stats, stream_stats
from app.util.ttl_cache import StatsCaches

router = APIRouter(prefix="/api", tags=["stats"])

log = logging.getLogger("stats")
if not log.handlers:
  h = logging.StreamHandler()
  h.setFormatter(logging.Formatter("[ST] %(levelname)s: %(message)s"))
  log.addHandler(h)
  log.setLevel(logging.INFO)

NO_STORE = {"Cache-Control": "no-store"}
SSE_HEADERS = {
  "Cache-Control": "no-cache, no-transform",
  "Connection": "keep-alive",
  "X-Accel-Buffering": "no",
}

# ----------------------------
# Dependencies
# ----------------------------
def get_caches(request: Request) -> StatsCaches:
  return request.app.state.caches

def get_client_factory() -> ClientFactory:
  return RiotClient

# ----------------------------
# Helpers
# ----------------------------
def _issues(errors) -> List[Dict[str, Any]]:
  return [
    {"loc": [str(x) for x in err.get("loc", ())], "msg": err.get("msg", ""), "type": err.get("type", "")}
    for err in errors
  ]

def _error_response(e: StatsError) -> JSONResponse:
  return JSONResponse(e.to_dict(), status_code=e.status, headers=NO_STORE)

async def invalid_query_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
  """Query parameter validation failures -> 400 invalid_query with issues."""
  e = InvalidQuery(_issues(exc.errors()))
  log.info("invalid query on %s: %d issue(s)", request.url.path, len(e.issues))
  return _error_response(e)

# ----------------------------
# Endpoints
# ----------------------------
@router.get("/stats")
async def stats(
    query: Annotated[StatsQuery, Query()],
    caches: StatsCaches = Depends(get_caches),
    client_factory: ClientFactory = Depends(get_client_factory),
):
  """
  Example:
    /api/stats?riotId=Hide%20on%20bush%23KR1&year=2024&mode=patches&patchCount=6
  """
  try:
    body = await build_stats(query, client_factory, caches)
  except StatsError as e:
    log.info("stats failed: %s", e.code)
    return _error_response(e)
  except Exception:
    log.exception("stats failed unexpectedly")
    return JSONResponse({"error": "unknown_error"}, status_code=500, headers=NO_STORE)
  return JSONResponse(body, headers=NO_STORE)


@router.get("/stats/stream")
async def stats_stream(
    query: Annotated[StreamQuery, Query()],
    caches: StatsCaches = Depends(get_caches),
    client_factory: ClientFactory = Depends(get_client_factory),
):
  async def _sse():
    async for event in stream_stats(query, client_factory, caches):
      yield f"data: {event.model_dump_json()}\n\n"

  return StreamingResponse(_sse(), media_type="text/event-stream", headers=SSE_HEADERS)
