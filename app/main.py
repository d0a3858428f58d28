import sys
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.responses import PlainTextResponse

from app.config import CLUSTERS, DEFAULT_QUEUES, STATS_TZ_OFFSET_HOURS, riot_api_key
from app.routes.stats import invalid_query_handler, router as stats_router
from app.util.ttl_cache import StatsCaches


def create_app(caches: StatsCaches | None = None) -> FastAPI:
  app = FastAPI(title = "Season Stats")
  app.state.caches = caches or StatsCaches()

  #health check
  @app.get("/api/health", response_class = PlainTextResponse)
  async def health():
    return "ok"

  #query validation -> 400 invalid_query
  app.add_exception_handler(RequestValidationError, invalid_query_handler)

  #register API routes
  app.include_router(stats_router)
  return app


print("[Startup] Python:", sys.executable)
print("[Startup] RIOT_API_KEY set:", bool(riot_api_key()))
print("[Startup] clusters:", ",".join(CLUSTERS), "| default queues:", DEFAULT_QUEUES or "-", "| tz: UTC+%d" % STATS_TZ_OFFSET_HOURS)
app = create_app()
