# app/errors.py
from typing import Any, Dict, List, Optional


class StatsError(Exception):
  """Base for failures that map to an error code and an HTTP status."""
  code = "unknown_error"
  status = 500

  def __init__(self, message: Optional[str] = None) -> None:
    super().__init__(message or self.code)
    self.message = message or self.code

  def to_dict(self) -> Dict[str, Any]:
    return {"error": self.code, "message": self.message}


class InvalidQuery(StatsError):
  code = "invalid_query"
  status = 400

  def __init__(self, issues: List[Dict[str, Any]]) -> None:
    super().__init__("query parameters failed validation")
    self.issues = issues

  def to_dict(self) -> Dict[str, Any]:
    out = super().to_dict()
    out["issues"] = self.issues
    return out


class InvalidIdentifier(StatsError):
  code = "invalid_riot_id"
  status = 400


class Unauthorized(StatsError):
  code = "unauthorized"
  status = 401


class NotFound(StatsError):
  code = "not_found"
  status = 404


class ServerMisconfigured(StatsError):
  code = "server_misconfigured"
  status = 500


class RateLimited(StatsError):
  code = "rate_limited"
  status = 500


class ResolutionFailed(StatsError):
  code = "account_lookup_failed"
  status = 500


class UpstreamUnavailable(StatsError):
  code = "upstream_unavailable"
  status = 500
