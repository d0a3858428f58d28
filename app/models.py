import re
from datetime import date
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.config import DEFAULT_QUEUES, QUEUES

_PATCH_RE = re.compile(r"^\d+\.\d+$")


def _this_year() -> int:
  return date.today().year


def parse_queues(raw: Optional[str]) -> List[int]:
  """'420, flex,x' -> [420, 440]; mode names expand, anything else is dropped."""
  out: List[int] = []
  for part in (raw or "").split(","):
    part = part.strip()
    if not part:
      continue
    try:
      out.append(int(part))
    except ValueError:
      out.extend(QUEUES.get(part.lower(), []))
  return out


class Account(BaseModel):
  puuid: str
  gameName: str = ""
  tagLine: str = ""

  @property
  def riot_id(self) -> str:
    return f"{self.gameName}#{self.tagLine}"


UNKNOWN_LANE = "UNKNOWN"


class PlayerSlice(BaseModel):
  championName: str
  win: bool
  lane: str = UNKNOWN_LANE
  patch: Optional[str] = None
  timestamp: Optional[int] = None  # epoch ms


class Insights(BaseModel):
  summary: str
  bullets: List[str] = []


# ----------------------------
# Query models
# ----------------------------
class StreamQuery(BaseModel):
  riotId: str = Field(min_length=3)
  year: int = Field(default_factory=_this_year, ge=2010, le=2100)
  queues: Optional[str] = None
  cluster: Optional[Literal["americas", "asia", "europe"]] = None
  limit: int = Field(300, ge=50, le=2000)

  @model_validator(mode="before")
  @classmethod
  def _drop_blank(cls, data: Any) -> Any:
    # ?year=&limit= count as "not given" so defaults apply
    if isinstance(data, dict):
      return {k: v for k, v in data.items() if v != ""}
    return data

  def queue_ids(self) -> List[int]:
    return parse_queues(self.queues if self.queues is not None else DEFAULT_QUEUES)


class StatsQuery(StreamQuery):
  model_config = ConfigDict(populate_by_name=True)

  mode: Literal["year", "patch", "patches", "splits", "custom"] = "year"
  patch: Optional[str] = None
  patchCount: int = Field(12, ge=1, le=20)
  from_: Optional[date] = Field(None, alias="from")
  to: Optional[date] = None

  @model_validator(mode="after")
  def _check_mode(self) -> "StatsQuery":
    if self.mode == "patch":
      if not self.patch or not _PATCH_RE.match(self.patch):
        raise ValueError("patch must be MAJOR.MINOR (e.g. 14.18) when mode=patch")
    if self.mode == "custom":
      if self.from_ is None or self.to is None:
        raise ValueError("from and to (YYYY-MM-DD) are required when mode=custom")
      if self.from_ > self.to:
        raise ValueError("from must not be after to")
    return self


# ----------------------------
# Stream events
# ----------------------------
class PhaseEvent(BaseModel):
  type: Literal["phase"] = "phase"
  phase: Literal["account_lookup", "listing_ids"]


class MetaEvent(BaseModel):
  type: Literal["meta"] = "meta"
  meta: Dict[str, Any]


class IdsEvent(BaseModel):
  type: Literal["ids"] = "ids"
  total: int


class ProgressEvent(BaseModel):
  type: Literal["progress"] = "progress"
  processed: int
  total: int
  snapshot: Dict[str, Any]


class DoneEvent(BaseModel):
  type: Literal["done"] = "done"
  result: Dict[str, Any]


class ErrorEvent(BaseModel):
  type: Literal["error"] = "error"
  error: str
  message: str = ""


StreamEvent = Union[PhaseEvent, MetaEvent, IdsEvent, ProgressEvent, DoneEvent, ErrorEvent]
