from typing import Any, Dict, Optional

from pydantic import BaseModel

from app.models import (
  DoneEvent,
  ErrorEvent,
  IdsEvent,
  MetaEvent,
  PhaseEvent,
  ProgressEvent,
  StreamEvent,
)

TERMINAL = ("done", "error")


class StreamState(BaseModel):
  phase: str = "started"
  meta: Optional[Dict[str, Any]] = None
  total: Optional[int] = None
  processed: int = 0
  snapshot: Optional[Dict[str, Any]] = None
  result: Optional[Dict[str, Any]] = None
  error: Optional[str] = None

  @property
  def finished(self) -> bool:
    return self.phase in TERMINAL


def reduce_event(state: StreamState, event: StreamEvent) -> StreamState:
  """Consumer-side fold over the event channel; transport agnostic."""
  if state.finished:
    raise ValueError(f"event {event.type!r} after terminal state {state.phase!r}")
  if isinstance(event, PhaseEvent):
    return state.model_copy(update={"phase": event.phase})
  if isinstance(event, MetaEvent):
    return state.model_copy(update={"meta": event.meta})
  if isinstance(event, IdsEvent):
    return state.model_copy(update={"phase": "retrieving", "total": event.total})
  if isinstance(event, ProgressEvent):
    if event.processed < state.processed:
      raise ValueError(f"processed went backwards: {state.processed} -> {event.processed}")
    return state.model_copy(update={
      "phase": "retrieving",
      "processed": event.processed,
      "total": event.total,
      "snapshot": event.snapshot,
    })
  if isinstance(event, DoneEvent):
    return state.model_copy(update={"phase": "done", "result": event.result})
  if isinstance(event, ErrorEvent):
    return state.model_copy(update={"phase": "error", "error": event.error})
  raise TypeError(f"unknown event {event!r}")
