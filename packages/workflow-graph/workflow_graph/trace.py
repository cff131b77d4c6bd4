"""
Workflow Graph run tracing - pydantic event models and an in-memory recorder.

Pass a RunTrace as ``tracer`` to CompiledGraph.execute_async to record what
a single run did:

    trace = RunTrace()
    result = await compiled.execute_async(3, tracer=trace)
    trace.write_jsonl("run.jsonl")
"""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

logger = logging.getLogger(__name__)


class EventName(str, Enum):
    """Events emitted by the executor."""
    RUN_START = "run_start"
    RUN_END = "run_end"
    NODE_ENTER = "node_enter"
    NODE_EXIT = "node_exit"
    NODE_RETRY = "node_retry"
    NODE_RECOVERED = "node_recovered"
    NODE_ERROR = "node_error"


class RunStatus(str, Enum):
    """Outcome of a run."""
    COMPLETED = "completed"      # reached END
    FALLTHROUGH = "fallthrough"  # queue emptied before END
    ERROR = "error"


def generate_run_id() -> str:
    return f"run_{uuid4().hex[:12]}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_jsonable(value: Any) -> Any:
    """Convert *value* to something json.dumps accepts."""
    try:
        json.dumps(value)
        return value
    except (TypeError, ValueError):
        return repr(value)


# =============================================================================
# EVENT DATA MODELS
# =============================================================================

class RunStartData(BaseModel):
    input: Any = None


class RunEndData(BaseModel):
    status: RunStatus
    output: Any = None
    duration_ms: float
    error: Optional[str] = None

    model_config = ConfigDict(use_enum_values=True)


class NodeEnterData(BaseModel):
    node: str


class NodeExitData(BaseModel):
    node: str
    duration_ms: float


class NodeRetryData(BaseModel):
    node: str
    attempt: int
    delay: float
    error: str


class NodeFailureData(BaseModel):
    """Data for node_recovered and node_error events."""
    node: str
    attempts: int
    error: str


EventData = Union[
    RunStartData, RunEndData,
    NodeEnterData, NodeExitData, NodeRetryData, NodeFailureData,
    Dict[str, Any],
]

_DATA_MODELS = {
    EventName.RUN_START.value: RunStartData,
    EventName.RUN_END.value: RunEndData,
    EventName.NODE_ENTER.value: NodeEnterData,
    EventName.NODE_EXIT.value: NodeExitData,
    EventName.NODE_RETRY.value: NodeRetryData,
    EventName.NODE_RECOVERED.value: NodeFailureData,
    EventName.NODE_ERROR.value: NodeFailureData,
}


class TraceEvent(BaseModel):
    """A single trace event."""
    ts: datetime = Field(default_factory=_utcnow)
    run_id: str
    name: EventName
    data: EventData = Field(default_factory=dict)

    model_config = ConfigDict(use_enum_values=True)

    @field_validator("data", mode="before")
    @classmethod
    def _data_for_name(cls, value: Any, info: ValidationInfo) -> Any:
        model = _DATA_MODELS.get(info.data.get("name"))
        if model is not None and isinstance(value, dict):
            return model.model_validate(value)
        return value

    def to_jsonl(self) -> str:
        return self.model_dump_json()

    @classmethod
    def from_jsonl(cls, line: str) -> "TraceEvent":
        return cls.model_validate_json(line)


# =============================================================================
# RECORDER
# =============================================================================

class RunTrace:
    """
    Collects the events of one run in memory.

    The executor calls the methods below; every method is a no-op when the
    recorder is disabled.
    """

    def __init__(self, run_id: Optional[str] = None, enabled: bool = True):
        self.run_id = run_id or generate_run_id()
        self.enabled = enabled
        self.events: List[TraceEvent] = []

    def _emit(self, name: EventName, data: BaseModel) -> None:
        if not self.enabled:
            return
        self.events.append(TraceEvent(run_id=self.run_id, name=name, data=data))

    # -- run lifecycle --
    def run_start(self, input_data: Any) -> None:
        self._emit(EventName.RUN_START, RunStartData(input=to_jsonable(input_data)))

    def run_end(
        self,
        status: RunStatus,
        duration_ms: float,
        output: Any = None,
        error: Optional[str] = None,
    ) -> None:
        self._emit(EventName.RUN_END, RunEndData(
            status=status,
            output=to_jsonable(output),
            duration_ms=duration_ms,
            error=error,
        ))

    # -- nodes --
    def node_enter(self, node: str) -> None:
        self._emit(EventName.NODE_ENTER, NodeEnterData(node=node))

    def node_exit(self, node: str, duration_ms: float) -> None:
        self._emit(EventName.NODE_EXIT, NodeExitData(node=node, duration_ms=duration_ms))

    def node_retry(self, node: str, attempt: int, delay: float, error: Exception) -> None:
        self._emit(EventName.NODE_RETRY, NodeRetryData(
            node=node, attempt=attempt, delay=delay, error=str(error),
        ))

    def node_recovered(self, node: str, attempts: int, error: Exception) -> None:
        self._emit(EventName.NODE_RECOVERED, NodeFailureData(
            node=node, attempts=attempts, error=str(error),
        ))

    def node_error(self, node: str, attempts: int, error: Exception) -> None:
        self._emit(EventName.NODE_ERROR, NodeFailureData(
            node=node, attempts=attempts, error=str(error),
        ))

    # -- queries & export --
    def names(self) -> List[str]:
        return [e.name for e in self.events]

    def by_name(self, name: EventName) -> List[TraceEvent]:
        return [e for e in self.events if e.name == name.value]

    def to_jsonl(self) -> str:
        return "".join(e.to_jsonl() + "\n" for e in self.events)

    def write_jsonl(self, path: Union[str, Path]) -> Path:
        """Write all events to *path* as JSON lines."""
        out = Path(path)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(self.to_jsonl(), encoding="utf-8")
        logger.debug(f"Wrote {len(self.events)} trace events to {out}")
        return out
