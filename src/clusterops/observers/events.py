# src/clusterops/observers/events.py

from __future__ import annotations
from dataclasses import dataclass, asdict, field
from typing import List, Dict, Any, Optional
from datetime import datetime, timezone
import uuid


# ---------------------------------------------------------------------
# Base context and helper
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class BaseEvent:
    ts: str           # ISO timestamp
    run_id: str       # correlates all events in a single invocation
    cluster: str      # cluster name

    def dict(self) -> Dict[str, Any]:
        return asdict(self)


def new_ctx(cluster: str, run_id: Optional[str] = None) -> Dict[str, Any]:
    return {
        "ts": datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z"),
        "run_id": run_id or str(uuid.uuid4()),
        "cluster": cluster,
    }


# ---------------------------------------------------------------------
# Pipeline lifecycle
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class PipelineStarted(BaseEvent):
    tasks: List[str] = field(default_factory=list)

@dataclass(frozen=True)
class TaskStarted(BaseEvent):
    index: int
    task: str

@dataclass(frozen=True)
class TaskSucceeded(BaseEvent):
    index: int
    task: str
    duration_ms: int

@dataclass(frozen=True)
class TaskFailed(BaseEvent):
    index: int
    task: str
    error: str


# ---------------------------------------------------------------------
# Rollback & Summary
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class RollbackStarted(BaseEvent):
    index: int
    task: str

@dataclass(frozen=True)
class RollbackResult(BaseEvent):
    index: int
    task: str
    status: str       # "ROLLED_BACK" | "FAILED"
    error: Optional[str] = None

@dataclass(frozen=True)
class PipelineSummary(BaseEvent):
    executed: int
    failed: int
    rolled_back: int


# ---------------------------------------------------------------------
# Tombstone lifecycle
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class TombstoneDiscovered(BaseEvent):
    nodes: List[str]

@dataclass(frozen=True)
class TombstoneDestroyed(BaseEvent):
    node: str
    host: str

@dataclass(frozen=True)
class TombstoneFailed(BaseEvent):
    node: str
    error: str

@dataclass(frozen=True)
class MetaSaved(BaseEvent):
    removed: List[str]
