# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/clusterops/observers/sinks.py
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, Optional, TextIO

import typer

from .events import (
    BaseEvent,
    MetaSaved,
    PipelineSummary,
    RollbackResult,
    TaskFailed,
    TaskStarted,
    TombstoneDestroyed,
    TombstoneFailed,
)

_CONTEXT_KEYS = ("ts", "run_id", "cluster")

# events that mean something went wrong are surfaced above debug
_LEVELS: Dict[type, int] = {
    TaskFailed: logging.ERROR,
    TombstoneFailed: logging.ERROR,
    TombstoneDestroyed: logging.INFO,
    MetaSaved: logging.INFO,
    PipelineSummary: logging.INFO,
}


def _fields(event: BaseEvent) -> str:
    return ", ".join(f"{k}={v}" for k, v in event.dict().items() if k not in _CONTEXT_KEYS)


class LoggerObserver:
    """Writes every event to the run log; failures at ERROR, outcomes at INFO."""

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def level_of(self, event: BaseEvent) -> int:
        if isinstance(event, RollbackResult) and event.status == "FAILED":
            return logging.WARNING
        return _LEVELS.get(type(event), logging.DEBUG)

    def notify(self, event: BaseEvent) -> None:
        self.logger.log(self.level_of(event), "[%s] %s: %s", event.cluster, type(event).__name__, _fields(event))


class JsonLinesObserver:
    """
    Appends one JSON object per event to ``path``. The file is opened on
    the first event and kept open until ``close``.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._fh: Optional[TextIO] = None

    def notify(self, event: BaseEvent) -> None:
        if self._fh is None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._fh = self.path.open("a", encoding="utf-8")
        self._fh.write(json.dumps({"type": type(event).__name__, **event.dict()}, default=str))
        self._fh.write("\n")
        self._fh.flush()

    def close(self) -> None:
        if self._fh is not None:
            self._fh.close()
            self._fh = None


class ConsoleObserver:
    """Progress lines for interactive runs (``--verbose``)."""

    def notify(self, event: BaseEvent) -> None:
        if isinstance(event, TaskStarted):
            typer.echo(f"  + [{event.index}] {event.task}")
        elif isinstance(event, (TaskFailed, TombstoneFailed)):
            typer.secho(f"  ! {type(event).__name__}: {_fields(event)}", fg=typer.colors.RED, err=True)
        else:
            typer.echo(f"  {type(event).__name__}: {_fields(event)}")
