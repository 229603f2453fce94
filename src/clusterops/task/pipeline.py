# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/clusterops/task/pipeline.py
from __future__ import annotations

import logging
import time
from typing import Dict, Iterable, List, Optional

from ..errors import PipelineError
from ..observers.dispatcher import EventBus
from ..observers.events import (
    new_ctx,
    PipelineStarted,
    PipelineSummary,
    RollbackResult,
    RollbackStarted,
    TaskFailed,
    TaskStarted,
    TaskSucceeded,
)
from .context import Context
from .task import Task

log = logging.getLogger("clusterops")


class Pipeline:
    """
    Ordered tasks run strictly one after another. The first failure stops
    forward execution and unwinds the tasks that already succeeded, newest
    first. Rollback failures are collected and reported together with the
    original error.
    """

    def __init__(
        self,
        tasks: Iterable[Task] = (),
        *,
        bus: Optional[EventBus] = None,
        run_ctx: Optional[Dict] = None,
    ):
        self.tasks: List[Task] = list(tasks)
        self.bus = bus or EventBus()
        self.run_ctx = run_ctx or new_ctx(cluster="")

    def __len__(self) -> int:
        return len(self.tasks)

    def __iter__(self):
        return iter(self.tasks)

    def __str__(self) -> str:
        return "\n".join(str(t) for t in self.tasks)

    def execute(self, ctx: Context) -> None:
        if not self.tasks:
            return

        bus, run_ctx = self.bus, self.run_ctx
        bus.emit(PipelineStarted(tasks=[str(t) for t in self.tasks], **run_ctx))

        done: List[Task] = []
        for idx, task in enumerate(self.tasks):
            bus.emit(TaskStarted(index=idx, task=str(task), **run_ctx))
            log.debug("+ [%d] %s", idx, task)
            t0 = time.time()
            try:
                task.execute(ctx)
            except Exception as e:
                log.error("task failed: %s: %s", task, e)
                bus.emit(TaskFailed(index=idx, task=str(task), error=str(e), **run_ctx))
                rollback_errors = self._unwind(ctx, done)
                bus.emit(
                    PipelineSummary(
                        executed=len(done),
                        failed=1,
                        rolled_back=len(done) - len(rollback_errors),
                        **run_ctx,
                    )
                )
                raise PipelineError(e, rollback_errors, failed_task=task) from e

            duration_ms = int((time.time() - t0) * 1000)
            bus.emit(TaskSucceeded(index=idx, task=str(task), duration_ms=duration_ms, **run_ctx))
            done.append(task)

        bus.emit(PipelineSummary(executed=len(done), failed=0, rolled_back=0, **run_ctx))

    def _unwind(self, ctx: Context, done: List[Task]) -> List[Exception]:
        errors: List[Exception] = []
        for idx in range(len(done) - 1, -1, -1):
            task = done[idx]
            self.bus.emit(RollbackStarted(index=idx, task=str(task), **self.run_ctx))
            try:
                task.rollback(ctx)
                self.bus.emit(RollbackResult(index=idx, task=str(task), status="ROLLED_BACK", **self.run_ctx))
            except Exception as re:
                log.warning("rollback failed: %s: %s", task, re)
                errors.append(re)
                self.bus.emit(
                    RollbackResult(index=idx, task=str(task), status="FAILED", error=str(re), **self.run_ctx)
                )
        return errors
