# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/clusterops/errors.py
from __future__ import annotations

from typing import List, Optional


class ClusterOpsError(RuntimeError):
    """Base class for cluster operation failures."""


class NoExecutorError(ClusterOpsError):
    """Raised when a host has no registered remote executor."""

    def __init__(self, host: str, instance: Optional[str] = None):
        where = f"host {host} (instance {instance})" if instance else f"host {host}"
        super().__init__(f"no executor registered for {where}")
        self.host = host
        self.instance = instance


class UnsupportedRollbackError(ClusterOpsError):
    """Raised by tasks that declare no undo when rollback is requested."""

    def __init__(self, task: object):
        super().__init__(f"rollback is not supported for task: {task}")
        self.task = task


class RemoteActionFailed(ClusterOpsError):
    """A command or file transfer failed on one host."""

    def __init__(self, host: str, cause: object, instance: Optional[str] = None):
        self.host = host
        self.cause = cause
        self.instance = instance
        where = f"{instance} ({host})" if instance else host
        super().__init__(f"remote action failed on {where}: {cause}")


class PersistenceFailed(ClusterOpsError):
    """Saving cluster metadata failed after the cluster was changed."""

    def __init__(self, cluster: str, cause: object):
        self.cluster = cluster
        self.cause = cause
        super().__init__(
            f"failed to save metadata of cluster {cluster}: {cause}; "
            "the live cluster and the stored metadata are now inconsistent"
        )


class PipelineError(ClusterOpsError):
    """
    Forward failure of a pipeline together with every rollback failure
    collected while unwinding.
    """

    def __init__(
        self,
        error: BaseException,
        rollback_errors: Optional[List[BaseException]] = None,
        failed_task: object = None,
    ):
        self.error = error
        self.rollback_errors = list(rollback_errors or [])
        self.failed_task = failed_task

        msg = f"{failed_task}: {error}" if failed_task is not None else str(error)
        if self.rollback_errors:
            details = "; ".join(str(e) for e in self.rollback_errors)
            msg += f" (rollback errors: {details})"
        super().__init__(msg)


class TombstoneCheckRefused(ClusterOpsError):
    """The tombstone safety policy rejected the destructive phase."""


class MetaNotFound(ClusterOpsError):
    def __init__(self, cluster: str):
        super().__init__(f"cluster {cluster} does not exist")
        self.cluster = cluster


class PDError(ClusterOpsError):
    """Placement driver API query failed."""
