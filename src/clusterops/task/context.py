# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/clusterops/task/context.py
from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Dict, Optional, Tuple

from ..config.settings import Settings, load_settings
from ..errors import ClusterOpsError, NoExecutorError
from ..executor.interface import RemoteExecutor
from ..executor.ssh import SSHExecutor
from ..topology.topology import Topology

log = logging.getLogger("clusterops")

ExecutorFactory = Callable[..., RemoteExecutor]


class Context:
    """
    Per-operation registry of host -> remote executor plus the shared ssh
    credentials. Built once before any task runs, then frozen.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        executor_factory: ExecutorFactory = SSHExecutor,
    ):
        self.settings = settings or load_settings()
        self.ssh_timeout: float = self.settings.ssh_timeout
        self._executor_factory = executor_factory
        self._executors: Dict[str, RemoteExecutor] = {}
        self._ssh_keys: Optional[Tuple[Path, Path]] = None
        self._frozen = False

    # ------------------------------------------------------------------
    # Credentials
    # ------------------------------------------------------------------

    @property
    def ssh_key_paths(self) -> Optional[Tuple[Path, Path]]:
        return self._ssh_keys

    def set_ssh_key_set(self, private_key: str | Path, public_key: str | Path) -> None:
        keys = (Path(private_key), Path(public_key))
        if self._ssh_keys is not None and self._ssh_keys != keys:
            raise ClusterOpsError(
                f"ssh key set already configured as {self._ssh_keys[0]}"
            )
        self._ssh_keys = keys

    # ------------------------------------------------------------------
    # Executors
    # ------------------------------------------------------------------

    def register(self, host: str, executor: RemoteExecutor) -> None:
        if self._frozen:
            raise ClusterOpsError(f"context is frozen; cannot register executor for {host}")
        old = self._executors.get(host)
        if old is not None and old is not executor:
            old.close()
        self._executors[host] = executor

    def set_cluster_ssh(self, topology: Topology, user: str, timeout: Optional[float] = None) -> None:
        """Register one executor per distinct host of the topology."""
        if timeout is not None:
            self.ssh_timeout = timeout
        key_path = self._ssh_keys[0] if self._ssh_keys else None

        for host, port in topology.hosts():
            self.register(
                host,
                self._executor_factory(
                    host,
                    user=user,
                    port=port,
                    key_path=key_path,
                    timeout=self.ssh_timeout,
                ),
            )
        log.debug("registered %d executors for user %s", len(self._executors), user)

    def get_executor(self, host: str) -> Tuple[Optional[RemoteExecutor], bool]:
        e = self._executors.get(host)
        return e, e is not None

    def executor(self, host: str) -> RemoteExecutor:
        e, found = self.get_executor(host)
        if not found:
            raise NoExecutorError(host)
        return e

    def hosts(self):
        return list(self._executors)

    def freeze(self) -> "Context":
        self._frozen = True
        return self

    def close(self) -> None:
        for e in self._executors.values():
            try:
                e.close()
            except Exception as exc:
                log.debug("closing executor %r failed: %s", e, exc)
