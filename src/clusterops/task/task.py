# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/clusterops/task/task.py
from __future__ import annotations

import logging
import posixpath
import shlex
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence

import paramiko

from ..errors import RemoteActionFailed, UnsupportedRollbackError
from ..template_renderer import TemplateRenderer
from ..topology.instance import Instance
from .context import Context

log = logging.getLogger("clusterops")

SYSTEMD_DIR = "/etc/systemd/system"

# transport level failures raised by executors
TRANSPORT_ERRORS = (paramiko.SSHException, OSError, EOFError)


class Task(ABC):
    """
    One planned action. ``execute`` may be retried; ``rollback`` undoes a
    successful ``execute`` or raises ``UnsupportedRollbackError``.
    """

    @abstractmethod
    def execute(self, ctx: Context) -> None: ...

    @abstractmethod
    def rollback(self, ctx: Context) -> None: ...

    @abstractmethod
    def __str__(self) -> str: ...


class RemoteTask(Task):
    """Helpers for tasks that run shell commands on one host."""

    def _run(
        self,
        ctx: Context,
        host: str,
        cmd: str,
        *,
        sudo: bool = True,
        instance: Optional[str] = None,
        check: bool = True,
    ) -> tuple[int, str]:
        e = ctx.executor(host)
        try:
            rc, out, err = e.run(cmd, sudo=sudo, timeout=ctx.ssh_timeout)
        except TRANSPORT_ERRORS as exc:
            raise RemoteActionFailed(host, exc, instance) from exc

        if check and rc != 0:
            raise RemoteActionFailed(
                host, f"`{cmd}` exited with {rc}: {err.strip()}", instance
            )
        return rc, out

    def _put_text(
        self,
        ctx: Context,
        host: str,
        content: str,
        remote_path: str,
        *,
        instance: Optional[str] = None,
    ) -> None:
        e = ctx.executor(host)
        try:
            e.put_text(content, remote_path, sudo=True)
        except TRANSPORT_ERRORS as exc:
            raise RemoteActionFailed(host, exc, instance) from exc

    def _put_file(
        self,
        ctx: Context,
        host: str,
        local_path: Path,
        remote_path: str,
        *,
        instance: Optional[str] = None,
    ) -> None:
        e = ctx.executor(host)
        try:
            e.put_file(local_path, remote_path, sudo=True)
        except TRANSPORT_ERRORS as exc:
            raise RemoteActionFailed(host, exc, instance) from exc


@dataclass(frozen=True)
class DirPaths:
    deploy: str
    data: Optional[str]
    log: str
    cache: Path

    @classmethod
    def for_instance(cls, ins: Instance, cache: Path) -> "DirPaths":
        return cls(deploy=ins.deploy_dir, data=ins.data_dir, log=ins.log_dir, cache=cache)

    def __str__(self) -> str:
        return f"deploy_dir={self.deploy}, data_dir={self.data or '-'}, log_dir={self.log}, cache_dir={self.cache}"


# ------------------------------------------------------------------
# Directories and files
# ------------------------------------------------------------------

class MkDirs(RemoteTask):
    """Create directories owned by the deploy user; rollback removes only what it created."""

    def __init__(self, host: str, dirs: Sequence[str], user: str):
        self.host = host
        self.dirs = list(dirs)
        self.user = user
        self._created: List[str] = []

    def execute(self, ctx: Context) -> None:
        created = []
        for d in self.dirs:
            rc, _ = self._run(ctx, self.host, f"test -d {shlex.quote(d)}", check=False)
            if rc != 0:
                created.append(d)
        if created:
            quoted = " ".join(shlex.quote(d) for d in created)
            self._run(ctx, self.host, f"mkdir -p {quoted} && chown -R {self.user}:{self.user} {quoted}")
        self._created = created

    def rollback(self, ctx: Context) -> None:
        if not self._created:
            return
        quoted = " ".join(shlex.quote(d) for d in self._created)
        self._run(ctx, self.host, f"rm -rf {quoted}")
        self._created = []

    def __str__(self) -> str:
        return f"MkDirs: host={self.host}, dirs={','.join(self.dirs)}"


class InitConfig(RemoteTask):
    """Render an instance's config into the local cache and copy it to the deploy dir."""

    def __init__(
        self,
        cluster: str,
        version: str,
        instance: Instance,
        deploy_user: str,
        paths: DirPaths,
        pd_endpoints: Sequence[str] = (),
        renderer: Optional[TemplateRenderer] = None,
    ):
        self.cluster = cluster
        self.version = version
        self.instance = instance
        self.deploy_user = deploy_user
        self.paths = paths
        self.pd_endpoints = list(pd_endpoints)
        self.renderer = renderer or TemplateRenderer()

    @property
    def cache_file(self) -> Path:
        ins = self.instance
        return Path(self.paths.cache) / f"{ins.role}-{ins.host}-{ins.main_port}.toml"

    @property
    def remote_path(self) -> str:
        return posixpath.join(self.paths.deploy, "conf", self.instance.config_name)

    def execute(self, ctx: Context) -> None:
        ins = self.instance
        ctx.executor(ins.host)

        Path(self.paths.cache).mkdir(parents=True, exist_ok=True)
        content = self.renderer.render(
            "config.toml.j2",
            {
                "cluster": self.cluster,
                "version": self.version,
                "role": ins.role,
                "host": ins.host,
                "ports": ins.ports,
                "deploy_dir": self.paths.deploy,
                "data_dir": self.paths.data,
                "log_dir": self.paths.log,
                "pd_endpoints": self.pd_endpoints,
            },
        )
        self.cache_file.write_text(content)

        conf_dir = posixpath.dirname(self.remote_path)
        self._run(ctx, ins.host, f"mkdir -p {shlex.quote(conf_dir)}", instance=ins.id)
        self._put_file(ctx, ins.host, self.cache_file, self.remote_path, instance=ins.id)
        self._run(
            ctx,
            ins.host,
            f"chown {self.deploy_user}:{self.deploy_user} {shlex.quote(self.remote_path)}",
            instance=ins.id,
        )

    def rollback(self, ctx: Context) -> None:
        raise UnsupportedRollbackError(self)

    def __str__(self) -> str:
        return (
            f"InitConfig: cluster={self.cluster}, user={self.deploy_user}, "
            f"host={self.instance.host}, path={self.remote_path}, {self.paths}"
        )


class SystemdUnit(RemoteTask):
    """Install the systemd unit of an instance."""

    def __init__(self, instance: Instance, deploy_user: str, renderer: Optional[TemplateRenderer] = None):
        self.instance = instance
        self.deploy_user = deploy_user
        self.renderer = renderer or TemplateRenderer()

    @property
    def unit_path(self) -> str:
        return posixpath.join(SYSTEMD_DIR, self.instance.service_name)

    def execute(self, ctx: Context) -> None:
        ins = self.instance
        unit = self.renderer.render(
            "systemd.service.j2",
            {"role": ins.role, "user": self.deploy_user, "deploy_dir": ins.deploy_dir},
        )
        self._put_text(ctx, ins.host, unit, self.unit_path, instance=ins.id)
        self._run(ctx, ins.host, "systemctl daemon-reload", instance=ins.id)

    def rollback(self, ctx: Context) -> None:
        ins = self.instance
        self._run(
            ctx, ins.host, f"rm -f {self.unit_path} && systemctl daemon-reload", instance=ins.id
        )

    def __str__(self) -> str:
        return f"SystemdUnit: host={self.instance.host}, unit={self.unit_path}"


# ------------------------------------------------------------------
# Service lifecycle
# ------------------------------------------------------------------

class _SystemctlTask(RemoteTask):
    action: str = ""

    def __init__(self, instance: Instance):
        self.instance = instance

    def _systemctl(self, ctx: Context, action: str) -> None:
        ins = self.instance
        self._run(ctx, ins.host, f"systemctl daemon-reload && systemctl {action} {ins.service_name}", instance=ins.id)

    def execute(self, ctx: Context) -> None:
        self._systemctl(ctx, self.action)

    def __str__(self) -> str:
        return f"{type(self).__name__}: {self.instance.role} {self.instance.id} ({self.instance.service_name})"


class StartInstance(_SystemctlTask):
    action = "start"

    def rollback(self, ctx: Context) -> None:
        self._systemctl(ctx, "stop")


class StopInstance(_SystemctlTask):
    action = "stop"

    def rollback(self, ctx: Context) -> None:
        self._systemctl(ctx, "start")


class RestartInstance(_SystemctlTask):
    action = "restart"

    def rollback(self, ctx: Context) -> None:
        raise UnsupportedRollbackError(self)


class DestroyInstance(RemoteTask):
    """Stop an instance and delete its unit and directories. One-way."""

    def __init__(self, instance: Instance):
        self.instance = instance

    def execute(self, ctx: Context) -> None:
        ins = self.instance
        unit = posixpath.join(SYSTEMD_DIR, ins.service_name)
        dirs = " ".join(shlex.quote(d) for d in [*ins.dirs, ins.log_dir])
        self._run(
            ctx,
            ins.host,
            f"systemctl stop {ins.service_name}; systemctl disable {ins.service_name}; "
            f"rm -f {unit} && rm -rf {dirs} && systemctl daemon-reload",
            instance=ins.id,
        )
        log.info("destroyed %s %s", ins.role, ins.id)

    def rollback(self, ctx: Context) -> None:
        raise UnsupportedRollbackError(self)

    def __str__(self) -> str:
        return f"DestroyInstance: {self.instance.role} {self.instance.id}"


class Func(Task):
    """Adapter for an in-process step with an optional undo."""

    def __init__(
        self,
        name: str,
        fn: Callable[[Context], None],
        undo: Optional[Callable[[Context], None]] = None,
    ):
        self.name = name
        self.fn = fn
        self.undo = undo

    def execute(self, ctx: Context) -> None:
        self.fn(ctx)

    def rollback(self, ctx: Context) -> None:
        if self.undo is None:
            raise UnsupportedRollbackError(self)
        self.undo(ctx)

    def __str__(self) -> str:
        return f"Func: {self.name}"
