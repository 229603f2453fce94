# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/clusterops/topology/instance.py
from __future__ import annotations

import logging
import posixpath
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, ClassVar, Dict, List, Optional, Type

from ..errors import PDError
from ..meta.models import (
    AlertManagerSpec,
    GlobalOptions,
    GrafanaSpec,
    InstanceSpec,
    PDSpec,
    PrometheusSpec,
    TiDBSpec,
    TiFlashSpec,
    TiKVSpec,
)
from .status import DOWN, InstanceStatus

if TYPE_CHECKING:
    from ..operation.pd import PDClient

log = logging.getLogger("clusterops")


# ------------------------------------------------------------------
# Roles
# ------------------------------------------------------------------

class Role(ABC):
    """
    Role-specific behaviour of an instance. Subclasses describe ports,
    directories and how the managed system reports membership.
    """

    name: ClassVar[str]
    spec_type: ClassVar[Type[InstanceSpec]]
    has_data_dir: ClassVar[bool] = True
    # registers itself as a store in PD
    is_store: ClassVar[bool] = False

    @abstractmethod
    def main_port(self, spec) -> int: ...

    @abstractmethod
    def ports(self, spec) -> List[int]: ...

    def store_address(self, spec) -> Optional[str]:
        return None

    def membership_status(self, ins: "Instance", pd: Optional["PDClient"]) -> InstanceStatus:
        return InstanceStatus.UNRESOLVED


class PDRole(Role):
    name = "pd"
    spec_type = PDSpec

    def main_port(self, spec: PDSpec) -> int:
        return spec.client_port

    def ports(self, spec: PDSpec) -> List[int]:
        return [spec.client_port, spec.peer_port]

    def membership_status(self, ins, pd):
        if pd is None:
            return InstanceStatus.UNRESOLVED
        try:
            members = pd.health()
            leader = pd.leader_name()
        except PDError as exc:
            log.debug("pd health query for %s failed: %s", ins.id, exc)
            return DOWN

        url = f"http://{ins.host}:{ins.spec.client_port}"
        for m in members:
            if m.get("name") == ins.spec.name or url in (m.get("client_urls") or []):
                state = "Healthy" if m.get("health") else "Unhealthy"
                if leader and m.get("name") == leader:
                    state += "|L"
                return InstanceStatus.of(state)
        return DOWN


class _StoreRole(Role):
    is_store = True

    def membership_status(self, ins, pd):
        if pd is None:
            return InstanceStatus.UNRESOLVED
        try:
            states = pd.store_states()
        except PDError as exc:
            log.debug("pd store query for %s failed: %s", ins.id, exc)
            return DOWN
        state = states.get(self.store_address(ins.spec))
        return InstanceStatus.of(state) if state else InstanceStatus.of("N/A")


class TiKVRole(_StoreRole):
    name = "tikv"
    spec_type = TiKVSpec

    def main_port(self, spec: TiKVSpec) -> int:
        return spec.port

    def ports(self, spec: TiKVSpec) -> List[int]:
        return [spec.port, spec.status_port]

    def store_address(self, spec: TiKVSpec) -> str:
        return f"{spec.host}:{spec.port}"


class TiFlashRole(_StoreRole):
    name = "tiflash"
    spec_type = TiFlashSpec

    def main_port(self, spec: TiFlashSpec) -> int:
        return spec.tcp_port

    def ports(self, spec: TiFlashSpec) -> List[int]:
        return [
            spec.tcp_port,
            spec.http_port,
            spec.flash_service_port,
            spec.flash_proxy_port,
            spec.flash_proxy_status_port,
            spec.metrics_port,
        ]

    def store_address(self, spec: TiFlashSpec) -> str:
        return f"{spec.host}:{spec.flash_service_port}"


class TiDBRole(Role):
    name = "tidb"
    spec_type = TiDBSpec
    has_data_dir = False

    def main_port(self, spec: TiDBSpec) -> int:
        return spec.port

    def ports(self, spec: TiDBSpec) -> List[int]:
        return [spec.port, spec.status_port]


class PrometheusRole(Role):
    name = "prometheus"
    spec_type = PrometheusSpec

    def main_port(self, spec: PrometheusSpec) -> int:
        return spec.port

    def ports(self, spec: PrometheusSpec) -> List[int]:
        return [spec.port]


class GrafanaRole(Role):
    name = "grafana"
    spec_type = GrafanaSpec
    has_data_dir = False

    def main_port(self, spec: GrafanaSpec) -> int:
        return spec.port

    def ports(self, spec: GrafanaSpec) -> List[int]:
        return [spec.port]


class AlertManagerRole(Role):
    name = "alertmanager"
    spec_type = AlertManagerSpec

    def main_port(self, spec: AlertManagerSpec) -> int:
        return spec.web_port

    def ports(self, spec: AlertManagerSpec) -> List[int]:
        return [spec.web_port, spec.cluster_port]


ROLES: Dict[str, Role] = {
    r.name: r
    for r in (
        PDRole(),
        TiKVRole(),
        TiFlashRole(),
        TiDBRole(),
        PrometheusRole(),
        GrafanaRole(),
        AlertManagerRole(),
    )
}


# ------------------------------------------------------------------
# Instance
# ------------------------------------------------------------------

def _abs_dir(base: str, path: str) -> str:
    return path if path.startswith("/") else posixpath.join(base, path)


@dataclass(frozen=True)
class Instance:
    role_impl: Role
    spec: InstanceSpec
    options: GlobalOptions = field(default_factory=GlobalOptions)

    @property
    def role(self) -> str:
        return self.role_impl.name

    @property
    def host(self) -> str:
        return self.spec.host

    @property
    def ssh_port(self) -> int:
        return self.spec.ssh_port or self.options.ssh_port

    @property
    def main_port(self) -> int:
        return self.role_impl.main_port(self.spec)

    @property
    def id(self) -> str:
        return f"{self.host}:{self.main_port}"

    @property
    def ports(self) -> List[int]:
        return self.role_impl.ports(self.spec)

    @property
    def service_name(self) -> str:
        return f"{self.role}-{self.main_port}.service"

    @property
    def config_name(self) -> str:
        return f"{self.role}.toml"

    @property
    def deploy_dir(self) -> str:
        home = f"/home/{self.options.user}"
        if self.spec.deploy_dir:
            return _abs_dir(home, self.spec.deploy_dir)
        return _abs_dir(home, posixpath.join(self.options.deploy_dir, f"{self.role}-{self.main_port}"))

    @property
    def data_dir(self) -> Optional[str]:
        if not self.role_impl.has_data_dir:
            return None
        return _abs_dir(self.deploy_dir, self.spec.data_dir or self.options.data_dir)

    @property
    def dirs(self) -> List[str]:
        """Deploy dir first, data dir second when the role has one."""
        dirs = [self.deploy_dir]
        if self.data_dir:
            dirs.append(self.data_dir)
        return dirs

    @property
    def log_dir(self) -> str:
        return posixpath.join(self.deploy_dir, "log")

    def status(self, pd: Optional["PDClient"] = None) -> InstanceStatus:
        """Status as reported by the managed system's membership view."""
        return self.role_impl.membership_status(self, pd)
