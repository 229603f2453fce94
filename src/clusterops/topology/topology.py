# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/clusterops/topology/topology.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set, Tuple

from ..meta.models import TopologySpec
from .instance import ROLES, Instance

# Coordination first, then storage, gateways and finally monitoring.
START_ORDER: Tuple[str, ...] = (
    "pd",
    "tikv",
    "tiflash",
    "tidb",
    "prometheus",
    "grafana",
    "alertmanager",
)

ROLE_FIELDS: Dict[str, str] = {
    "pd": "pd_servers",
    "tikv": "tikv_servers",
    "tiflash": "tiflash_servers",
    "tidb": "tidb_servers",
    "prometheus": "monitoring_servers",
    "grafana": "grafana_servers",
    "alertmanager": "alertmanager_servers",
}


@dataclass(frozen=True)
class Component:
    name: str
    instances: List[Instance] = field(default_factory=list)


class Topology:
    """
    Live view over a ``TopologySpec``. Instances are derived from the spec on
    every call, so removing instances here is reflected in the metadata that
    owns the spec.
    """

    def __init__(self, spec: TopologySpec):
        self.spec = spec

    @classmethod
    def from_spec(cls, spec: TopologySpec) -> "Topology":
        return cls(spec)

    def _component(self, role: str) -> Component:
        impl = ROLES[role]
        specs = getattr(self.spec, ROLE_FIELDS[role])
        return Component(
            name=role,
            instances=[Instance(impl, s, self.spec.global_) for s in specs],
        )

    def components_by_start_order(self) -> List[Component]:
        return [self._component(role) for role in START_ORDER]

    def components_by_stop_order(self) -> List[Component]:
        return list(reversed(self.components_by_start_order()))

    def instances(self) -> List[Instance]:
        return [ins for comp in self.components_by_start_order() for ins in comp.instances]

    def find(self, instance_id: str) -> Optional[Instance]:
        for ins in self.instances():
            if ins.id == instance_id:
                return ins
        return None

    def hosts(self) -> List[Tuple[str, int]]:
        """Distinct hosts with their ssh port, first-seen in start order."""
        seen: Set[str] = set()
        out: List[Tuple[str, int]] = []
        for ins in self.instances():
            if ins.host in seen:
                continue
            seen.add(ins.host)
            out.append((ins.host, ins.ssh_port))
        return out

    def pd_endpoints(self) -> List[str]:
        return [f"{s.host}:{s.client_port}" for s in self.spec.pd_servers]

    def has_role(self, role: str) -> bool:
        return bool(getattr(self.spec, ROLE_FIELDS[role]))

    def remove_instances(self, ids: Iterable[str]) -> List[str]:
        """Drop instances by id from the spec; returns the ids actually removed."""
        wanted = set(ids)
        removed: List[str] = []
        for comp in self.components_by_start_order():
            keep = []
            for ins in comp.instances:
                if ins.id in wanted:
                    removed.append(ins.id)
                else:
                    keep.append(ins.spec)
            setattr(self.spec, ROLE_FIELDS[comp.name], keep)
        return removed
