# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/clusterops/task/builder.py
from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable, List, Optional

from ..meta.models import ClusterMeta
from ..observers.dispatcher import EventBus
from ..topology.instance import Instance
from ..topology.topology import Component, Topology
from .pipeline import Pipeline
from .task import (
    DirPaths,
    InitConfig,
    MkDirs,
    RestartInstance,
    StartInstance,
    StopInstance,
    SystemdUnit,
    Task,
)


def select_instances(
    components: List[Component],
    roles: Optional[Iterable[str]] = None,
    nodes: Optional[Iterable[str]] = None,
) -> List[Instance]:
    """Flatten components keeping their order, applying role/node filters."""
    role_set = set(roles or ())
    node_set = set(nodes or ())
    out: List[Instance] = []
    for comp in components:
        for ins in comp.instances:
            if role_set and ins.role not in role_set:
                continue
            if node_set and ins.id not in node_set:
                continue
            out.append(ins)
    return out


def deploy_config_pipeline(
    cluster: str,
    meta: ClusterMeta,
    cache_dir: Path,
    *,
    roles: Optional[Iterable[str]] = None,
    nodes: Optional[Iterable[str]] = None,
    bus: Optional[EventBus] = None,
    run_ctx: Optional[Dict] = None,
) -> Pipeline:
    """Directories, config file and systemd unit for every selected instance."""
    topo = Topology(meta.topology)
    pd_endpoints = topo.pd_endpoints()
    tasks: List[Task] = []
    for ins in select_instances(topo.components_by_start_order(), roles, nodes):
        tasks.append(MkDirs(ins.host, [*ins.dirs, ins.log_dir], meta.user))
        tasks.append(
            InitConfig(
                cluster,
                meta.version,
                ins,
                meta.user,
                DirPaths.for_instance(ins, cache_dir),
                pd_endpoints=pd_endpoints,
            )
        )
        tasks.append(SystemdUnit(ins, meta.user))
    return Pipeline(tasks, bus=bus, run_ctx=run_ctx)


def start_pipeline(topo: Topology, *, roles=None, nodes=None, bus=None, run_ctx=None) -> Pipeline:
    instances = select_instances(topo.components_by_start_order(), roles, nodes)
    return Pipeline([StartInstance(ins) for ins in instances], bus=bus, run_ctx=run_ctx)


def stop_pipeline(topo: Topology, *, roles=None, nodes=None, bus=None, run_ctx=None) -> Pipeline:
    instances = select_instances(topo.components_by_stop_order(), roles, nodes)
    return Pipeline([StopInstance(ins) for ins in instances], bus=bus, run_ctx=run_ctx)


def restart_pipeline(topo: Topology, *, roles=None, nodes=None, bus=None, run_ctx=None) -> Pipeline:
    instances = select_instances(topo.components_by_start_order(), roles, nodes)
    return Pipeline([RestartInstance(ins) for ins in instances], bus=bus, run_ctx=run_ctx)
