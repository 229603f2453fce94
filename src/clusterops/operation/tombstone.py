# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/clusterops/operation/tombstone.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from ..errors import (
    ClusterOpsError,
    NoExecutorError,
    PDError,
    PersistenceFailed,
    RemoteActionFailed,
    TombstoneCheckRefused,
)
from ..meta.models import ClusterMeta
from ..meta.store import MetaStore
from ..observers.dispatcher import EventBus
from ..observers.events import (
    new_ctx,
    MetaSaved,
    TombstoneDestroyed,
    TombstoneDiscovered,
    TombstoneFailed,
)
from ..task.context import Context
from ..task.task import DestroyInstance
from ..topology.instance import Instance
from ..topology.status import TOMBSTONE
from ..topology.topology import Topology
from .pd import PDClient

log = logging.getLogger("clusterops")


def needs_tombstone_check(topo: Topology) -> bool:
    """Only roles that register as PD stores can become tombstones."""
    return any(ins.role_impl.is_store for ins in topo.instances())


@dataclass(frozen=True)
class TombstonePolicy:
    # refuse the destructive phase unless a majority of PD members is healthy
    require_pd_healthy: bool = False


class TombstoneOperator:
    """
    Finds store instances PD reports as ``Tombstone`` and removes them.

    ``run(return_nodes_only=True)`` only discovers. Otherwise every candidate
    is destroyed in order, the first failure aborts, and only after all of
    them succeeded are the instances dropped from the topology and ``persist``
    called.
    """

    def __init__(
        self,
        ctx: Context,
        topology: Topology,
        pd: PDClient,
        *,
        policy: Optional[TombstonePolicy] = None,
        persist: Optional[Callable[[List[str]], None]] = None,
        cluster: str = "",
        bus: Optional[EventBus] = None,
        run_ctx: Optional[Dict] = None,
    ):
        self.ctx = ctx
        self.topology = topology
        self.pd = pd
        self.policy = policy or TombstonePolicy()
        self.persist = persist
        self.cluster = cluster
        self.bus = bus or EventBus()
        self.run_ctx = run_ctx or new_ctx(cluster=cluster)

    def discover(self) -> List[str]:
        """Read-only: ids of store instances PD reports as tombstone, in start order."""
        states = self.pd.store_states()
        nodes: List[str] = []
        for ins in self.topology.instances():
            if not ins.role_impl.is_store:
                continue
            if states.get(ins.role_impl.store_address(ins.spec)) == TOMBSTONE.state:
                nodes.append(ins.id)
        return nodes

    def check_policy(self) -> None:
        if not self.policy.require_pd_healthy:
            return
        try:
            healthy = self.pd.has_quorum()
        except PDError as exc:
            raise TombstoneCheckRefused(f"cannot verify PD health: {exc}") from exc
        if not healthy:
            raise TombstoneCheckRefused("PD has no healthy quorum, refusing to destroy tombstone nodes")

    def _instance(self, node: str) -> Instance:
        ins = self.topology.find(node)
        if ins is None:
            raise ClusterOpsError(f"instance {node} not found in topology")
        return ins

    def destroy(self, nodes: List[str]) -> None:
        for node in nodes:
            ins = self._instance(node)
            try:
                DestroyInstance(ins).execute(self.ctx)
            except NoExecutorError as exc:
                self.bus.emit(TombstoneFailed(node=node, error=str(exc), **self.run_ctx))
                raise NoExecutorError(exc.host, node) from exc
            except ClusterOpsError as exc:
                self.bus.emit(TombstoneFailed(node=node, error=str(exc), **self.run_ctx))
                if isinstance(exc, RemoteActionFailed) and exc.instance == node:
                    raise
                raise RemoteActionFailed(ins.host, exc, node) from exc
            self.bus.emit(TombstoneDestroyed(node=node, host=ins.host, **self.run_ctx))

    def run(self, return_nodes_only: bool = False) -> List[str]:
        nodes = self.discover()
        self.bus.emit(TombstoneDiscovered(nodes=list(nodes), **self.run_ctx))
        if not nodes or return_nodes_only:
            return nodes

        self.check_policy()
        log.info("Start destroy Tombstone nodes: %s ...", nodes)
        self.destroy(nodes)

        removed = self.topology.remove_instances(nodes)
        if self.persist is not None:
            try:
                self.persist(removed)
            except Exception as exc:
                log.error("saving metadata after tombstone removal failed: %s", exc)
                raise PersistenceFailed(self.cluster, exc) from exc
            self.bus.emit(MetaSaved(removed=removed, **self.run_ctx))
        log.info("Destroy success")
        return removed


def destroy_tombstone_if_needed(
    store: MetaStore,
    cluster: str,
    meta: ClusterMeta,
    ctx: Context,
    pd: PDClient,
    *,
    policy: Optional[TombstonePolicy] = None,
    return_nodes_only: bool = False,
    bus: Optional[EventBus] = None,
) -> List[str]:
    """
    Preview tombstone nodes and, unless ``return_nodes_only``, destroy them
    and save the metadata. Returns the affected node ids.
    """
    topo = Topology(meta.topology)
    if not needs_tombstone_check(topo):
        return []

    op = TombstoneOperator(
        ctx,
        topo,
        pd,
        policy=policy,
        persist=lambda _removed: store.save(cluster, meta),
        cluster=cluster,
        bus=bus,
    )
    nodes = op.run(return_nodes_only=True)
    if not nodes or return_nodes_only:
        return nodes
    return op.run(return_nodes_only=False)
