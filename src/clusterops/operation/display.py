# src/clusterops/operation/display.py
from __future__ import annotations

import concurrent.futures
from dataclasses import dataclass
from typing import Iterable, List, Optional

from ..task.builder import select_instances
from ..topology.instance import Instance
from ..topology.status import UNRESOLVED_MARK, InstanceStatus
from ..topology.topology import Topology
from .status import StatusReconciler

HEADER = ("ID", "Role", "Host", "Ports", "Status", "Data Dir", "Deploy Dir")


@dataclass(frozen=True)
class StatusRow:
    id: str
    role: str
    host: str
    ports: str
    status: InstanceStatus
    data_dir: str
    deploy_dir: str

    def as_list(self) -> List[str]:
        return [self.id, self.role, self.host, self.ports, str(self.status), self.data_dir, self.deploy_dir]


def sort_rows(rows: Iterable[StatusRow]) -> List[StatusRow]:
    """Order by role, host, then the joined port string."""
    return sorted(rows, key=lambda r: (r.role, r.host, r.ports))


def _row(ins: Instance, status: InstanceStatus) -> StatusRow:
    return StatusRow(
        id=ins.id,
        role=ins.role,
        host=ins.host,
        ports="/".join(str(p) for p in ins.ports),
        status=status,
        data_dir=ins.data_dir or UNRESOLVED_MARK,
        deploy_dir=ins.deploy_dir,
    )


def cluster_status_rows(
    topo: Topology,
    reconciler: StatusReconciler,
    *,
    roles: Optional[Iterable[str]] = None,
    nodes: Optional[Iterable[str]] = None,
    workers: int = 8,
) -> List[StatusRow]:
    """
    Resolve the status of every selected instance concurrently and return
    the sorted status table.
    """
    instances = select_instances(topo.components_by_start_order(), roles, nodes)
    # one slot per instance, each written once by its own future
    statuses: List[InstanceStatus] = [InstanceStatus.UNRESOLVED] * len(instances)

    if instances:
        with concurrent.futures.ThreadPoolExecutor(max_workers=max(1, workers)) as pool:
            futures = {pool.submit(reconciler.resolve, ins): i for i, ins in enumerate(instances)}
            for fut in concurrent.futures.as_completed(futures):
                statuses[futures[fut]] = fut.result()

    return sort_rows(_row(ins, st) for ins, st in zip(instances, statuses))
