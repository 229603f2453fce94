# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/clusterops/operation/status.py
from __future__ import annotations

import logging
from typing import Optional

from ..task.context import Context
from ..topology.instance import Instance
from ..topology.status import UNRESOLVED_MARK, InstanceStatus
from .pd import PDClient
from .systemd import get_service_status, parse_active_state

log = logging.getLogger("clusterops")


class StatusReconciler:
    """
    Resolves the displayed status of an instance: the managed system's
    membership view first, then the host's service manager. Failures of the
    live query degrade to ``InstanceStatus.UNRESOLVED``.
    """

    def __init__(self, ctx: Context, pd: Optional[PDClient] = None):
        self.ctx = ctx
        self.pd = pd

    def resolve(self, ins: Instance) -> InstanceStatus:
        try:
            status = ins.status(self.pd)
        except Exception as exc:
            log.debug("membership status of %s failed: %s", ins.id, exc)
            status = InstanceStatus.UNRESOLVED
        if status.resolved:
            return status
        return self.query_service(ins)

    def query_service(self, ins: Instance) -> InstanceStatus:
        e, found = self.ctx.get_executor(ins.host)
        if not found:
            log.debug("no executor for %s, status of %s unresolved", ins.host, ins.id)
            return InstanceStatus.UNRESOLVED

        try:
            active = get_service_status(e, ins.service_name, host=ins.host, timeout=self.ctx.ssh_timeout)
        except Exception as exc:
            # best effort: display must not abort on one unreachable node
            log.debug("service status of %s failed: %s", ins.id, exc)
            return InstanceStatus.UNRESOLVED

        state = parse_active_state(active)
        if not state or state == UNRESOLVED_MARK:
            return InstanceStatus.UNRESOLVED
        return InstanceStatus.of(state)
