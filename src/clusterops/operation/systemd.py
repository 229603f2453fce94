# src/clusterops/operation/systemd.py
from __future__ import annotations

from typing import Optional

from ..errors import RemoteActionFailed
from ..executor.interface import RemoteExecutor
from ..task.task import TRANSPORT_ERRORS


def get_service_status(
    e: RemoteExecutor,
    service: str,
    *,
    host: str = "",
    timeout: Optional[float] = None,
) -> str:
    """
    Return the ``Active:`` line of ``systemctl status <service>``, e.g.
    ``Active: active (running) since ...``. Falls back to the third line of
    the output. Empty string when systemd prints nothing useful.
    """
    try:
        # systemctl status exits non-zero for inactive units; the text still counts
        _, out, _ = e.run(f"systemctl status {service}", sudo=True, timeout=timeout)
    except TRANSPORT_ERRORS as exc:
        raise RemoteActionFailed(host or repr(e), exc) from exc

    lines = out.splitlines()
    for line in lines:
        idx = line.find("Active:")
        if idx >= 0:
            return line[idx:].strip()
    if len(lines) >= 3:
        return lines[2].strip()
    return ""


def parse_active_state(active: str) -> Optional[str]:
    """``Active: active (running) ...`` -> ``Up``; other state words pass through."""
    parts = active.strip().split()
    if len(parts) <= 2:
        return None
    if parts[1] == "active":
        return "Up"
    return parts[1]
