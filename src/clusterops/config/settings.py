# src/clusterops/config/settings.py


from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
import os


@dataclass(frozen=True)
class Settings:
    home: Path
    ssh_timeout: float
    status_workers: int
    pd_timeout: float


def load_settings() -> Settings:
    # sensible defaults; override via env
    home = os.getenv("CLUSTEROPS_HOME") or str(Path.home() / ".clusterops")
    return Settings(
        home=Path(home),
        ssh_timeout=float(os.getenv("CLUSTEROPS_SSH_TIMEOUT", "5")),
        status_workers=int(os.getenv("CLUSTEROPS_STATUS_WORKERS", "8")),
        pd_timeout=float(os.getenv("CLUSTEROPS_PD_TIMEOUT", "5")),
    )
