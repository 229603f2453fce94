# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/clusterops/logging/log.py
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path

LOG_FORMAT = "%(asctime)s | %(levelname)-7s | %(message)s"

# paramiko logs every channel open at INFO and floods the run log
_QUIET_LOGGERS = ("paramiko", "urllib3")


def prune_logs(cluster_dir: Path, keep: int) -> list[Path]:
    """Delete all but the newest ``keep`` run logs of one cluster."""
    runs = sorted(cluster_dir.glob("*.log"), key=lambda p: p.name, reverse=True)
    removed = []
    for old in runs[max(keep, 0):]:
        old.unlink(missing_ok=True)
        old.with_suffix(".jsonl").unlink(missing_ok=True)
        removed.append(old)
    return removed


def init_logging(
    log_dir: Path,
    cluster: str,
    *,
    verbose: bool = False,
    keep: int = 20,
    name: str = "clusterops",
) -> tuple[logging.Logger, str, Path]:
    """
    One run log per invocation under ``<log_dir>/<cluster>/``, named
    ``<utc-ts>-<run_id>.log`` so names sort by start time. The file gets
    everything; the console gets INFO, or DEBUG when verbose. Only the newest
    ``keep`` runs of the cluster are retained.

    Returns ``(logger, run_id, log_path)``; the run id is shared with the
    lifecycle events of the same run.
    """
    run_id = uuid.uuid4().hex[:12]
    cluster_dir = Path(log_dir) / (cluster or "_")
    cluster_dir.mkdir(parents=True, exist_ok=True)

    ts = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S")
    log_path = cluster_dir / f"{ts}-{run_id}.log"
    # make room for this run before its file exists
    pruned = prune_logs(cluster_dir, keep - 1)

    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()
    logger.propagate = False

    formatter = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    fh = logging.FileHandler(log_path)
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(formatter)

    ch = logging.StreamHandler()
    ch.setLevel(logging.DEBUG if verbose else logging.INFO)
    ch.setFormatter(formatter)

    logger.addHandler(fh)
    logger.addHandler(ch)

    for noisy in _QUIET_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.DEBUG if verbose else logging.WARNING)

    for old in pruned:
        logger.debug("pruned old run log %s", old.name)
    logger.debug("cluster=%s run_id=%s log_file=%s", cluster, run_id, log_path)

    return logger, run_id, log_path
