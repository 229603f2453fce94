# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/clusterops/meta/store.py

import logging
import os
import shutil
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Tuple

import yaml

from ..errors import MetaNotFound
from .models import ClusterMeta

log = logging.getLogger("clusterops")

META_FILE_NAME = "meta.yaml"
BACKUP_DIR_NAME = "backup"


class MetaStore:
    """
    Reads and writes cluster metadata under ``<home>/clusters/<name>/``.

    Layout per cluster::

        meta.yaml            current metadata
        backup/meta-*.yaml   previous versions, one per save
        ssh/id_rsa[.pub]     cluster ssh key pair
    """

    def __init__(self, home: str | Path):
        self.home = Path(home)

    def cluster_path(self, cluster: str, *parts: str) -> Path:
        return self.home.joinpath("clusters", cluster, *parts)

    def ssh_key_paths(self, cluster: str) -> Tuple[Path, Path]:
        return (
            self.cluster_path(cluster, "ssh", "id_rsa"),
            self.cluster_path(cluster, "ssh", "id_rsa.pub"),
        )

    def exists(self, cluster: str) -> bool:
        return self.cluster_path(cluster, META_FILE_NAME).is_file()

    def load(self, cluster: str) -> ClusterMeta:
        path = self.cluster_path(cluster, META_FILE_NAME)
        if not path.is_file():
            raise MetaNotFound(cluster)
        data = yaml.safe_load(path.read_text()) or {}
        return ClusterMeta.model_validate(data)

    def save(self, cluster: str, meta: ClusterMeta) -> None:
        """
        Write metadata atomically. The previous file, if any, is copied to
        the backup directory first.
        """
        path = self.cluster_path(cluster, META_FILE_NAME)
        path.parent.mkdir(parents=True, exist_ok=True)

        if path.is_file():
            backup_dir = self.cluster_path(cluster, BACKUP_DIR_NAME)
            backup_dir.mkdir(parents=True, exist_ok=True)
            ts = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
            shutil.copy2(path, backup_dir / f"meta-{ts}.yaml")

        data = meta.model_dump(mode="json", by_alias=True, exclude_none=True)
        text = yaml.safe_dump(data, sort_keys=False)

        fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=".meta-", suffix=".yaml")
        try:
            with os.fdopen(fd, "w") as f:
                f.write(text)
            os.replace(tmp, path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

        log.debug("saved metadata of cluster %s to %s", cluster, path)
