from pathlib import Path
import textwrap

import pytest

from clusterops.errors import MetaNotFound
from clusterops.meta.store import MetaStore

from fakes import make_meta


def test_load_hand_written_meta(tmp_path: Path):
    store = MetaStore(tmp_path)
    path = store.cluster_path("prod", "meta.yaml")
    path.parent.mkdir(parents=True)
    path.write_text(textwrap.dedent("""
        user: tidb
        version: v4.0.0
        topology:
          global:
            user: tidb
            deploy_dir: /data/deploy
          pd_servers:
            - host: 10.0.1.1
          tikv_servers:
            - host: 10.0.1.2
              port: 20161
    """))

    meta = store.load("prod")
    assert meta.version == "v4.0.0"
    assert meta.topology.global_.deploy_dir == "/data/deploy"
    assert meta.topology.tikv_servers[0].port == 20161


def test_missing_cluster(tmp_path: Path):
    store = MetaStore(tmp_path)
    assert not store.exists("nope")
    with pytest.raises(MetaNotFound):
        store.load("nope")


def test_save_writes_global_alias_and_keeps_backup(tmp_path: Path):
    store = MetaStore(tmp_path)
    meta = make_meta()
    store.save("c1", meta)
    assert "global:" in store.cluster_path("c1", "meta.yaml").read_text()

    meta.topology.tikv_servers.pop()
    store.save("c1", meta)

    backups = list(store.cluster_path("c1", "backup").glob("meta-*.yaml"))
    assert len(backups) == 1
    assert len(store.load("c1").topology.tikv_servers) == 2


def test_ssh_key_paths(tmp_path: Path):
    priv, pub = MetaStore(tmp_path).ssh_key_paths("c1")
    assert priv == tmp_path / "clusters" / "c1" / "ssh" / "id_rsa"
    assert pub.name == "id_rsa.pub"
