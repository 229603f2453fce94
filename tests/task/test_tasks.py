import socket

import pytest

from clusterops.errors import NoExecutorError, RemoteActionFailed, UnsupportedRollbackError
from clusterops.task.context import Context
from clusterops.task.task import (
    DestroyInstance,
    DirPaths,
    InitConfig,
    MkDirs,
    RestartInstance,
    StartInstance,
    StopInstance,
    SystemdUnit,
)
from clusterops.topology.topology import Topology

from fakes import FakeExecutorFactory, make_context, make_meta, make_settings


@pytest.fixture
def topo():
    return Topology(make_meta().topology)


@pytest.fixture
def tikv(topo):
    return topo.find("10.0.0.2:20160")


def test_one_way_tasks_refuse_rollback_regardless_of_context(tmp_path, topo, tikv):
    empty_ctx = Context(make_settings(tmp_path))
    full_ctx = make_context(tmp_path, topo)
    paths = DirPaths.for_instance(tikv, tmp_path / "cache")
    one_way = [
        InitConfig("c1", "v4.0.0", tikv, "tidb", paths),
        RestartInstance(tikv),
        DestroyInstance(tikv),
    ]
    for task in one_way:
        for ctx in (empty_ctx, full_ctx):
            with pytest.raises(UnsupportedRollbackError):
                task.rollback(ctx)


def test_missing_executor_is_a_distinct_error(tmp_path, tikv):
    ctx = Context(make_settings(tmp_path))
    with pytest.raises(NoExecutorError) as ei:
        StartInstance(tikv).execute(ctx)
    assert ei.value.host == "10.0.0.2"


def test_nonzero_exit_is_wrapped_with_host_and_instance(tmp_path, topo, tikv):
    factory = FakeExecutorFactory({"10.0.0.2": {"systemctl start": (1, "", "unit not found")}})
    ctx = make_context(tmp_path, topo, factory)
    with pytest.raises(RemoteActionFailed) as ei:
        StartInstance(tikv).execute(ctx)
    assert ei.value.host == "10.0.0.2"
    assert ei.value.instance == "10.0.0.2:20160"
    assert "unit not found" in str(ei.value)


def test_timeout_is_wrapped_as_remote_failure(tmp_path, topo, tikv):
    factory = FakeExecutorFactory({"10.0.0.2": {"systemctl stop": socket.timeout("timed out")}})
    ctx = make_context(tmp_path, topo, factory)
    with pytest.raises(RemoteActionFailed) as ei:
        StopInstance(tikv).execute(ctx)
    assert isinstance(ei.value.__cause__, socket.timeout)


def test_start_and_stop_undo_each_other(tmp_path, topo, tikv):
    factory = FakeExecutorFactory()
    ctx = make_context(tmp_path, topo, factory)
    StartInstance(tikv).rollback(ctx)
    StopInstance(tikv).rollback(ctx)
    cmds = factory.built["10.0.0.2"].commands
    assert cmds[0].endswith("systemctl stop tikv-20160.service")
    assert cmds[1].endswith("systemctl start tikv-20160.service")


def test_mkdirs_rollback_only_removes_created_dirs(tmp_path, topo):
    factory = FakeExecutorFactory({"10.0.0.1": {"test -d /data/existing": (0, "", "")}})
    ctx = make_context(tmp_path, topo, factory)
    factory.built["10.0.0.1"].responses["test -d /data/new"] = (1, "", "")

    task = MkDirs("10.0.0.1", ["/data/existing", "/data/new"], "tidb")
    task.execute(ctx)
    task.rollback(ctx)

    cmds = factory.built["10.0.0.1"].commands
    assert "mkdir -p /data/new && chown -R tidb:tidb /data/new" in cmds
    assert cmds[-1] == "rm -rf /data/new"


def test_init_config_renders_and_uploads(tmp_path, topo, tikv):
    factory = FakeExecutorFactory()
    ctx = make_context(tmp_path, topo, factory)
    paths = DirPaths.for_instance(tikv, tmp_path / "cache")
    task = InitConfig("c1", "v4.0.0", tikv, "tidb", paths, pd_endpoints=["10.0.0.1:2379"])

    task.execute(ctx)

    text = task.cache_file.read_text()
    assert 'name = "c1"' in text
    assert 'data-dir = "/home/tidb/deploy/tikv-20160/data"' in text
    assert '"10.0.0.1:2379"' in text

    e = factory.built["10.0.0.2"]
    assert (str(task.cache_file), "/home/tidb/deploy/tikv-20160/conf/tikv.toml") in e.uploads
    assert "InitConfig: cluster=c1, user=tidb, host=10.0.0.2" in str(task)


def test_systemd_unit_install_and_rollback(tmp_path, topo, tikv):
    factory = FakeExecutorFactory()
    ctx = make_context(tmp_path, topo, factory)
    task = SystemdUnit(tikv, "tidb")
    task.execute(ctx)
    task.rollback(ctx)

    e = factory.built["10.0.0.2"]
    unit = e.texts["/etc/systemd/system/tikv-20160.service"]
    assert "User=tidb" in unit
    assert "ExecStart=/home/tidb/deploy/tikv-20160/scripts/run_tikv.sh" in unit
    assert e.commands[-1].startswith("rm -f /etc/systemd/system/tikv-20160.service")


def test_destroy_instance_removes_unit_and_dirs(tmp_path, topo, tikv):
    factory = FakeExecutorFactory()
    ctx = make_context(tmp_path, topo, factory)
    DestroyInstance(tikv).execute(ctx)
    cmd = factory.built["10.0.0.2"].commands[-1]
    assert "systemctl stop tikv-20160.service" in cmd
    assert "rm -rf /home/tidb/deploy/tikv-20160 /home/tidb/deploy/tikv-20160/data" in cmd
