import pytest

from clusterops.errors import RemoteActionFailed
from clusterops.operation.status import StatusReconciler
from clusterops.operation.systemd import get_service_status, parse_active_state
from clusterops.task.context import Context
from clusterops.topology.status import InstanceStatus
from clusterops.topology.topology import Topology

from fakes import FakeExecutor, FakeExecutorFactory, FakePD, make_context, make_meta, make_settings

SYSTEMCTL_RUNNING = (
    "● tidb-4000.service - tidb service\n"
    "   Loaded: loaded (/etc/systemd/system/tidb-4000.service; enabled)\n"
    "   Active: active (running) since Mon 2020-04-20 10:00:00 CST; 2h ago\n"
)


@pytest.fixture
def topo():
    return Topology(make_meta().topology)


def test_unresolved_is_distinct_from_real_states():
    assert not InstanceStatus.UNRESOLVED.resolved
    assert str(InstanceStatus.UNRESOLVED) == "-"
    assert InstanceStatus.UNRESOLVED != InstanceStatus.of("Down")
    with pytest.raises(ValueError):
        InstanceStatus.of("-")


def test_parse_active_state():
    assert parse_active_state("Active: active (running) since x") == "Up"
    assert parse_active_state("Active: inactive (dead)") == "inactive"
    assert parse_active_state("Active: failed") is None
    assert parse_active_state("") is None


def test_get_service_status_picks_active_line():
    e = FakeExecutor("h", responses={"systemctl status": (0, SYSTEMCTL_RUNNING, "")})
    assert get_service_status(e, "tidb-4000.service").startswith("Active: active (running)")

    one_line = FakeExecutor("h", responses={"systemctl status": (0, "● foo.service - ... Active: active (running)", "")})
    assert get_service_status(one_line, "foo.service") == "Active: active (running)"


def test_get_service_status_wraps_transport_errors():
    e = FakeExecutor("h", responses={"systemctl status": ConnectionResetError("reset")})
    with pytest.raises(RemoteActionFailed):
        get_service_status(e, "foo.service", host="h")


def test_falls_back_to_live_query_when_membership_unresolved(tmp_path, topo):
    factory = FakeExecutorFactory(
        {"10.0.0.4": {"systemctl status": (0, "● foo.service - ... Active: active (running)", "")}}
    )
    ctx = make_context(tmp_path, topo, factory)
    status = StatusReconciler(ctx, FakePD()).resolve(topo.find("10.0.0.4:4000"))
    assert status == InstanceStatus.of("Up")


def test_raw_state_word_passes_through(tmp_path, topo):
    factory = FakeExecutorFactory(
        {"10.0.0.4": {"systemctl status": (3, "x\ny\n   Active: inactive (dead)\n", "")}}
    )
    ctx = make_context(tmp_path, topo, factory)
    status = StatusReconciler(ctx, FakePD()).resolve(topo.find("10.0.0.4:4000"))
    assert str(status) == "inactive"


def test_live_query_failure_degrades_to_unresolved(tmp_path, topo):
    factory = FakeExecutorFactory({"10.0.0.4": {"systemctl status": TimeoutError("timed out")}})
    ctx = make_context(tmp_path, topo, factory)
    status = StatusReconciler(ctx, FakePD()).resolve(topo.find("10.0.0.4:4000"))
    assert status is InstanceStatus.UNRESOLVED


def test_missing_executor_degrades_to_unresolved(tmp_path, topo):
    ctx = Context(make_settings(tmp_path))
    status = StatusReconciler(ctx, FakePD()).resolve(topo.find("10.0.0.4:4000"))
    assert status is InstanceStatus.UNRESOLVED


def test_membership_view_is_authoritative(tmp_path, topo):
    factory = FakeExecutorFactory()
    ctx = make_context(tmp_path, topo, factory)
    pd = FakePD(stores={"10.0.0.2:20160": "Offline"})
    status = StatusReconciler(ctx, pd).resolve(topo.find("10.0.0.2:20160"))
    assert str(status) == "Offline"
    assert factory.built["10.0.0.2"].commands == []
