import pytest

from clusterops.meta.models import GlobalOptions, PDSpec, TiDBSpec, TiKVSpec, TopologySpec
from clusterops.topology.instance import Role
from clusterops.topology.status import InstanceStatus
from clusterops.topology.topology import START_ORDER, Topology

from fakes import FakePD, make_meta


def test_start_order_is_deterministic():
    topo = Topology(make_meta().topology)
    first = [(c.name, [i.id for i in c.instances]) for c in topo.components_by_start_order()]
    second = [(c.name, [i.id for i in c.instances]) for c in topo.components_by_start_order()]
    assert first == second
    assert [name for name, _ in first] == list(START_ORDER)


def test_coordination_before_storage_before_gateways():
    names = [c.name for c in Topology(make_meta().topology).components_by_start_order()]
    assert names.index("pd") < names.index("tikv") < names.index("tidb")


def test_instances_keep_declaration_order_within_component():
    spec = TopologySpec(tikv_servers=[TiKVSpec(host="h3"), TiKVSpec(host="h1"), TiKVSpec(host="h2")])
    tikv = Topology(spec).components_by_start_order()[1]
    assert [i.host for i in tikv.instances] == ["h3", "h1", "h2"]


def test_instance_attributes():
    spec = TopologySpec(
        global_=GlobalOptions(user="ops", deploy_dir="/opt/db"),
        pd_servers=[PDSpec(host="h1", data_dir="/ssd/pd")],
        tidb_servers=[TiDBSpec(host="h2", ssh_port=2222)],
    )
    topo = Topology(spec)
    pd = topo.find("h1:2379")
    assert pd.role == "pd"
    assert pd.ports == [2379, 2380]
    assert pd.dirs == ["/opt/db/pd-2379", "/ssd/pd"]
    assert pd.service_name == "pd-2379.service"

    tidb = topo.find("h2:4000")
    # gateways have no data dir
    assert tidb.dirs == ["/opt/db/tidb-4000"]
    assert tidb.ssh_port == 2222
    assert topo.hosts() == [("h1", 22), ("h2", 2222)]


def test_global_alias_parses_from_yaml_shape():
    spec = TopologySpec.model_validate({"global": {"user": "ops"}, "pd_servers": [{"host": "h1"}]})
    assert spec.global_.user == "ops"


def test_remove_instances_mutates_spec():
    meta = make_meta()
    topo = Topology(meta.topology)
    removed = topo.remove_instances(["10.0.0.2:20160", "nope:1"])
    assert removed == ["10.0.0.2:20160"]
    assert [s.host for s in meta.topology.tikv_servers] == ["10.0.0.1", "10.0.0.3"]
    assert topo.find("10.0.0.2:20160") is None


def test_store_membership_status():
    topo = Topology(make_meta().topology)
    pd = FakePD(stores={"10.0.0.1:20160": "Up", "10.0.0.2:20160": "Tombstone"})
    assert topo.find("10.0.0.1:20160").status(pd) == InstanceStatus.of("Up")
    assert topo.find("10.0.0.2:20160").status(pd) == InstanceStatus.of("Tombstone")
    assert topo.find("10.0.0.3:20160").status(pd) == InstanceStatus.of("N/A")
    assert str(topo.find("10.0.0.1:20160").status(FakePD(fail=True))) == "Down"


def test_pd_membership_status_marks_leader():
    topo = Topology(make_meta().topology)
    pd = FakePD(members=[{"name": "pd-1", "health": True}], leader="pd-1")
    assert str(topo.find("10.0.0.1:2379").status(pd)) == "Healthy|L"


def test_gateway_membership_is_unresolved():
    topo = Topology(make_meta().topology)
    status = topo.find("10.0.0.4:4000").status(FakePD())
    assert not status.resolved
    assert str(status) == "-"


def test_role_without_ports_cannot_be_instantiated():
    class Portless(Role):
        name = "portless"

    with pytest.raises(TypeError):
        Portless()
