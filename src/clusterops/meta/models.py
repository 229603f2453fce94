# src/clusterops/meta/models.py

from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


class GlobalOptions(BaseModel):
    user: str = "tidb"
    ssh_port: int = 22
    deploy_dir: str = "deploy"
    data_dir: str = "data"


class InstanceSpec(BaseModel):
    """Fields shared by every role's server entry."""

    host: str
    ssh_port: Optional[int] = None
    deploy_dir: Optional[str] = None
    data_dir: Optional[str] = None


class PDSpec(InstanceSpec):
    name: Optional[str] = None
    client_port: int = 2379
    peer_port: int = 2380


class TiKVSpec(InstanceSpec):
    port: int = 20160
    status_port: int = 20180


class TiFlashSpec(InstanceSpec):
    tcp_port: int = 9000
    http_port: int = 8123
    flash_service_port: int = 3930
    flash_proxy_port: int = 20170
    flash_proxy_status_port: int = 20292
    metrics_port: int = 8234


class TiDBSpec(InstanceSpec):
    port: int = 4000
    status_port: int = 10080


class PrometheusSpec(InstanceSpec):
    port: int = 9090


class GrafanaSpec(InstanceSpec):
    port: int = 3000


class AlertManagerSpec(InstanceSpec):
    web_port: int = 9093
    cluster_port: int = 9094


class TopologySpec(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    global_: GlobalOptions = Field(default_factory=GlobalOptions, alias="global")
    pd_servers: List[PDSpec] = Field(default_factory=list)
    tikv_servers: List[TiKVSpec] = Field(default_factory=list)
    tiflash_servers: List[TiFlashSpec] = Field(default_factory=list)
    tidb_servers: List[TiDBSpec] = Field(default_factory=list)
    monitoring_servers: List[PrometheusSpec] = Field(default_factory=list)
    grafana_servers: List[GrafanaSpec] = Field(default_factory=list)
    alertmanager_servers: List[AlertManagerSpec] = Field(default_factory=list)


class ClusterMeta(BaseModel):
    """Durable record of a deployed cluster."""

    user: str
    version: str
    topology: TopologySpec
