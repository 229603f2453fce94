# src/clusterops/cli/app.py
from __future__ import annotations

from typing import List, Optional, Tuple

import typer

from clusterops.config.settings import Settings, load_settings
from clusterops.errors import ClusterOpsError
from clusterops.logging.log import init_logging
from clusterops.meta.models import ClusterMeta
from clusterops.meta.store import MetaStore
from clusterops.observers.dispatcher import EventBus
from clusterops.observers.events import new_ctx
from clusterops.observers.sinks import ConsoleObserver, JsonLinesObserver, LoggerObserver
from clusterops.operation.display import HEADER, cluster_status_rows
from clusterops.operation.pd import PDClient
from clusterops.operation.status import StatusReconciler
from clusterops.operation.tombstone import TombstonePolicy, destroy_tombstone_if_needed
from clusterops.task.builder import (
    deploy_config_pipeline,
    restart_pipeline,
    start_pipeline,
    stop_pipeline,
)
from clusterops.task.context import Context
from clusterops.topology.topology import Topology
from clusterops.cli.render import render_table


# ------------------------------------------------------------------------------
# CLI setup
# ------------------------------------------------------------------------------

app = typer.Typer(help="Cluster lifecycle CLI", no_args_is_help=True)

RoleOpt = typer.Option(None, "--role", "-R", help="Only operate on specified roles")
NodeOpt = typer.Option(None, "--node", "-N", help="Only operate on specified nodes")


# ------------------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------------------

def _load(cluster: str, settings: Settings) -> Tuple[MetaStore, ClusterMeta]:
    store = MetaStore(settings.home)
    try:
        meta = store.load(cluster)
    except ClusterOpsError as exc:
        raise typer.BadParameter(str(exc)) from exc
    return store, meta


def build_context(store: MetaStore, cluster: str, meta: ClusterMeta, settings: Settings) -> Context:
    """Executors for every host of the cluster, using the cluster ssh keys."""
    ctx = Context(settings)
    ctx.set_ssh_key_set(*store.ssh_key_paths(cluster))
    ctx.set_cluster_ssh(Topology(meta.topology), meta.user, settings.ssh_timeout)
    return ctx.freeze()


def build_pd_client(topo: Topology, settings: Settings) -> PDClient:
    return PDClient(topo.pd_endpoints(), timeout=settings.pd_timeout)


def _bus(cluster: str, verbose: bool, settings: Settings) -> Tuple[EventBus, dict]:
    logger, run_id, log_path = init_logging(settings.home / "logs", cluster, verbose=verbose)
    observers = [
        LoggerObserver(logger),
        JsonLinesObserver(log_path.with_suffix(".jsonl")),
    ]
    if verbose:
        observers.append(ConsoleObserver())
    return EventBus(observers), new_ctx(cluster=cluster, run_id=run_id)


def _fail(exc: Exception) -> None:
    typer.secho(f"Error: {exc}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1)


# ------------------------------------------------------------------------------
# Commands
# ------------------------------------------------------------------------------

@app.command()
def display(
    cluster: str = typer.Argument(..., help="Cluster name"),
    role: Optional[List[str]] = RoleOpt,
    node: Optional[List[str]] = NodeOpt,
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """
    Display information of a cluster, then destroy tombstone nodes if any.
    """
    settings = load_settings()
    store, meta = _load(cluster, settings)
    bus, _ = _bus(cluster, verbose, settings)

    typer.echo(f"Cluster: {typer.style(cluster, fg=typer.colors.CYAN, bold=True)}")
    typer.echo(f"Version: {typer.style(meta.version, fg=typer.colors.CYAN, bold=True)}")

    topo = Topology(meta.topology)
    ctx = build_context(store, cluster, meta, settings)
    pd = build_pd_client(topo, settings)
    try:
        rows = cluster_status_rows(
            topo,
            StatusReconciler(ctx, pd),
            roles=role,
            nodes=node,
            workers=settings.status_workers,
        )
        typer.echo(render_table(HEADER, [r.as_list() for r in rows]))

        nodes = destroy_tombstone_if_needed(store, cluster, meta, ctx, pd, bus=bus)
        if nodes:
            typer.echo(f"Destroyed tombstone nodes: {', '.join(nodes)}")
    except ClusterOpsError as exc:
        _fail(exc)
    finally:
        ctx.close()
        bus.close()


@app.command("destroy-tombstone")
def destroy_tombstone(
    cluster: str = typer.Argument(..., help="Cluster name"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Only list tombstone nodes"),
    require_pd_healthy: bool = typer.Option(
        False, "--require-pd-healthy", help="Refuse unless PD has a healthy quorum"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """
    Remove nodes the cluster reports as tombstone and update the metadata.
    """
    settings = load_settings()
    store, meta = _load(cluster, settings)
    bus, _ = _bus(cluster, verbose, settings)

    ctx = build_context(store, cluster, meta, settings)
    pd = build_pd_client(Topology(meta.topology), settings)
    try:
        nodes = destroy_tombstone_if_needed(
            store,
            cluster,
            meta,
            ctx,
            pd,
            policy=TombstonePolicy(require_pd_healthy=require_pd_healthy),
            return_nodes_only=dry_run,
            bus=bus,
        )
    except ClusterOpsError as exc:
        _fail(exc)
    finally:
        ctx.close()
        bus.close()

    if not nodes:
        typer.echo("No tombstone nodes found")
    elif dry_run:
        typer.echo(f"Tombstone nodes: {', '.join(nodes)}")
    else:
        typer.echo(f"Destroyed tombstone nodes: {', '.join(nodes)}")


def _run_pipeline(cluster: str, verbose: bool, make) -> None:
    settings = load_settings()
    store, meta = _load(cluster, settings)
    bus, run_ctx = _bus(cluster, verbose, settings)

    ctx = build_context(store, cluster, meta, settings)
    try:
        pipeline = make(store, meta, bus, run_ctx)
        pipeline.execute(ctx)
    except ClusterOpsError as exc:
        _fail(exc)
    finally:
        ctx.close()
        bus.close()
    typer.echo(f"{len(pipeline)} task(s) completed")


@app.command()
def start(cluster: str, role: Optional[List[str]] = RoleOpt, node: Optional[List[str]] = NodeOpt,
          verbose: bool = typer.Option(False, "--verbose", "-v")):
    """Start instances in dependency order."""
    _run_pipeline(cluster, verbose, lambda s, m, b, rc: start_pipeline(
        Topology(m.topology), roles=role, nodes=node, bus=b, run_ctx=rc))


@app.command()
def stop(cluster: str, role: Optional[List[str]] = RoleOpt, node: Optional[List[str]] = NodeOpt,
         verbose: bool = typer.Option(False, "--verbose", "-v")):
    """Stop instances in reverse dependency order."""
    _run_pipeline(cluster, verbose, lambda s, m, b, rc: stop_pipeline(
        Topology(m.topology), roles=role, nodes=node, bus=b, run_ctx=rc))


@app.command()
def restart(cluster: str, role: Optional[List[str]] = RoleOpt, node: Optional[List[str]] = NodeOpt,
            verbose: bool = typer.Option(False, "--verbose", "-v")):
    """Restart instances in dependency order."""
    _run_pipeline(cluster, verbose, lambda s, m, b, rc: restart_pipeline(
        Topology(m.topology), roles=role, nodes=node, bus=b, run_ctx=rc))


@app.command("deploy-config")
def deploy_config(cluster: str, role: Optional[List[str]] = RoleOpt, node: Optional[List[str]] = NodeOpt,
                  verbose: bool = typer.Option(False, "--verbose", "-v")):
    """Push directories, configs and systemd units to every instance."""
    _run_pipeline(cluster, verbose, lambda s, m, b, rc: deploy_config_pipeline(
        cluster, m, s.cluster_path(cluster, "config-cache"), roles=role, nodes=node, bus=b, run_ctx=rc))


if __name__ == "__main__":
    app()
