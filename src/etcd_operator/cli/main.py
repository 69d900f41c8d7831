"""etcd-operator CLI — command-line interface for the etcd operator.

Commands:
    run     Watch EtcdCluster resources and reconcile them until stopped
    plan    Show the members, bootstrap string or manifests for a cluster
"""

from __future__ import annotations

import json
import signal
import sys
from typing import Any

import click
import yaml

from etcd_operator import __version__
from etcd_operator.config import OperatorConfig, configure_logging, load_config
from etcd_operator.controller import Controller, ErrorPolicy
from etcd_operator.decommissioner import ClusterDecommissioner
from etcd_operator.errors import InvalidSpecError, OperatorError
from etcd_operator.manifests import DEFAULT_IMAGE, build_member_pod, build_member_service
from etcd_operator.planner import plan
from etcd_operator.platform import InMemoryPlatform, K8sPlatform, Platform
from etcd_operator.provisioner import ClusterProvisioner, RollbackPolicy
from etcd_operator.watch import DecodeErrorPolicy, WatchStream, watch_url


def _fail(message: str) -> None:
    click.echo(click.style("ERROR", fg="red") + f"  {message}", err=True)
    sys.exit(1)


def build_controller(
    cfg: OperatorConfig,
    platform: Platform | None = None,
) -> Controller:
    """Wire a Controller from *cfg*. Uses K8sPlatform unless *platform* is given."""
    if platform is None:
        platform = K8sPlatform(cfg.master)
    stream = WatchStream(
        watch_url(cfg.master, cfg.group, cfg.namespace),
        decode_errors=cfg.decode_errors,
    )
    return Controller(
        stream=stream,
        provisioner=ClusterProvisioner(
            platform,
            namespace=cfg.namespace,
            image=cfg.image,
            rollback=cfg.rollback,
        ),
        decommissioner=ClusterDecommissioner(platform, namespace=cfg.namespace),
        on_error=cfg.on_error,
    )


# --- Root group ---


@click.group()
@click.version_option(version=__version__)
def cli() -> None:
    """etcd-operator: run etcd clusters declared as EtcdCluster resources."""


# --- run command ---


@cli.command("run")
@click.option(
    "--master", default=None,
    help="API server base URL (default: http://127.0.0.1:8080)",
)
@click.option(
    "--config", "config_file", default=None,
    type=click.Path(dir_okay=False),
    help="Path to etcd-operator.yaml (default: auto-discover)",
)
@click.option("--namespace", default=None, help="Namespace to watch and manage")
@click.option("--group", default=None, help="API group of the EtcdCluster resource")
@click.option("--image", default=None, help="etcd container image")
@click.option(
    "--decode-errors",
    type=click.Choice([p.value for p in DecodeErrorPolicy]),
    default=None,
    help="What to do with an undecodable watch frame",
)
@click.option(
    "--on-error",
    type=click.Choice([p.value for p in ErrorPolicy]),
    default=None,
    help="What to do when a reconcile fails",
)
@click.option(
    "--rollback",
    type=click.Choice([p.value for p in RollbackPolicy]),
    default=None,
    help="What to do with a partially created cluster",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
)
@click.option(
    "--dry-run", is_flag=True,
    help="Reconcile against an in-memory platform instead of the API server",
)
def run_cmd(
    master: str | None,
    config_file: str | None,
    namespace: str | None,
    group: str | None,
    image: str | None,
    decode_errors: str | None,
    on_error: str | None,
    rollback: str | None,
    log_level: str | None,
    dry_run: bool,
) -> None:
    """Watch EtcdCluster resources and reconcile them until stopped."""
    try:
        cfg = load_config(config_file).with_overrides(
            master=master,
            namespace=namespace,
            group=group,
            image=image,
            decode_errors=decode_errors,
            on_error=on_error,
            rollback=rollback,
            log_level=log_level,
        )
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        _fail(f"Error loading config: {e}")
        return

    configure_logging(cfg.log_level)
    controller = build_controller(cfg, InMemoryPlatform() if dry_run else None)

    def _handle_signal(signum: int, frame: Any) -> None:
        controller.stop()

    previous = {
        sig: signal.signal(sig, _handle_signal)
        for sig in (signal.SIGINT, signal.SIGTERM)
    }
    try:
        controller.run()
    except OperatorError as e:
        _fail(str(e))
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)


# --- plan command ---


@cli.command("plan")
@click.argument("name")
@click.argument("size", type=int)
@click.option("--json-output", is_flag=True, help="Output as JSON")
@click.option(
    "--manifests", is_flag=True,
    help="Print the Service and Pod manifests as YAML",
)
@click.option("--image", default=DEFAULT_IMAGE, show_default=True, help="etcd container image")
def plan_cmd(
    name: str,
    size: int,
    json_output: bool,
    manifests: bool,
    image: str,
) -> None:
    """Show the members of cluster NAME with SIZE members."""
    try:
        cluster_plan = plan(name, size)
    except InvalidSpecError as e:
        _fail(str(e))
        return

    if manifests:
        docs: list[dict[str, Any]] = []
        for member in cluster_plan.members:
            docs.append(build_member_service(member, name))
            docs.append(build_member_pod(member, name, cluster_plan.initial_cluster, image))
        click.echo(yaml.safe_dump_all(docs, sort_keys=False), nl=False)
        return

    if json_output:
        click.echo(json.dumps(cluster_plan.model_dump(mode="json"), indent=2))
        return

    click.echo(click.style(f"Cluster {name}", bold=True) + f" ({cluster_plan.size} members)")
    for member in cluster_plan.members:
        click.echo(f"  {member.name}  peer={member.peer_url}  client={member.client_url}")
    click.echo(f"initial-cluster: {cluster_plan.initial_cluster}")
