"""Status command: effective configuration and cluster connectivity."""

from __future__ import annotations

import platform

import structlog
import typer
from rich.table import Table

from ingress_renewal_manager import __version__
from ingress_renewal_manager.cli.commands.base import (
    connect,
    console,
    load_cluster_config,
    load_settings,
)
from ingress_renewal_manager.core.config.models import ENV_VARS

logger = structlog.get_logger()


def status(
    check_cluster: bool = typer.Option(
        True,
        "--check-cluster/--no-check-cluster",
        help="Contact the API server to verify connectivity.",
    ),
) -> None:
    """Show the effective configuration and cluster health."""
    logger.info("checking_status", check_cluster=check_cluster)
    settings = load_settings()
    cluster_config = load_cluster_config()

    table = Table(title="Ingress Renewal Manager Status")
    table.add_column("Setting", style="cyan", no_wrap=True)
    table.add_column("Value", style="green")
    table.add_column("Source", style="dim")

    table.add_row("Version", __version__, "irm")
    table.add_row("Python", platform.python_version(), platform.python_implementation())
    for field, variable in ENV_VARS.items():
        value = getattr(settings, field)
        table.add_row(field, "-" if value is None else str(value), variable)
    table.add_row(
        "kube_context", cluster_config.get_active_context() or "(current)", "IRM_K8S_CONTEXT"
    )
    table.add_row("kube_timeout", str(cluster_config.get_active_timeout()), "IRM_K8S_TIMEOUT")

    if check_cluster:
        with connect(cluster_config) as client:
            if client.check_connection():
                version = client.get_cluster_version()
                table.add_row("cluster", f"reachable ({version})", client.get_current_context())
            else:
                table.add_row("cluster", "[red]unreachable[/red]", client.get_current_context())

    console.print(table)
    logger.info("status_check_complete")
