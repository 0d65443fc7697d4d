"""Audit command: a single reconciliation pass."""

from __future__ import annotations

import typer
from prometheus_client import CollectorRegistry
from rich.table import Table

from ingress_renewal_manager.cli.commands.base import (
    NamespaceOption,
    connect,
    console,
    handle_k8s_error,
    load_cluster_config,
    load_settings,
)
from ingress_renewal_manager.integrations.kubernetes.exceptions import KubernetesError
from ingress_renewal_manager.services.renewal.controller import RenewalController
from ingress_renewal_manager.services.renewal.metrics import RenewalMetrics


def audit(namespace: NamespaceOption = None) -> None:
    """Run one audit pass and print its report."""
    settings = load_settings(namespace).model_copy(update={"enable_event_dispatcher": False})
    cluster_config = load_cluster_config()

    with connect(cluster_config) as client:
        controller = RenewalController(
            settings, client, metrics=RenewalMetrics(CollectorRegistry())
        )
        try:
            report = controller.scanner.run_pass()
        except KubernetesError as e:
            handle_k8s_error(e)

    table = Table(title="Audit Pass")
    table.add_column("Counter", style="cyan", no_wrap=True)
    table.add_column("Value", justify="right")
    for counter, value in report.counts().items():
        table.add_row(counter.replace("_", " "), str(value))
    console.print(table)

    if report.failed:
        console.print(f"\n[yellow]{report.failed} ingress(es) need operator attention.[/yellow]")
        raise typer.Exit(1)
