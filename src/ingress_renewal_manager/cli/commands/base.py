"""Base utilities for CLI commands.

Provides shared options, configuration loading and error handling for every
``irm`` command.
"""

from __future__ import annotations

from typing import Annotated, NoReturn

import typer
from pydantic import ValidationError
from rich.console import Console

from ingress_renewal_manager.core.config.models import RenewerSettings
from ingress_renewal_manager.core.exceptions import ConfigurationError
from ingress_renewal_manager.integrations.kubernetes.client import KubernetesClient
from ingress_renewal_manager.integrations.kubernetes.config import KubernetesPluginConfig
from ingress_renewal_manager.integrations.kubernetes.exceptions import (
    KubernetesAuthError,
    KubernetesConnectionError,
    KubernetesError,
    KubernetesTimeoutError,
)

# Shared console instance
console = Console()


# =============================================================================
# Common Typer Option Annotations
# =============================================================================

NamespaceOption = Annotated[
    str | None,
    typer.Option(
        "--namespace",
        "-n",
        help="Restrict to one namespace (overrides IRM_WATCH_NAMESPACE)",
    ),
]


# =============================================================================
# Configuration Loading
# =============================================================================


def load_settings(namespace: str | None = None) -> RenewerSettings:
    """Load renewal settings from the environment or exit with code 2.

    Args:
        namespace: Optional override for ``watch_namespace``.
    """
    try:
        settings = RenewerSettings.from_env()
    except ConfigurationError as e:
        handle_config_error(e)
    if namespace:
        settings = settings.model_copy(update={"watch_namespace": namespace})
    return settings


def load_cluster_config() -> KubernetesPluginConfig:
    """Load cluster connection settings from the environment or exit with code 2."""
    try:
        return KubernetesPluginConfig.from_env()
    except ValidationError as e:
        error = e.errors()[0]
        location = ".".join(str(part) for part in error["loc"])
        handle_config_error(ConfigurationError(f"{location}: {error['msg']}", "IRM_K8S_*"))


def connect(cluster_config: KubernetesPluginConfig) -> KubernetesClient:
    """Create a Kubernetes client or exit with code 1."""
    try:
        return KubernetesClient(cluster_config)
    except KubernetesError as e:
        handle_k8s_error(e)


# =============================================================================
# Error Handling
# =============================================================================


def handle_config_error(error: ConfigurationError) -> NoReturn:
    """Report an invalid configuration value.

    Raises:
        typer.Exit: Always exits with code 2.
    """
    console.print(f"[red]Configuration error:[/red] {error}")
    raise typer.Exit(2)


def handle_k8s_error(error: KubernetesError) -> NoReturn:
    """Handle Kubernetes errors with user-friendly output.

    Args:
        error: The Kubernetes error to handle.

    Raises:
        typer.Exit: Always exits with code 1.
    """
    if isinstance(error, KubernetesConnectionError):
        console.print("[red]Error:[/red] Cannot connect to Kubernetes cluster")
        console.print(f"  {error.message}")
        if error.original_error:
            console.print(f"  Cause: {error.original_error}")
        console.print(
            "\n[dim]Hint: Check that your kubeconfig is valid and the cluster is reachable.[/dim]"
        )

    elif isinstance(error, KubernetesAuthError):
        console.print("[red]Error:[/red] Authentication/authorization failed")
        console.print(f"  {error.message}")
        console.print(
            "\n[dim]Hint: The controller needs list/watch/update on ingresses, "
            "get/delete on secrets and get/create on nimbleoptis.[/dim]"
        )

    elif isinstance(error, KubernetesTimeoutError):
        console.print("[red]Error:[/red] Operation timed out")
        console.print(f"  {error.message}")
        console.print("\n[dim]Hint: Try increasing IRM_K8S_TIMEOUT.[/dim]")

    else:
        console.print(f"[red]Error:[/red] {error.message}")
        if error.status_code:
            console.print(f"  HTTP Status: {error.status_code}")

    raise typer.Exit(1)
