"""next-secret-name command: preview a TLS secret rotation."""

from __future__ import annotations

import typer

from ingress_renewal_manager.cli.commands.base import console
from ingress_renewal_manager.services.renewal.secret_names import next_secret_name


def next_secret_name_command(
    name: str = typer.Argument(..., help="Current TLS secret name."),
) -> None:
    """Print the name a secret rotation would switch to."""
    console.print(next_secret_name(name))
