"""Main CLI entry point using Typer."""

from __future__ import annotations

import os

import typer
from rich.console import Console

from ingress_renewal_manager import __version__
from ingress_renewal_manager.cli.commands import audit, run, secret_name, status
from ingress_renewal_manager.logging.config import configure_logging

app = typer.Typer(
    name="irm",
    help="Coordinates ACME HTTP-01 certificate renewal for force-HTTPS ingresses.",
    add_completion=True,
)

console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"irm version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose output.",
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug mode.",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Emit JSON log lines (default when IRM_RUN_MODE=prod).",
    ),
    log_file: bool = typer.Option(
        False,
        "--log-file",
        help="Also write JSON logs to ~/.local/state/irm/irm.log.",
    ),
) -> None:
    """Ingress Renewal Manager - keep force-HTTPS ingresses renewable."""
    prod = os.environ.get("IRM_RUN_MODE", "").strip().lower() == "prod"
    configure_logging(
        # The controller reports progress at INFO
        verbose=verbose or ctx.invoked_subcommand == "run",
        debug=debug,
        json_output=json_output or prod,
        file_logging=log_file,
    )


# Register subcommands
app.command()(run.run)
app.command()(audit.audit)
app.command()(status.status)
app.command(name="next-secret-name")(secret_name.next_secret_name_command)


if __name__ == "__main__":
    app()
