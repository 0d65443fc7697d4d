"""Run command: the long-lived renewal controller."""

from __future__ import annotations

import signal
from types import FrameType

import structlog
import typer

from ingress_renewal_manager.cli.commands.base import (
    NamespaceOption,
    connect,
    load_cluster_config,
    load_settings,
)
from ingress_renewal_manager.services.renewal.controller import RenewalController
from ingress_renewal_manager.services.renewal.metrics import start_metrics_server

logger = structlog.get_logger()


def run(namespace: NamespaceOption = None) -> None:
    """Run the audit loop and ingress watch until SIGINT or SIGTERM."""
    settings = load_settings(namespace)
    cluster_config = load_cluster_config()

    with connect(cluster_config) as client:
        controller = RenewalController(settings, client)

        def _shutdown(signum: int, _frame: FrameType | None) -> None:
            logger.info("shutdown_signal_received", signal=signal.Signals(signum).name)
            controller.stop()

        signal.signal(signal.SIGINT, _shutdown)
        signal.signal(signal.SIGTERM, _shutdown)

        start_metrics_server(settings.metrics_port, controller.metrics.registry)
        logger.info(
            "renewal_controller_configured",
            run_mode=settings.run_mode.value,
            threshold_days=settings.certificate_renewal_threshold,
            removal_delay=settings.annotation_removal_delay,
            check_interval_minutes=settings.renewal_check_interval,
            admin_user_permission=settings.admin_user_permission,
        )
        controller.run()
