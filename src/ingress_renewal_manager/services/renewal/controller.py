"""Wires the renewal engine together and runs it.

The controller owns the shutdown signal, the lock table and the metrics,
builds the managers on top of one ``KubernetesClient``, and runs the audit
loop and the optional event dispatcher on their own threads.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import TYPE_CHECKING

import structlog

from ingress_renewal_manager.core.config.models import ChallengeStrategy
from ingress_renewal_manager.services.kubernetes.ingress_manager import IngressManager
from ingress_renewal_manager.services.kubernetes.policy_manager import PolicyManager
from ingress_renewal_manager.services.kubernetes.secret_manager import SecretManager
from ingress_renewal_manager.services.renewal.audit import AuditScanner
from ingress_renewal_manager.services.renewal.challenge import (
    ChallengeObserver,
    PollingChallengeObserver,
    WatchChallengeObserver,
)
from ingress_renewal_manager.services.renewal.clock import Clock
from ingress_renewal_manager.services.renewal.events import EventDispatcher
from ingress_renewal_manager.services.renewal.metrics import RenewalMetrics
from ingress_renewal_manager.services.renewal.named_lock import NamedLock
from ingress_renewal_manager.services.renewal.secret_rotator import SecretRotator
from ingress_renewal_manager.services.renewal.state_machine import RenewalStateMachine

if TYPE_CHECKING:
    from ingress_renewal_manager.core.config.models import RenewerSettings
    from ingress_renewal_manager.integrations.kubernetes.client import KubernetesClient

logger = structlog.get_logger()


class RenewalController:
    """Owns and runs the renewal engine components.

    Example:
        ```python
        settings = RenewerSettings.from_env()
        with KubernetesClient(KubernetesPluginConfig.from_env()) as client:
            controller = RenewalController(settings, client)
            controller.run()  # until controller.stop() from a signal handler
        ```
    """

    def __init__(
        self,
        settings: RenewerSettings,
        client: KubernetesClient,
        *,
        clock: Clock | None = None,
        locks: NamedLock | None = None,
        metrics: RenewalMetrics | None = None,
    ) -> None:
        self.settings = settings
        self.clock = clock or Clock()
        self.locks = locks or NamedLock()
        self.metrics = metrics or RenewalMetrics()

        self.ingresses = IngressManager(client)
        self.secrets = SecretManager(client)
        self.policies = PolicyManager(client)

        self.observer = self._build_observer()
        self.state_machine = RenewalStateMachine(
            self.ingresses, self.observer, self.locks, self.clock, self.metrics
        )
        self.rotator = SecretRotator(self.ingresses, self.locks, self.metrics)
        self.scanner = AuditScanner(
            settings,
            self.ingresses,
            self.secrets,
            self.policies,
            self.state_machine,
            self.rotator,
            self.clock,
            self.metrics,
        )
        self.dispatcher: EventDispatcher | None = None
        if settings.enable_event_dispatcher:
            self.dispatcher = EventDispatcher(
                self.ingresses,
                self.scanner,
                self.clock,
                namespace=settings.watch_namespace,
                workers=settings.dispatch_workers,
            )

        self._threads: list[threading.Thread] = []
        self._log = logger.bind(entity="controller")

    def _build_observer(self) -> ChallengeObserver:
        if self.settings.challenge_strategy is ChallengeStrategy.WATCH:
            return WatchChallengeObserver(self.ingresses, self.clock)
        return PollingChallengeObserver(self.ingresses, self.clock)

    def start(self) -> None:
        """Start the audit loop and, if enabled, the dispatcher."""
        self._log.info(
            "controller_starting",
            strategy=self.observer.strategy,
            dispatcher=self.dispatcher is not None,
            namespace=self.settings.watch_namespace or "*",
        )
        self._spawn("irm-audit", self.scanner.run_forever)
        if self.dispatcher is not None:
            self._spawn("irm-dispatcher", self.dispatcher.run_forever)

    def _spawn(self, name: str, target: Callable[[], None]) -> None:
        thread = threading.Thread(target=target, name=name, daemon=True)
        thread.start()
        self._threads.append(thread)

    def stop(self) -> None:
        """Signal every loop to stop. Safe to call from a signal handler."""
        if not self.clock.stopped:
            self._log.info("controller_stopping")
        self.clock.stop()

    def join(self, timeout: float | None = None) -> None:
        """Wait for the loop threads to finish."""
        for thread in self._threads:
            thread.join(timeout)

    def run(self) -> None:
        """Start, block until ``stop`` is called, then join."""
        self.start()
        self.clock.stop_event.wait()
        self.join()
        self._log.info("controller_stopped")
