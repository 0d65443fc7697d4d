"""Informer-style ingress watch.

The dispatcher keeps a last-seen copy of every ingress it has been told
about and hands enabled ingresses that were added or meaningfully changed to
the audit scanner's single-ingress path on a worker pool. It only shortens
reaction time; the audit loop still reconciles everything on its own.
"""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from contextlib import closing
from typing import TYPE_CHECKING

import structlog

from ingress_renewal_manager.core.constants import ENABLED_LABEL, WATCH_WINDOW_SECONDS
from ingress_renewal_manager.core.exceptions import RenewalError
from ingress_renewal_manager.integrations.kubernetes.exceptions import (
    KubernetesError,
    KubernetesGoneError,
)

if TYPE_CHECKING:
    from ingress_renewal_manager.integrations.kubernetes.models.networking import (
        IngressResource,
    )
    from ingress_renewal_manager.services.kubernetes.ingress_manager import (
        IngressEvent,
        IngressManager,
    )
    from ingress_renewal_manager.services.renewal.audit import AuditScanner
    from ingress_renewal_manager.services.renewal.clock import Clock

logger = structlog.get_logger()

_MAX_BACKOFF = 30.0


def has_ingress_changed(old: IngressResource, new: IngressResource) -> bool:
    """Whether an update touched anything the renewal engine reacts to.

    Rules, TLS entries, the enablement label and the annotations are compared
    field by field; status and resource version changes are ignored.
    """
    if old.rules != new.rules:
        return True
    if old.tls != new.tls:
        return True
    if (old.labels or {}).get(ENABLED_LABEL) != (new.labels or {}).get(ENABLED_LABEL):
        return True
    return (old.annotations or {}) != (new.annotations or {})


class EventDispatcher:
    """Watches ingresses and dispatches renewals for added or changed ones."""

    def __init__(
        self,
        ingresses: IngressManager,
        scanner: AuditScanner,
        clock: Clock,
        *,
        namespace: str | None = None,
        workers: int = 4,
        window_seconds: int = WATCH_WINDOW_SECONDS,
    ) -> None:
        self._ingresses = ingresses
        self._scanner = scanner
        self._clock = clock
        self._namespace = namespace
        self._window_seconds = window_seconds
        self._executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="irm-dispatch")
        self._cache: dict[str, IngressResource] = {}
        self._in_flight: set[str] = set()
        self._in_flight_lock = threading.Lock()
        self._reported_kinds: set[str] = set()
        self._log = logger.bind(entity="dispatcher")

    # =========================================================================
    # Watch loop
    # =========================================================================

    def run_forever(self) -> None:
        """Watch until shutdown, then wait for in-flight handlers."""
        resource_version: str | None = None
        backoff = 1.0
        self._log.info("dispatcher_started", namespace=self._namespace or "*")
        try:
            while not self._clock.stopped:
                try:
                    with closing(
                        self._ingresses.watch_ingresses(
                            self._namespace,
                            resource_version=resource_version,
                            timeout_seconds=self._window_seconds,
                        )
                    ) as events:
                        for event in events:
                            if event.resource_version:
                                resource_version = event.resource_version
                            self.handle_event(event)
                            if self._clock.stopped:
                                break
                    backoff = 1.0
                except KubernetesGoneError:
                    self._log.warning("watch_resource_version_expired")
                    resource_version = None
                except KubernetesError as e:
                    self._log.error("watch_failed", error=str(e), retry_in=backoff)
                    if self._clock.sleep(backoff):
                        break
                    backoff = min(backoff * 2, _MAX_BACKOFF)
        finally:
            self.close()
            self._log.info("dispatcher_stopped")

    def close(self) -> None:
        """Wait for dispatched handlers and release the worker pool."""
        self._executor.shutdown(wait=True)

    # =========================================================================
    # Event handling
    # =========================================================================

    def handle_event(self, event: IngressEvent) -> bool:
        """Update the cache from one event and dispatch if warranted.

        Returns:
            True if a renewal was dispatched.

        Raises:
            KubernetesGoneError: On an ERROR event reporting an expired
                resource version.
        """
        if event.ingress is None:
            if event.type == "ERROR" and event.error_code == 410:
                raise KubernetesGoneError()
            if event.type not in self._reported_kinds:
                self._reported_kinds.add(event.type)
                self._log.error(
                    "watch_event_without_ingress",
                    event_type=event.type,
                    object_kind=event.object_kind,
                    error_code=event.error_code,
                )
            return False

        ingress = event.ingress
        key = ingress.key

        if event.type == "DELETED":
            self._cache.pop(key, None)
            return False
        if event.type not in ("ADDED", "MODIFIED"):
            return False

        previous = self._cache.get(key)
        self._cache[key] = ingress

        if not ingress.is_enabled:
            return False
        if previous is not None and not has_ingress_changed(previous, ingress):
            return False
        return self.dispatch(ingress)

    def dispatch(self, ingress: IngressResource) -> bool:
        """Hand one ingress to the worker pool unless it is already being handled.

        Returns:
            True if the ingress was submitted.
        """
        key = ingress.key
        with self._in_flight_lock:
            if key in self._in_flight:
                self._log.debug("dispatch_already_in_flight", key=key)
                return False
            self._in_flight.add(key)

        self._log.debug("dispatching", key=key)
        try:
            self._executor.submit(self._handle, ingress)
        except RuntimeError:
            with self._in_flight_lock:
                self._in_flight.discard(key)
            self._log.debug("dispatch_after_shutdown", key=key)
            return False
        return True

    def _handle(self, ingress: IngressResource) -> None:
        try:
            result = self._scanner.renew_if_challenged(ingress)
            if result is not None:
                self._log.info(
                    "dispatched_renewal_finished",
                    namespace=ingress.namespace,
                    name=ingress.name,
                    result=result.value,
                )
        except (KubernetesError, RenewalError) as e:
            self._log.error(
                "dispatched_renewal_failed",
                namespace=ingress.namespace,
                name=ingress.name,
                error=str(e),
            )
        finally:
            with self._in_flight_lock:
                self._in_flight.discard(ingress.key)

    def is_in_flight(self, key: str) -> bool:
        """Whether a handler for ``key`` is running or queued."""
        with self._in_flight_lock:
            return key in self._in_flight
