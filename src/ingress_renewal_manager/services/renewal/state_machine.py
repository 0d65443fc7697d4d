"""One renewal attempt for one ingress.

The attempt lifts the force-HTTPS annotation so the issuer can answer the
HTTP-01 challenge over plain HTTP, waits for the challenge path to clear,
then puts the annotation back. The lock is held only around the two
read-modify-write steps, never across the wait, and the restore step runs on
every path out of the wait.

    idle -> annotation_removed -> waiting
         -> challenge_cleared | wait_timed_out | wait_cancelled
         -> annotation_restored -> renewed_success | renewed_failure
    idle -> skipped_contention
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

import structlog

from ingress_renewal_manager.core.constants import FORCE_HTTPS_ANNOTATION, FORCE_HTTPS_VALUE
from ingress_renewal_manager.services.renewal.challenge import (
    ChallengeWaitResult,
    WaitOutcome,
)
from ingress_renewal_manager.services.renewal.named_lock import ingress_key

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

    from ingress_renewal_manager.services.kubernetes.ingress_manager import IngressManager
    from ingress_renewal_manager.services.renewal.challenge import ChallengeObserver
    from ingress_renewal_manager.services.renewal.clock import Clock
    from ingress_renewal_manager.services.renewal.metrics import RenewalMetrics
    from ingress_renewal_manager.services.renewal.named_lock import NamedLock

logger = structlog.get_logger()


class RenewalState(StrEnum):
    """States a renewal attempt passes through."""

    IDLE = "idle"
    ANNOTATION_REMOVED = "annotation_removed"
    WAITING = "waiting"
    CHALLENGE_CLEARED = "challenge_cleared"
    WAIT_TIMED_OUT = "wait_timed_out"
    WAIT_CANCELLED = "wait_cancelled"
    ANNOTATION_RESTORED = "annotation_restored"
    RENEWED_SUCCESS = "renewed_success"
    RENEWED_FAILURE = "renewed_failure"
    SKIPPED_CONTENTION = "skipped_contention"


class RenewalResult(StrEnum):
    """Classification of a finished attempt."""

    SUCCESS = "success"
    FAILURE = "failure"
    SKIPPED = "skipped"
    CANCELLED = "cancelled"


_OUTCOME_STATES = {
    WaitOutcome.CLEARED: RenewalState.CHALLENGE_CLEARED,
    WaitOutcome.TIMED_OUT: RenewalState.WAIT_TIMED_OUT,
    WaitOutcome.CANCELLED: RenewalState.WAIT_CANCELLED,
}


@dataclass
class RenewalAttempt:
    """Record of one attempt.

    Attributes:
        namespace: Ingress namespace.
        name: Ingress name.
        result: Final classification.
        states: States visited, in order.
        wait: Challenge wait result, when the wait ran to an outcome.
        cycle_seconds: Time from annotation removal to restoration.
    """

    namespace: str
    name: str
    result: RenewalResult = RenewalResult.SKIPPED
    states: list[RenewalState] = field(default_factory=lambda: [RenewalState.IDLE])
    wait: ChallengeWaitResult | None = None
    cycle_seconds: float | None = None

    @property
    def key(self) -> str:
        return ingress_key(self.namespace, self.name)

    @property
    def state(self) -> RenewalState:
        """The last state reached."""
        return self.states[-1]


class RenewalStateMachine:
    """Runs renewal attempts against the object store."""

    def __init__(
        self,
        ingresses: IngressManager,
        observer: ChallengeObserver,
        locks: NamedLock,
        clock: Clock,
        metrics: RenewalMetrics,
    ) -> None:
        self._ingresses = ingresses
        self._observer = observer
        self._locks = locks
        self._clock = clock
        self._metrics = metrics
        self._log = logger.bind(entity="renewal")

    def run(self, namespace: str, name: str, timeout: float) -> RenewalAttempt:
        """Run one attempt.

        Args:
            namespace: Ingress namespace.
            name: Ingress name.
            timeout: Seconds to wait for the challenge to clear.

        Returns:
            The attempt record. ``SKIPPED`` when another operation holds the
            ingress lock.

        Raises:
            KubernetesError: If removing the annotation, watching the
                challenge or restoring the annotation fails. The annotation
                is restored before any wait error propagates.
        """
        attempt = RenewalAttempt(namespace=namespace, name=name)
        key = attempt.key
        log = self._log.bind(namespace=namespace, name=name)

        if not self._locks.try_lock(key):
            self._metrics.lock_contention_skips.inc()
            log.debug("renewal_skipped_contention")
            attempt.states.append(RenewalState.SKIPPED_CONTENTION)
            return attempt

        try:
            previous = self._ingresses.remove_annotation(name, namespace, FORCE_HTTPS_ANNOTATION)
        finally:
            self._locks.unlock(key)

        removed_at = self._clock.monotonic()
        attempt.states.append(RenewalState.ANNOTATION_REMOVED)
        log.info("force_https_removed", previous=previous)

        try:
            attempt.states.append(RenewalState.WAITING)
            attempt.wait = self._observer.wait_for_absence(namespace, name, timeout)
            attempt.states.append(_OUTCOME_STATES[attempt.wait.outcome])
        finally:
            self._restore(namespace, name, previous or FORCE_HTTPS_VALUE, log)
            attempt.cycle_seconds = self._clock.monotonic() - removed_at
            self._metrics.annotation_cycle_duration.observe(attempt.cycle_seconds)
            attempt.states.append(RenewalState.ANNOTATION_RESTORED)

        return self._classify(attempt, log)

    def _restore(
        self,
        namespace: str,
        name: str,
        value: str,
        log: FilteringBoundLogger,
    ) -> None:
        """Put the force-HTTPS annotation back, waiting for the lock if needed."""
        with self._locks.held(ingress_key(namespace, name)):
            try:
                self._ingresses.set_annotation(name, namespace, FORCE_HTTPS_ANNOTATION, value)
            except Exception:
                log.exception("force_https_restore_failed", value=value)
                raise
        log.info("force_https_restored", value=value)

    def _classify(self, attempt: RenewalAttempt, log: FilteringBoundLogger) -> RenewalAttempt:
        assert attempt.wait is not None
        outcome = attempt.wait.outcome
        if outcome is WaitOutcome.CLEARED:
            attempt.result = RenewalResult.SUCCESS
            attempt.states.append(RenewalState.RENEWED_SUCCESS)
            self._metrics.certificate_renewals.inc()
        elif outcome is WaitOutcome.TIMED_OUT:
            attempt.result = RenewalResult.FAILURE
            attempt.states.append(RenewalState.RENEWED_FAILURE)
        else:
            attempt.result = RenewalResult.CANCELLED

        log.info(
            "renewal_attempt_finished",
            result=attempt.result.value,
            elapsed=attempt.wait.elapsed,
            cycle_seconds=attempt.cycle_seconds,
        )
        return attempt
