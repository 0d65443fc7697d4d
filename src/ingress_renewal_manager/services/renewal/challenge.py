"""Challenge observation.

A challenge observer reports how long the ACME HTTP-01 challenge path took to
disappear from an ingress's rules once the force-HTTPS annotation was lifted.
Missing the deadline and shutting down are outcomes, not errors; only object
store failures raise.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from contextlib import closing
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

import structlog

from ingress_renewal_manager.core.constants import CHALLENGE_POLL_INTERVAL, WATCH_WINDOW_SECONDS
from ingress_renewal_manager.integrations.kubernetes.exceptions import (
    KubernetesError,
    KubernetesNotFoundError,
)

if TYPE_CHECKING:
    from ingress_renewal_manager.services.kubernetes.ingress_manager import IngressManager
    from ingress_renewal_manager.services.renewal.clock import Clock

logger = structlog.get_logger()


class WaitOutcome(StrEnum):
    """How a challenge wait ended."""

    CLEARED = "cleared"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ChallengeWaitResult:
    """Result of waiting for the challenge path to vanish.

    Attributes:
        outcome: Whether the path cleared, the deadline passed, or shutdown
            interrupted the wait.
        elapsed: Seconds until the path cleared. Twice the timeout when the
            path never cleared.
    """

    outcome: WaitOutcome
    elapsed: float

    @property
    def cleared(self) -> bool:
        """Whether the challenge path disappeared in time."""
        return self.outcome is WaitOutcome.CLEARED

    @classmethod
    def unresolved(cls, outcome: WaitOutcome, timeout: float) -> ChallengeWaitResult:
        """Result for a wait that ended without the path clearing."""
        return cls(outcome=outcome, elapsed=2 * timeout)


class ChallengeObserver(ABC):
    """Waits for the challenge path to disappear from one ingress."""

    strategy: str = ""

    def __init__(self, ingresses: IngressManager, clock: Clock) -> None:
        self._ingresses = ingresses
        self._clock = clock
        self._log = logger.bind(entity="challenge_observer", strategy=self.strategy)

    @abstractmethod
    def wait_for_absence(self, namespace: str, name: str, timeout: float) -> ChallengeWaitResult:
        """Wait up to ``timeout`` seconds for the challenge path to vanish.

        Args:
            namespace: Ingress namespace.
            name: Ingress name.
            timeout: Deadline in seconds.

        Returns:
            The wait result.

        Raises:
            KubernetesError: If reading or watching the ingress fails.
        """


class PollingChallengeObserver(ChallengeObserver):
    """Re-reads the ingress every poll interval until the path is gone."""

    strategy = "poll"

    def __init__(
        self,
        ingresses: IngressManager,
        clock: Clock,
        poll_interval: float = CHALLENGE_POLL_INTERVAL,
    ) -> None:
        super().__init__(ingresses, clock)
        self._poll_interval = poll_interval

    def wait_for_absence(self, namespace: str, name: str, timeout: float) -> ChallengeWaitResult:
        start = self._clock.monotonic()
        deadline = start + timeout

        while True:
            ingress = self._ingresses.get_ingress(name, namespace)
            now = self._clock.monotonic()
            if not ingress.has_challenge:
                elapsed = now - start
                self._log.info("challenge_cleared", namespace=namespace, name=name, elapsed=elapsed)
                return ChallengeWaitResult(outcome=WaitOutcome.CLEARED, elapsed=elapsed)

            if now >= deadline:
                self._log.warning(
                    "challenge_wait_timed_out", namespace=namespace, name=name, timeout=timeout
                )
                return ChallengeWaitResult.unresolved(WaitOutcome.TIMED_OUT, timeout)

            if self._clock.sleep(min(self._poll_interval, deadline - now)):
                self._log.info("challenge_wait_cancelled", namespace=namespace, name=name)
                return ChallengeWaitResult.unresolved(WaitOutcome.CANCELLED, timeout)


class WatchChallengeObserver(ChallengeObserver):
    """Watches the single ingress and resolves on the first event without the path.

    Each watch window is bounded so a shutdown request is noticed within one
    window even when the ingress is quiet.
    """

    strategy = "watch"

    def __init__(
        self,
        ingresses: IngressManager,
        clock: Clock,
        window_seconds: int = WATCH_WINDOW_SECONDS,
    ) -> None:
        super().__init__(ingresses, clock)
        self._window_seconds = window_seconds

    def wait_for_absence(self, namespace: str, name: str, timeout: float) -> ChallengeWaitResult:
        start = self._clock.monotonic()
        deadline = start + timeout

        while True:
            if self._clock.stopped:
                self._log.info("challenge_wait_cancelled", namespace=namespace, name=name)
                return ChallengeWaitResult.unresolved(WaitOutcome.CANCELLED, timeout)

            remaining = deadline - self._clock.monotonic()
            if remaining <= 0:
                self._log.warning(
                    "challenge_wait_timed_out", namespace=namespace, name=name, timeout=timeout
                )
                return ChallengeWaitResult.unresolved(WaitOutcome.TIMED_OUT, timeout)

            window = max(1, min(self._window_seconds, math.ceil(remaining)))
            with closing(
                self._ingresses.watch_ingress(name, namespace, timeout_seconds=window)
            ) as events:
                for event in events:
                    if event.type == "DELETED":
                        raise KubernetesNotFoundError(
                            message="Ingress deleted while waiting for challenge",
                            resource_type="Ingress",
                            resource_name=name,
                            namespace=namespace,
                        )
                    if event.type == "ERROR":
                        raise KubernetesError(
                            message="Watch reported an error event",
                            status_code=event.error_code,
                            resource_type="Ingress",
                            resource_name=name,
                            namespace=namespace,
                        )
                    if (
                        event.type in ("ADDED", "MODIFIED")
                        and event.ingress is not None
                        and not event.ingress.has_challenge
                    ):
                        elapsed = self._clock.monotonic() - start
                        self._log.info(
                            "challenge_cleared", namespace=namespace, name=name, elapsed=elapsed
                        )
                        return ChallengeWaitResult(outcome=WaitOutcome.CLEARED, elapsed=elapsed)
                    if self._clock.stopped or self._clock.monotonic() >= deadline:
                        break
