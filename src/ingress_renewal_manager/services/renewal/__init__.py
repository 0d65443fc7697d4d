"""Renewal orchestration engine."""

from ingress_renewal_manager.services.renewal.audit import AuditReport, AuditScanner
from ingress_renewal_manager.services.renewal.challenge import (
    ChallengeObserver,
    ChallengeWaitResult,
    PollingChallengeObserver,
    WaitOutcome,
    WatchChallengeObserver,
)
from ingress_renewal_manager.services.renewal.clock import Clock
from ingress_renewal_manager.services.renewal.controller import RenewalController
from ingress_renewal_manager.services.renewal.events import EventDispatcher, has_ingress_changed
from ingress_renewal_manager.services.renewal.metrics import RenewalMetrics, start_metrics_server
from ingress_renewal_manager.services.renewal.named_lock import NamedLock, ingress_key
from ingress_renewal_manager.services.renewal.secret_names import next_secret_name
from ingress_renewal_manager.services.renewal.secret_rotator import SecretRotator
from ingress_renewal_manager.services.renewal.state_machine import (
    RenewalAttempt,
    RenewalResult,
    RenewalState,
    RenewalStateMachine,
)

__all__ = [
    "AuditReport",
    "AuditScanner",
    "ChallengeObserver",
    "ChallengeWaitResult",
    "Clock",
    "EventDispatcher",
    "NamedLock",
    "PollingChallengeObserver",
    "RenewalAttempt",
    "RenewalController",
    "RenewalMetrics",
    "RenewalResult",
    "RenewalState",
    "RenewalStateMachine",
    "SecretRotator",
    "WaitOutcome",
    "WatchChallengeObserver",
    "has_ingress_changed",
    "ingress_key",
    "next_secret_name",
]
