"""Periodic reconciliation of enabled ingresses.

Each pass lists the ingresses, and for every one that opted in it either
drives a renewal for an in-flight challenge or, when allowed to, deletes a
TLS secret that is close to expiry so the issuer replaces it. Failed
renewals get one secret rotation and one more attempt before being left for
an operator.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import structlog

from ingress_renewal_manager.core.constants import SECRET_DELETE_SETTLE
from ingress_renewal_manager.core.exceptions import (
    CertificateDataError,
    LockContentionError,
    RenewalError,
)
from ingress_renewal_manager.integrations.kubernetes.exceptions import (
    KubernetesError,
    KubernetesNotFoundError,
)
from ingress_renewal_manager.services.renewal.certificates import needs_renewal
from ingress_renewal_manager.services.renewal.state_machine import RenewalResult

if TYPE_CHECKING:
    from ingress_renewal_manager.core.config.models import RenewerSettings
    from ingress_renewal_manager.integrations.kubernetes.models.networking import (
        IngressResource,
    )
    from ingress_renewal_manager.integrations.kubernetes.models.policy import RenewalPolicy
    from ingress_renewal_manager.services.kubernetes.ingress_manager import IngressManager
    from ingress_renewal_manager.services.kubernetes.policy_manager import PolicyManager
    from ingress_renewal_manager.services.kubernetes.secret_manager import SecretManager
    from ingress_renewal_manager.services.renewal.clock import Clock
    from ingress_renewal_manager.services.renewal.metrics import RenewalMetrics
    from ingress_renewal_manager.services.renewal.secret_rotator import SecretRotator
    from ingress_renewal_manager.services.renewal.state_machine import RenewalStateMachine

logger = structlog.get_logger()

_COUNTERS = ("scanned", "eligible", "needed_renewal", "renewed", "skipped", "failed")


@dataclass
class AuditReport:
    """Counts from one audit pass.

    Attributes:
        scanned: Ingresses listed.
        eligible: Ingresses carrying the enablement label.
        needed_renewal: Ingresses with a challenge in flight or an expiring
            certificate.
        renewed: Renewals that succeeded.
        skipped: Ingresses passed over (state machine lock contention,
            shutdown, unusable certificate data).
        failed: Ingresses whose renewal failed, including a rotation blocked
            by lock contention, or that raised an error.
        min_check_interval: Smallest policy check interval seen, in minutes.
        outcomes: Per namespace, ``namespace/name`` to renewal success.
    """

    scanned: int = 0
    eligible: int = 0
    needed_renewal: int = 0
    renewed: int = 0
    skipped: int = 0
    failed: int = 0
    min_check_interval: int | None = None
    outcomes: dict[str, dict[str, bool]] = field(default_factory=lambda: defaultdict(dict))

    def counts(self) -> dict[str, int]:
        """The six pass counters."""
        return {k: getattr(self, k) for k in _COUNTERS}

    def record(self, ingress: IngressResource, result: RenewalResult) -> None:
        """Count a finished renewal."""
        namespace = ingress.namespace or ""
        if result is RenewalResult.SUCCESS:
            self.renewed += 1
            self.outcomes[namespace][ingress.key] = True
        elif result is RenewalResult.FAILURE:
            self.failed += 1
            self.outcomes[namespace][ingress.key] = False
        else:
            self.skipped += 1

    def note_interval(self, minutes: int) -> None:
        if self.min_check_interval is None or minutes < self.min_check_interval:
            self.min_check_interval = minutes


class AuditScanner:
    """Runs audit passes once and on a schedule."""

    def __init__(
        self,
        settings: RenewerSettings,
        ingresses: IngressManager,
        secrets: SecretManager,
        policies: PolicyManager,
        state_machine: RenewalStateMachine,
        rotator: SecretRotator,
        clock: Clock,
        metrics: RenewalMetrics,
    ) -> None:
        self._settings = settings
        self._ingresses = ingresses
        self._secrets = secrets
        self._policies = policies
        self._state_machine = state_machine
        self._rotator = rotator
        self._clock = clock
        self._metrics = metrics
        self._log = logger.bind(entity="audit")

    # =========================================================================
    # Scheduling
    # =========================================================================

    def run_forever(self) -> None:
        """Run a pass immediately, then one per check interval until shutdown."""
        interval = self._settings.check_interval_seconds
        while not self._clock.stopped:
            try:
                report = self.run_pass()
                interval = self.next_interval(report)
            except KubernetesError as e:
                self._metrics.audit_passes.labels(result="error").inc()
                self._log.error("audit_pass_failed", error=str(e))
            except Exception:
                self._metrics.audit_passes.labels(result="error").inc()
                self._log.exception("audit_pass_crashed")

            self._log.debug("audit_sleeping", seconds=interval)
            if self._clock.sleep(interval):
                break
        self._log.info("audit_loop_stopped")

    def next_interval(self, report: AuditReport) -> float:
        """Seconds until the next pass, shortened by the strictest policy seen."""
        minutes = self._settings.renewal_check_interval
        if report.min_check_interval is not None:
            minutes = min(minutes, report.min_check_interval)
        return minutes * 60.0

    # =========================================================================
    # Pass
    # =========================================================================

    def run_pass(self) -> AuditReport:
        """Run one audit pass.

        Returns:
            The pass report.

        Raises:
            KubernetesError: If listing ingresses fails; the pass is aborted.
        """
        report = AuditReport()
        namespace = self._settings.watch_namespace
        self._log.info("audit_pass_started", namespace=namespace or "*")

        ingresses = self._ingresses.list_ingresses(namespace)
        report.scanned = len(ingresses)

        policies: dict[str, RenewalPolicy] = {}
        for ingress in ingresses:
            if not ingress.is_enabled:
                continue
            report.eligible += 1
            if self._clock.stopped:
                report.skipped += 1
                continue
            try:
                self._audit_ingress(ingress, report, policies)
            except CertificateDataError as e:
                report.skipped += 1
                self._log.warning(
                    "audit_ingress_skipped",
                    namespace=ingress.namespace,
                    name=ingress.name,
                    error=str(e),
                )
            except (KubernetesError, RenewalError) as e:
                report.failed += 1
                self._metrics.failures.inc()
                self._log.error(
                    "audit_ingress_failed",
                    namespace=ingress.namespace,
                    name=ingress.name,
                    error=str(e),
                )

        self._write_status(report, policies)
        self._record_pass(report)
        return report

    def _audit_ingress(
        self,
        ingress: IngressResource,
        report: AuditReport,
        policies: dict[str, RenewalPolicy],
    ) -> None:
        namespace = ingress.namespace or ""
        policy = policies.get(namespace)
        if policy is None:
            policy = self.policy_for(namespace)
            policies[namespace] = policy
        report.note_interval(policy.renewal_check_interval)

        if ingress.has_challenge:
            report.needed_renewal += 1
            self._record(report, ingress, self.renew(ingress, policy))
            return

        if not self._settings.admin_user_permission:
            return

        secret_name = self._certificate_due(ingress, policy)
        if secret_name is None:
            return

        report.needed_renewal += 1
        self._secrets.delete_secret(secret_name, namespace)
        if self._clock.sleep(SECRET_DELETE_SETTLE):
            report.skipped += 1
            return
        self._record(report, ingress, self.renew(ingress, policy))

    def _record(
        self, report: AuditReport, ingress: IngressResource, result: RenewalResult
    ) -> None:
        report.record(ingress, result)
        if result is RenewalResult.FAILURE:
            self._metrics.failures.inc()

    def _certificate_due(self, ingress: IngressResource, policy: RenewalPolicy) -> str | None:
        """Return the first TLS secret name if its certificate is due for renewal."""
        log = self._log.bind(namespace=ingress.namespace, name=ingress.name)
        if not ingress.secret_names:
            log.debug("audit_no_tls_secret")
            return None

        secret_name = ingress.secret_names[0]
        try:
            data = self._secrets.get_tls_certificate(secret_name, ingress.namespace)
        except KubernetesNotFoundError:
            log.warning("audit_tls_secret_missing", secret=secret_name)
            return None

        try:
            due = needs_renewal(data, policy.certificate_renewal_threshold)
        except CertificateDataError as e:
            raise CertificateDataError(
                e.message, namespace=ingress.namespace, secret_name=secret_name
            ) from e

        log.debug(
            "audit_certificate_checked",
            secret=secret_name,
            due=due,
            threshold_days=policy.certificate_renewal_threshold,
        )
        return secret_name if due else None

    # =========================================================================
    # Renewal with fallback
    # =========================================================================

    def policy_for(self, namespace: str) -> RenewalPolicy:
        """Get or lazily create the namespace policy with process defaults."""
        return self._policies.get_or_create_policy(
            namespace,
            certificate_renewal_threshold=self._settings.certificate_renewal_threshold,
            annotation_removal_delay=self._settings.annotation_removal_delay,
            renewal_check_interval=self._settings.renewal_check_interval,
        )

    def renew_if_challenged(self, ingress: IngressResource) -> RenewalResult | None:
        """Renew a single ingress if it has a challenge in flight.

        Used by the event dispatcher to react to one ingress between passes.

        Returns:
            The renewal result, or None when no challenge is in flight.
        """
        policy = self.policy_for(ingress.namespace or "")
        if not ingress.has_challenge:
            return None
        result = self.renew(ingress, policy)
        if result is RenewalResult.FAILURE:
            self._metrics.failures.inc()
        return result

    def renew(self, ingress: IngressResource, policy: RenewalPolicy) -> RenewalResult:
        """Run the state machine, rotating the secret and retrying once on failure.

        Raises:
            KubernetesError: If the object store fails mid-renewal.
            RenewalError: If the rotation finds no TLS entry to rewrite.
        """
        namespace = ingress.namespace or ""
        timeout = float(policy.annotation_removal_delay)
        log = self._log.bind(namespace=namespace, name=ingress.name)

        attempt = self._state_machine.run(namespace, ingress.name, timeout)
        if attempt.result is not RenewalResult.FAILURE:
            return attempt.result

        if not ingress.secret_names:
            log.error("renewal_failed_no_tls_secret")
            return RenewalResult.FAILURE

        log.warning("renewal_failed_rotating_secret", secret=ingress.secret_names[0])
        try:
            self._rotator.rotate(namespace, ingress.name, ingress.secret_names[0])
        except LockContentionError as e:
            log.error(
                "renewal_needs_operator_attention",
                secret=ingress.secret_names[0],
                error=str(e),
            )
            return RenewalResult.FAILURE

        retry = self._state_machine.run(namespace, ingress.name, timeout)
        if retry.result is RenewalResult.FAILURE:
            log.error("renewal_needs_operator_attention", secret=ingress.secret_names[0])
        return retry.result

    # =========================================================================
    # Reporting
    # =========================================================================

    def _write_status(self, report: AuditReport, policies: dict[str, RenewalPolicy]) -> None:
        for namespace, outcomes in report.outcomes.items():
            policy = policies.get(namespace)
            if policy is None or not outcomes:
                continue
            succeeded = sum(outcomes.values())
            try:
                self._policies.update_status(
                    policy,
                    renewed=succeeded == len(outcomes),
                    ingress_paths=list(outcomes),
                    message=f"{succeeded} of {len(outcomes)} ingresses renewed",
                )
            except (KubernetesError, RenewalError) as e:
                self._log.error("policy_status_update_failed", namespace=namespace, error=str(e))

    def _record_pass(self, report: AuditReport) -> None:
        counts: dict[str, Any] = report.counts()
        self._metrics.audit_passes.labels(result="ok").inc()
        self._metrics.last_pass_scanned.set(report.scanned)
        self._metrics.last_pass_needed_renewal.set(report.needed_renewal)
        self._metrics.last_pass_renewed.set(report.renewed)
        self._log.info("audit_pass_complete", **counts)
