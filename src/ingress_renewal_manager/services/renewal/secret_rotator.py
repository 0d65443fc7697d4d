"""TLS secret reference rotation.

When a renewal attempt times out the issuer may be stuck on the existing
secret. Pointing the ingress at a fresh versioned secret name makes the
issuer mint a certificate into a new object.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from ingress_renewal_manager.core.exceptions import LockContentionError, RenewalError
from ingress_renewal_manager.services.renewal.named_lock import ingress_key
from ingress_renewal_manager.services.renewal.secret_names import next_secret_name

if TYPE_CHECKING:
    from ingress_renewal_manager.services.kubernetes.ingress_manager import IngressManager
    from ingress_renewal_manager.services.renewal.metrics import RenewalMetrics
    from ingress_renewal_manager.services.renewal.named_lock import NamedLock

logger = structlog.get_logger()


class SecretRotator:
    """Rewrites an ingress TLS entry to the next versioned secret name."""

    def __init__(
        self,
        ingresses: IngressManager,
        locks: NamedLock,
        metrics: RenewalMetrics,
    ) -> None:
        self._ingresses = ingresses
        self._locks = locks
        self._metrics = metrics
        self._log = logger.bind(entity="secret_rotator")

    def rotate(self, namespace: str, name: str, current_secret: str) -> str:
        """Point the TLS entry referencing ``current_secret`` at its successor.

        Args:
            namespace: Ingress namespace.
            name: Ingress name.
            current_secret: Secret name the TLS entry references now.

        Returns:
            The new secret name.

        Raises:
            LockContentionError: If another operation holds the ingress lock.
            RenewalError: If no TLS entry references ``current_secret``.
            KubernetesError: If reading or writing the ingress fails.
        """
        new_secret = next_secret_name(current_secret)
        key = ingress_key(namespace, name)

        if not self._locks.try_lock(key):
            raise LockContentionError(key)
        try:
            replaced = self._ingresses.replace_tls_secret_name(
                name, namespace, current_secret, new_secret
            )
        finally:
            self._locks.unlock(key)

        if not replaced:
            raise RenewalError(
                f"No TLS entry references secret {current_secret}",
                namespace=namespace,
                name=name,
            )

        self._metrics.secret_rotations.inc()
        self._log.info(
            "secret_rotated",
            namespace=namespace,
            name=name,
            old_secret=current_secret,
            new_secret=new_secret,
        )
        return new_secret
