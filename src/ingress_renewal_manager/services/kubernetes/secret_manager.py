"""TLS secret manager.

The renewal engine only ever reads a certificate out of a TLS secret or
deletes the secret so the issuer mints a fresh one.
"""

from __future__ import annotations

import base64
import binascii

from ingress_renewal_manager.core.constants import TLS_CERT_KEY
from ingress_renewal_manager.core.exceptions import CertificateDataError
from ingress_renewal_manager.services.kubernetes.base import K8sBaseManager


class SecretManager(K8sBaseManager):
    """Manager for TLS secrets referenced by ingresses."""

    _entity_name = "secret"

    def get_tls_certificate(self, name: str, namespace: str | None = None) -> bytes:
        """Read the certificate bytes from a TLS secret.

        Args:
            name: Secret name.
            namespace: Target namespace.

        Returns:
            The decoded ``tls.crt`` payload (PEM or DER).

        Raises:
            KubernetesNotFoundError: If the secret does not exist.
            CertificateDataError: If ``tls.crt`` is missing or not base64.
        """
        ns = self._resolve_namespace(namespace)
        self._log.debug("getting_tls_certificate", name=name, namespace=ns)
        secret = self._call(
            ("Secret", name, ns),
            self._client.core_v1.read_namespaced_secret,
            name=name,
            namespace=ns,
            retry_transient=True,
        )

        data = secret.data or {}
        encoded = data.get(TLS_CERT_KEY)
        if not encoded:
            raise CertificateDataError(
                f"Secret has no {TLS_CERT_KEY} entry", namespace=ns, secret_name=name
            )
        try:
            return base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as e:
            raise CertificateDataError(
                f"Secret {TLS_CERT_KEY} is not valid base64", namespace=ns, secret_name=name
            ) from e

    def delete_secret(self, name: str, namespace: str | None = None) -> None:
        """Delete a secret.

        Args:
            name: Secret name.
            namespace: Target namespace.
        """
        ns = self._resolve_namespace(namespace)
        self._log.info("deleting_secret", name=name, namespace=ns)
        self._call(
            ("Secret", name, ns),
            self._client.core_v1.delete_namespaced_secret,
            name=name,
            namespace=ns,
        )
        self._log.info("deleted_secret", name=name, namespace=ns)
