"""Certificate expiry inspection for TLS secrets."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from cryptography import x509

from ingress_renewal_manager.core.exceptions import CertificateDataError

_PEM_MARKER = b"-----BEGIN"


def load_certificate(data: bytes) -> x509.Certificate:
    """Parse the first certificate from PEM or raw DER bytes.

    Raises:
        CertificateDataError: If the bytes are not a certificate.
    """
    try:
        if _PEM_MARKER in data:
            return x509.load_pem_x509_certificate(data)
        return x509.load_der_x509_certificate(data)
    except ValueError as e:
        raise CertificateDataError(f"Cannot parse certificate: {e}") from e


def remaining_validity(data: bytes, now: datetime | None = None) -> timedelta:
    """Time left until the certificate's NotAfter; negative once expired."""
    certificate = load_certificate(data)
    current = now or datetime.now(UTC)
    return certificate.not_valid_after_utc - current


def needs_renewal(data: bytes, threshold_days: int, now: datetime | None = None) -> bool:
    """Whether the certificate has ``threshold_days`` or fewer days left."""
    return remaining_validity(data, now) <= timedelta(days=threshold_days)
