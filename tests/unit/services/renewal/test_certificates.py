"""Unit tests for certificate expiry checks."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from ingress_renewal_manager.core.exceptions import CertificateDataError
from ingress_renewal_manager.services.renewal.certificates import (
    load_certificate,
    needs_renewal,
    remaining_validity,
)
from tests.unit.services.renewal.conftest import make_certificate


@pytest.mark.unit
@pytest.mark.renewal
class TestCertificates:
    """Tests for certificate parsing and the renewal threshold."""

    def test_load_pem(self) -> None:
        """PEM certificates are parsed."""
        cert = load_certificate(make_certificate(10))
        assert cert.not_valid_after_utc > datetime.now(UTC)

    def test_load_der(self) -> None:
        """Raw DER certificates are parsed."""
        cert = load_certificate(make_certificate(10, der=True))
        assert cert.not_valid_after_utc > datetime.now(UTC)

    def test_load_garbage(self) -> None:
        """Non-certificate bytes raise CertificateDataError."""
        with pytest.raises(CertificateDataError):
            load_certificate(b"not a certificate")

    def test_load_broken_pem(self) -> None:
        """A PEM envelope around garbage is rejected."""
        with pytest.raises(CertificateDataError):
            load_certificate(b"-----BEGIN CERTIFICATE-----\nAAAA\n-----END CERTIFICATE-----\n")

    def test_remaining_validity(self) -> None:
        """Remaining validity counts down to NotAfter."""
        data = make_certificate(20)
        remaining = remaining_validity(data)
        assert timedelta(days=19) < remaining <= timedelta(days=20)

    def test_remaining_validity_expired(self) -> None:
        """Expired certificates have negative validity."""
        data = make_certificate(5)
        later = datetime.now(UTC) + timedelta(days=6)
        assert remaining_validity(data, now=later) < timedelta(0)

    def test_due_within_threshold(self) -> None:
        """Five days left with a 30 day threshold is due."""
        assert needs_renewal(make_certificate(5), 30) is True

    def test_not_due_outside_threshold(self) -> None:
        """Sixty days left with a 30 day threshold is not due."""
        assert needs_renewal(make_certificate(60), 30) is False

    def test_threshold_boundary_is_due(self) -> None:
        """Exactly the threshold remaining counts as due."""
        data = make_certificate(30)
        not_after = load_certificate(data).not_valid_after_utc
        assert needs_renewal(data, 30, now=not_after - timedelta(days=30)) is True
