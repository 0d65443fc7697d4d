"""Shared fixtures for renewal engine tests.

The engine runs against in-memory stand-ins for the ingress, secret and
policy managers and a manual clock, so multi-second renewal scenarios run
instantly and deterministically.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID
from prometheus_client import CollectorRegistry

from ingress_renewal_manager.core.config.models import RenewerSettings
from ingress_renewal_manager.core.constants import CHALLENGE_PATH_SUBSTRING
from ingress_renewal_manager.integrations.kubernetes.exceptions import KubernetesNotFoundError
from ingress_renewal_manager.integrations.kubernetes.models import (
    IngressResource,
    IngressRule,
    RenewalPolicy,
)
from ingress_renewal_manager.services.renewal.audit import AuditScanner
from ingress_renewal_manager.services.renewal.challenge import PollingChallengeObserver
from ingress_renewal_manager.services.renewal.clock import Clock
from ingress_renewal_manager.services.renewal.metrics import RenewalMetrics
from ingress_renewal_manager.services.renewal.named_lock import NamedLock, ingress_key
from ingress_renewal_manager.services.renewal.secret_rotator import SecretRotator
from ingress_renewal_manager.services.renewal.state_machine import RenewalStateMachine
from tests.unit.conftest import CHALLENGE_PATH, make_ingress

# =============================================================================
# Clock
# =============================================================================


class ManualClock(Clock):
    """Clock whose sleeps advance virtual time instantly."""

    def __init__(self) -> None:
        super().__init__()
        self.now = 0.0
        self.sleeps: list[float] = []
        self.on_sleep: list[Callable[[float], None]] = []

    def monotonic(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> bool:
        if self.stopped:
            return True
        self.sleeps.append(seconds)
        self.now += max(seconds, 0.0)
        for hook in list(self.on_sleep):
            hook(self.now)
        return self.stopped

    def stop_at(self, when: float) -> None:
        """Request shutdown once virtual time reaches ``when``."""
        self.on_sleep.append(lambda now: self.stop() if now >= when else None)


# =============================================================================
# In-memory managers
# =============================================================================


class FakeIngresses:
    """In-memory IngressManager.

    A challenge registered with ``clears_after`` disappears that many seconds
    after the force-HTTPS annotation was last removed, as an issuer would
    remove its solver route once the challenge is answered.
    """

    def __init__(self, clock: ManualClock) -> None:
        self.clock = clock
        self.items: dict[str, IngressResource] = {}
        self.removed_at: dict[str, float] = {}
        self.clear_after: dict[str, float] = {}
        self.clear_after_rotation: dict[str, float] = {}
        self.errors: dict[str, Exception] = {}
        self.calls: list[tuple[Any, ...]] = []

    def add(self, name: str = "web", namespace: str = "shop", **kwargs: Any) -> IngressResource:
        ingress = IngressResource.from_k8s_object(make_ingress(name, namespace, **kwargs))
        self.items[ingress.key] = ingress
        return ingress

    def add_challenged(
        self,
        name: str = "web",
        namespace: str = "shop",
        clears_after: float | None = None,
        **kwargs: Any,
    ) -> IngressResource:
        ingress = self.add(name, namespace, paths=("/", CHALLENGE_PATH), **kwargs)
        if clears_after is not None:
            self.clear_after[ingress.key] = clears_after
        return ingress

    def start_challenge(self, key: str, clears_after: float | None = None) -> None:
        ingress = self.items[key]
        rules = [IngressRule(host=r.host, paths=(*r.paths, CHALLENGE_PATH)) for r in ingress.rules]
        self.items[key] = ingress.model_copy(update={"rules": rules})
        if clears_after is not None:
            self.clear_after[key] = clears_after

    def annotation(self, key: str, annotation: str) -> str | None:
        return (self.items[key].annotations or {}).get(annotation)

    def _check(self, method: str) -> None:
        if method in self.errors:
            raise self.errors[method]

    def _settle(self, key: str) -> None:
        if key not in self.removed_at or key not in self.clear_after:
            return
        if self.clock.now - self.removed_at[key] < self.clear_after[key]:
            return
        del self.clear_after[key]
        ingress = self.items[key]
        rules = [
            IngressRule(
                host=r.host, paths=tuple(p for p in r.paths if CHALLENGE_PATH_SUBSTRING not in p)
            )
            for r in ingress.rules
        ]
        self.items[key] = ingress.model_copy(update={"rules": rules})

    def _get(self, name: str, namespace: str | None) -> IngressResource:
        key = ingress_key(namespace or "", name)
        if key not in self.items:
            raise KubernetesNotFoundError(
                resource_type="Ingress", resource_name=name, namespace=namespace
            )
        return self.items[key]

    def list_ingresses(self, namespace: str | None = None) -> list[IngressResource]:
        self._check("list_ingresses")
        self.calls.append(("list_ingresses", namespace))
        return [i for i in self.items.values() if namespace is None or i.namespace == namespace]

    def get_ingress(self, name: str, namespace: str | None = None) -> IngressResource:
        self._check("get_ingress")
        self._settle(ingress_key(namespace or "", name))
        return self._get(name, namespace)

    def remove_annotation(self, name: str, namespace: str | None, key: str) -> str | None:
        self._check("remove_annotation")
        ingress = self._get(name, namespace)
        annotations = dict(ingress.annotations or {})
        previous = annotations.pop(key, None)
        self.items[ingress.key] = ingress.model_copy(update={"annotations": annotations})
        self.removed_at[ingress.key] = self.clock.now
        self.calls.append(("remove_annotation", ingress.key))
        return previous

    def set_annotation(
        self, name: str, namespace: str | None, key: str, value: str
    ) -> IngressResource:
        self._check("set_annotation")
        ingress = self._get(name, namespace)
        annotations = dict(ingress.annotations or {})
        annotations[key] = value
        self.items[ingress.key] = ingress.model_copy(update={"annotations": annotations})
        self.calls.append(("set_annotation", ingress.key, value))
        return self.items[ingress.key]

    def replace_tls_secret_name(
        self, name: str, namespace: str | None, old_secret: str, new_secret: str
    ) -> bool:
        self._check("replace_tls_secret_name")
        ingress = self._get(name, namespace)
        tls = [
            t.model_copy(update={"secret_name": new_secret}) if t.secret_name == old_secret else t
            for t in ingress.tls
        ]
        if tls == ingress.tls:
            return False
        self.items[ingress.key] = ingress.model_copy(update={"tls": tls})
        self.calls.append(("replace_tls_secret_name", ingress.key, new_secret))
        if ingress.key in self.clear_after_rotation:
            self.clear_after[ingress.key] = self.clear_after_rotation.pop(ingress.key)
        return True

    def mutations(self) -> list[tuple[Any, ...]]:
        return [c for c in self.calls if c[0] != "list_ingresses"]


class FakeSecrets:
    """In-memory SecretManager."""

    def __init__(self) -> None:
        self.data: dict[tuple[str, str], bytes] = {}
        self.deleted: list[tuple[str, str]] = []
        self.on_delete: list[Callable[[str, str], None]] = []

    def get_tls_certificate(self, name: str, namespace: str | None = None) -> bytes:
        try:
            return self.data[(namespace or "", name)]
        except KeyError:
            raise KubernetesNotFoundError(
                resource_type="Secret", resource_name=name, namespace=namespace
            ) from None

    def delete_secret(self, name: str, namespace: str | None = None) -> None:
        self.data.pop((namespace or "", name), None)
        self.deleted.append((namespace or "", name))
        for hook in self.on_delete:
            hook(namespace or "", name)


class FakePolicies:
    """In-memory PolicyManager."""

    def __init__(self) -> None:
        self.policies: dict[str, RenewalPolicy] = {}
        self.status_updates: list[tuple[str | None, bool, list[str]]] = []

    def put(self, namespace: str, **spec: int) -> RenewalPolicy:
        values = {
            "certificate_renewal_threshold": 30,
            "annotation_removal_delay": 10,
            "renewal_check_interval": 60,
        }
        values.update(spec)
        policy = RenewalPolicy(namespace=namespace, target_namespace=namespace, **values)
        self.policies[namespace] = policy
        return policy

    def get_or_create_policy(
        self,
        namespace: str | None = None,
        *,
        certificate_renewal_threshold: int,
        annotation_removal_delay: int,
        renewal_check_interval: int,
    ) -> RenewalPolicy:
        ns = namespace or ""
        if ns not in self.policies:
            self.put(
                ns,
                certificate_renewal_threshold=certificate_renewal_threshold,
                annotation_removal_delay=annotation_removal_delay,
                renewal_check_interval=renewal_check_interval,
            )
        return self.policies[ns]

    def update_status(
        self,
        policy: RenewalPolicy,
        *,
        renewed: bool,
        ingress_paths: list[str],
        message: str = "",
    ) -> RenewalPolicy:
        self.status_updates.append((policy.namespace, renewed, sorted(ingress_paths)))
        return policy


# =============================================================================
# Certificates
# =============================================================================


def make_certificate(days_left: float, *, der: bool = False) -> bytes:
    """Mint a self-signed certificate expiring ``days_left`` days from now."""
    key = ec.generate_private_key(ec.SECP256R1())
    subject = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "shop.example.com")])
    now = datetime.now(UTC)
    certificate = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(subject)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(days=30))
        .not_valid_after(now + timedelta(days=days_left))
        .sign(key, hashes.SHA256())
    )
    encoding = serialization.Encoding.DER if der else serialization.Encoding.PEM
    return certificate.public_bytes(encoding)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def ingresses(clock: ManualClock) -> FakeIngresses:
    return FakeIngresses(clock)


@pytest.fixture
def secrets() -> FakeSecrets:
    return FakeSecrets()


@pytest.fixture
def policies() -> FakePolicies:
    return FakePolicies()


@pytest.fixture
def locks() -> NamedLock:
    return NamedLock()


@pytest.fixture
def metrics() -> RenewalMetrics:
    """Metrics on a private registry."""
    return RenewalMetrics(CollectorRegistry())


@pytest.fixture
def state_machine(
    ingresses: FakeIngresses, clock: ManualClock, locks: NamedLock, metrics: RenewalMetrics
) -> RenewalStateMachine:
    observer = PollingChallengeObserver(ingresses, clock)  # type: ignore[arg-type]
    return RenewalStateMachine(ingresses, observer, locks, clock, metrics)  # type: ignore[arg-type]


@pytest.fixture
def rotator(ingresses: FakeIngresses, locks: NamedLock, metrics: RenewalMetrics) -> SecretRotator:
    return SecretRotator(ingresses, locks, metrics)  # type: ignore[arg-type]


@pytest.fixture
def settings() -> RenewerSettings:
    return RenewerSettings(
        certificate_renewal_threshold=30,
        annotation_removal_delay=10,
        renewal_check_interval=60,
    )


@pytest.fixture
def make_scanner(
    ingresses: FakeIngresses,
    secrets: FakeSecrets,
    policies: FakePolicies,
    state_machine: RenewalStateMachine,
    rotator: SecretRotator,
    clock: ManualClock,
    metrics: RenewalMetrics,
    settings: RenewerSettings,
) -> Callable[..., AuditScanner]:
    """Build an AuditScanner, optionally overriding settings fields."""

    def build(**overrides: Any) -> AuditScanner:
        effective = settings.model_copy(update=overrides) if overrides else settings
        return AuditScanner(
            effective,
            ingresses,  # type: ignore[arg-type]
            secrets,  # type: ignore[arg-type]
            policies,  # type: ignore[arg-type]
            state_machine,
            rotator,
            clock,
            metrics,
        )

    return build
