"""Ingress projection used by the renewal engine.

Only the fields the engine reasons about are projected: the opt-in label,
the force-HTTPS annotation, rule paths (to spot in-flight ACME challenges),
TLS secret references and the resource version.
"""

from __future__ import annotations

from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field

from ingress_renewal_manager.core.constants import (
    CHALLENGE_PATH_SUBSTRING,
    ENABLED_LABEL,
    FORCE_HTTPS_ANNOTATION,
)
from ingress_renewal_manager.integrations.kubernetes.models.base import (
    K8sEntityBase,
    _get_annotations,
    _get_labels,
    _get_timestamp,
    _safe_get,
)


class IngressRule(BaseModel):
    """Ingress rule definition."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    host: str | None = Field(default=None, description="Hostname")
    paths: tuple[str, ...] = Field(default=(), description="Path patterns")

    @classmethod
    def from_k8s_object(cls, obj: Any) -> IngressRule:
        """Create from a kubernetes V1IngressRule object."""
        paths: list[str] = []
        http_paths = _safe_get(obj, "http", "paths") or []
        for p in http_paths:
            path = getattr(p, "path", None)
            paths.append(str(path) if path else "/")
        return cls(host=getattr(obj, "host", None), paths=tuple(paths))


class IngressTLS(BaseModel):
    """Ingress TLS entry."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    hosts: tuple[str, ...] = Field(default=(), description="Hostnames covered")
    secret_name: str | None = Field(default=None, description="TLS secret name")

    @classmethod
    def from_k8s_object(cls, obj: Any) -> IngressTLS:
        """Create from a kubernetes V1IngressTLS object."""
        hosts = getattr(obj, "hosts", None) or []
        return cls(hosts=tuple(hosts), secret_name=getattr(obj, "secret_name", None))


class IngressResource(K8sEntityBase):
    """Ingress projection."""

    _entity_name: ClassVar[str] = "ingress"

    rules: list[IngressRule] = Field(default_factory=list, description="Ingress rules")
    tls: list[IngressTLS] = Field(default_factory=list, description="TLS entries")

    @classmethod
    def from_k8s_object(cls, obj: Any) -> IngressResource:
        """Create from a kubernetes V1Ingress object."""
        rules_raw = _safe_get(obj, "spec", "rules") or []
        tls_raw = _safe_get(obj, "spec", "tls") or []

        return cls(
            name=_safe_get(obj, "metadata", "name", default=""),
            namespace=_safe_get(obj, "metadata", "namespace"),
            uid=_safe_get(obj, "metadata", "uid"),
            resource_version=_safe_get(obj, "metadata", "resource_version"),
            creation_timestamp=_get_timestamp(_safe_get(obj, "metadata", "creation_timestamp")),
            labels=_get_labels(obj),
            annotations=_get_annotations(obj),
            rules=[IngressRule.from_k8s_object(r) for r in rules_raw],
            tls=[IngressTLS.from_k8s_object(t) for t in tls_raw],
        )

    @property
    def paths(self) -> list[str]:
        """All rule paths, in rule order."""
        return [path for rule in self.rules for path in rule.paths]

    @property
    def secret_names(self) -> list[str]:
        """TLS secret names, in TLS entry order."""
        return [t.secret_name for t in self.tls if t.secret_name]

    @property
    def has_challenge(self) -> bool:
        """Whether any rule path is an ACME HTTP-01 challenge path."""
        return any(CHALLENGE_PATH_SUBSTRING in path for path in self.paths)

    @property
    def is_enabled(self) -> bool:
        """Whether the ingress opted in to managed renewal."""
        value = (self.labels or {}).get(ENABLED_LABEL)
        return value is not None and value.strip().lower() == "true"

    @property
    def force_https(self) -> str | None:
        """Current value of the force-HTTPS annotation, if present."""
        return (self.annotations or {}).get(FORCE_HTTPS_ANNOTATION)
