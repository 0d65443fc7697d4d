"""Builders for kubernetes SDK objects shared by unit tests."""

from __future__ import annotations

from typing import Any

from kubernetes.client import (
    V1HTTPIngressPath,
    V1HTTPIngressRuleValue,
    V1Ingress,
    V1IngressBackend,
    V1IngressRule,
    V1IngressServiceBackend,
    V1IngressSpec,
    V1IngressTLS,
    V1ObjectMeta,
    V1ServiceBackendPort,
)

from ingress_renewal_manager.core.constants import ENABLED_LABEL, FORCE_HTTPS_ANNOTATION

CHALLENGE_PATH = "/.well-known/acme-challenge/token-abc"


def make_ingress(
    name: str = "web",
    namespace: str = "shop",
    *,
    enabled: str | None = "true",
    force_https: str | None = "HTTPS",
    paths: tuple[str, ...] = ("/",),
    secret_names: tuple[str, ...] = ("web-tls",),
    resource_version: str = "1",
    host: str = "shop.example.com",
    extra_annotations: dict[str, str] | None = None,
) -> V1Ingress:
    """Build a V1Ingress the way the API server returns it."""
    labels: dict[str, str] = {"app": name}
    if enabled is not None:
        labels[ENABLED_LABEL] = enabled
    annotations: dict[str, Any] = dict(extra_annotations or {})
    if force_https is not None:
        annotations[FORCE_HTTPS_ANNOTATION] = force_https

    backend = V1IngressBackend(
        service=V1IngressServiceBackend(name=name, port=V1ServiceBackendPort(number=443))
    )
    http_paths = [V1HTTPIngressPath(path=p, path_type="Prefix", backend=backend) for p in paths]

    return V1Ingress(
        api_version="networking.k8s.io/v1",
        kind="Ingress",
        metadata=V1ObjectMeta(
            name=name,
            namespace=namespace,
            uid=f"uid-{name}",
            resource_version=resource_version,
            labels=labels,
            annotations=annotations or None,
        ),
        spec=V1IngressSpec(
            rules=[V1IngressRule(host=host, http=V1HTTPIngressRuleValue(paths=http_paths))],
            tls=[V1IngressTLS(hosts=[host], secret_name=s) for s in secret_names],
        ),
    )
