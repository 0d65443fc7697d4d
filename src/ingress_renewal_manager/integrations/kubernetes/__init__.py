"""Kubernetes integration - API client and configuration models."""

from ingress_renewal_manager.integrations.kubernetes.client import KubernetesClient
from ingress_renewal_manager.integrations.kubernetes.config import (
    ClusterConfig,
    KubernetesDefaultsConfig,
    KubernetesPluginConfig,
)
from ingress_renewal_manager.integrations.kubernetes.exceptions import (
    KubernetesAuthError,
    KubernetesConflictError,
    KubernetesConnectionError,
    KubernetesError,
    KubernetesGoneError,
    KubernetesNotFoundError,
    KubernetesTimeoutError,
    KubernetesValidationError,
)

__all__ = [
    "ClusterConfig",
    "KubernetesAuthError",
    "KubernetesClient",
    "KubernetesConflictError",
    "KubernetesConnectionError",
    "KubernetesDefaultsConfig",
    "KubernetesError",
    "KubernetesGoneError",
    "KubernetesNotFoundError",
    "KubernetesPluginConfig",
    "KubernetesTimeoutError",
    "KubernetesValidationError",
]
