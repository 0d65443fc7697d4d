"""Kubernetes resource managers used by the renewal engine."""

from ingress_renewal_manager.services.kubernetes.base import K8sBaseManager
from ingress_renewal_manager.services.kubernetes.ingress_manager import (
    IngressEvent,
    IngressManager,
)
from ingress_renewal_manager.services.kubernetes.policy_manager import PolicyManager
from ingress_renewal_manager.services.kubernetes.secret_manager import SecretManager

__all__ = [
    "IngressEvent",
    "IngressManager",
    "K8sBaseManager",
    "PolicyManager",
    "SecretManager",
]
