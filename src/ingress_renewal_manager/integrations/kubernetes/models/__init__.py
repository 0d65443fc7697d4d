"""Projected Kubernetes resource models used by the renewal engine."""

from ingress_renewal_manager.integrations.kubernetes.models.networking import (
    IngressResource,
    IngressRule,
    IngressTLS,
)
from ingress_renewal_manager.integrations.kubernetes.models.policy import (
    PolicyCondition,
    RenewalPolicy,
)

__all__ = [
    "IngressResource",
    "IngressRule",
    "IngressTLS",
    "PolicyCondition",
    "RenewalPolicy",
]
