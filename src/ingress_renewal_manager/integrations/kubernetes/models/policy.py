"""Renewal policy custom resource model.

Policy records are accessed via ``CustomObjectsApi`` which returns raw
``dict`` objects rather than typed SDK classes, so ``from_k8s_object`` reads
with ``dict.get()`` and ``to_body`` writes the camelCase wire form.
"""

from __future__ import annotations

from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field

from ingress_renewal_manager.core.constants import (
    DEFAULT_POLICY_NAME,
    POLICY_GROUP,
    POLICY_KIND,
    POLICY_VERSION,
)
from ingress_renewal_manager.integrations.kubernetes.models.base import K8sEntityBase


class PolicyCondition(BaseModel):
    """Policy status condition from ``.status.conditions[]``."""

    model_config = ConfigDict(extra="ignore")

    type: str = Field(default="", description="Condition type")
    status: str = Field(default="Unknown", description="Condition status (True, False, Unknown)")
    reason: str = Field(default="", description="Machine-readable reason")
    message: str = Field(default="", description="Human-readable message")
    last_transition_time: str | None = Field(default=None, description="Last transition timestamp")

    @classmethod
    def from_k8s_object(cls, obj: dict[str, Any]) -> PolicyCondition:
        """Create from a condition dict."""
        return cls(
            type=obj.get("type", ""),
            status=obj.get("status", "Unknown"),
            reason=obj.get("reason", ""),
            message=obj.get("message", ""),
            last_transition_time=obj.get("lastTransitionTime"),
        )

    def to_body(self) -> dict[str, Any]:
        """Serialize to the wire form."""
        body: dict[str, Any] = {
            "type": self.type,
            "status": self.status,
            "reason": self.reason,
            "message": self.message,
        }
        if self.last_transition_time:
            body["lastTransitionTime"] = self.last_transition_time
        return body


class RenewalPolicy(K8sEntityBase):
    """Per-namespace renewal policy.

    All three durations must be strictly positive; ``model_validate`` raises
    ``ValidationError`` otherwise.
    """

    _entity_name: ClassVar[str] = "policy"

    name: str = Field(default=DEFAULT_POLICY_NAME, description="Resource name")
    target_namespace: str = Field(default="", description="Namespace the policy governs")
    certificate_renewal_threshold: int = Field(gt=0, description="Renewal threshold in days")
    annotation_removal_delay: int = Field(gt=0, description="Challenge wait in seconds")
    renewal_check_interval: int = Field(gt=0, description="Audit interval in minutes")
    conditions: list[PolicyCondition] = Field(default_factory=list, description="Status conditions")
    ingress_paths_for_renewal: list[str] = Field(
        default_factory=list, description="Ingresses renewed in the last pass"
    )

    @classmethod
    def from_k8s_object(cls, obj: dict[str, Any]) -> RenewalPolicy:
        """Create from a custom object dict."""
        metadata: dict[str, Any] = obj.get("metadata", {}) or {}
        spec: dict[str, Any] = obj.get("spec", {}) or {}
        status: dict[str, Any] = obj.get("status", {}) or {}

        return cls.model_validate(
            {
                "name": metadata.get("name", DEFAULT_POLICY_NAME),
                "namespace": metadata.get("namespace"),
                "uid": metadata.get("uid"),
                "resource_version": metadata.get("resourceVersion"),
                "creation_timestamp": metadata.get("creationTimestamp"),
                "labels": metadata.get("labels"),
                "annotations": metadata.get("annotations"),
                "target_namespace": spec.get("targetNamespace", metadata.get("namespace", "")),
                "certificate_renewal_threshold": spec.get("certificateRenewalThreshold"),
                "annotation_removal_delay": spec.get("annotationRemovalDelay"),
                "renewal_check_interval": spec.get("renewalCheckInterval"),
                "conditions": [
                    PolicyCondition.from_k8s_object(c) for c in status.get("conditions", []) or []
                ],
                "ingress_paths_for_renewal": list(status.get("ingressPathsForRenewal", []) or []),
            }
        )

    def to_body(self) -> dict[str, Any]:
        """Serialize to a custom object body suitable for create."""
        body: dict[str, Any] = {
            "apiVersion": f"{POLICY_GROUP}/{POLICY_VERSION}",
            "kind": POLICY_KIND,
            "metadata": {"name": self.name, "namespace": self.namespace},
            "spec": {
                "targetNamespace": self.target_namespace,
                "certificateRenewalThreshold": self.certificate_renewal_threshold,
                "annotationRemovalDelay": self.annotation_removal_delay,
                "renewalCheckInterval": self.renewal_check_interval,
            },
        }
        if self.labels:
            body["metadata"]["labels"] = dict(self.labels)
        return body

    def status_body(self) -> dict[str, Any]:
        """Serialize the status block for a status subresource patch."""
        return {
            "status": {
                "conditions": [c.to_body() for c in self.conditions],
                "ingressPathsForRenewal": list(self.ingress_paths_for_renewal),
            }
        }
