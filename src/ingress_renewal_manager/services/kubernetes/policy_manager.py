"""Renewal policy manager.

Policies are ``NimbleOpti`` custom resources accessed through
``CustomObjectsApi``. A namespace without a policy gets one created lazily
with process defaults; the engine never deletes them.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError

from ingress_renewal_manager.core.constants import (
    CONDITION_READY,
    DEFAULT_POLICY_NAME,
    POLICY_GROUP,
    POLICY_PLURAL,
    POLICY_VERSION,
    REASON_RENEWAL_FAILED,
    REASON_RENEWED,
)
from ingress_renewal_manager.core.exceptions import PolicyDataError
from ingress_renewal_manager.integrations.kubernetes.exceptions import (
    KubernetesConflictError,
    KubernetesNotFoundError,
)
from ingress_renewal_manager.integrations.kubernetes.models.policy import (
    PolicyCondition,
    RenewalPolicy,
)
from ingress_renewal_manager.services.kubernetes.base import K8sBaseManager


class PolicyManager(K8sBaseManager):
    """Manager for per-namespace renewal policies."""

    _entity_name = "policy"

    def _parse(self, obj: dict[str, Any], namespace: str) -> RenewalPolicy:
        try:
            return RenewalPolicy.from_k8s_object(obj)
        except ValidationError as e:
            name = (obj.get("metadata") or {}).get("name")
            raise PolicyDataError(
                f"Invalid renewal policy: {e.errors()[0]['msg']}",
                namespace=namespace,
                name=name,
            ) from e

    def get_policy(self, namespace: str | None = None) -> RenewalPolicy:
        """Get the renewal policy governing a namespace.

        The first policy listed in the namespace wins.

        Args:
            namespace: Target namespace.

        Returns:
            The namespace policy.

        Raises:
            KubernetesNotFoundError: If the namespace has no policy.
            PolicyDataError: If the policy has non-positive durations.
        """
        ns = self._resolve_namespace(namespace)
        self._log.debug("getting_policy", namespace=ns)
        result = self._call(
            ("NimbleOpti", None, ns),
            self._client.custom_objects.list_namespaced_custom_object,
            POLICY_GROUP,
            POLICY_VERSION,
            ns,
            POLICY_PLURAL,
            retry_transient=True,
        )

        items: list[dict[str, Any]] = result.get("items", [])
        if not items:
            raise KubernetesNotFoundError(resource_type="NimbleOpti", namespace=ns)
        return self._parse(items[0], ns)

    def create_policy(
        self,
        namespace: str | None = None,
        *,
        certificate_renewal_threshold: int,
        annotation_removal_delay: int,
        renewal_check_interval: int,
        name: str = DEFAULT_POLICY_NAME,
    ) -> RenewalPolicy:
        """Create a renewal policy.

        Args:
            namespace: Target namespace.
            certificate_renewal_threshold: Renewal threshold in days.
            annotation_removal_delay: Challenge wait in seconds.
            renewal_check_interval: Audit interval in minutes.
            name: Policy object name.

        Returns:
            The created policy.
        """
        ns = self._resolve_namespace(namespace)
        try:
            policy = RenewalPolicy(
                name=name,
                namespace=ns,
                target_namespace=ns,
                certificate_renewal_threshold=certificate_renewal_threshold,
                annotation_removal_delay=annotation_removal_delay,
                renewal_check_interval=renewal_check_interval,
            )
        except ValidationError as e:
            raise PolicyDataError(
                f"Invalid renewal policy defaults: {e.errors()[0]['msg']}",
                namespace=ns,
                name=name,
            ) from e

        self._log.info("creating_policy", name=name, namespace=ns)
        result = self._call(
            ("NimbleOpti", name, ns),
            self._client.custom_objects.create_namespaced_custom_object,
            POLICY_GROUP,
            POLICY_VERSION,
            ns,
            POLICY_PLURAL,
            policy.to_body(),
        )

        self._log.info("created_policy", name=name, namespace=ns)
        return self._parse(result, ns)

    def get_or_create_policy(
        self,
        namespace: str | None = None,
        *,
        certificate_renewal_threshold: int,
        annotation_removal_delay: int,
        renewal_check_interval: int,
    ) -> RenewalPolicy:
        """Get the namespace policy, creating a default one if absent.

        A concurrent creator winning the race is tolerated by reading again.

        Args:
            namespace: Target namespace.
            certificate_renewal_threshold: Default renewal threshold in days.
            annotation_removal_delay: Default challenge wait in seconds.
            renewal_check_interval: Default audit interval in minutes.

        Returns:
            The existing or newly created policy.
        """
        ns = self._resolve_namespace(namespace)
        try:
            return self.get_policy(ns)
        except KubernetesNotFoundError:
            self._log.info("policy_missing", namespace=ns)

        try:
            return self.create_policy(
                ns,
                certificate_renewal_threshold=certificate_renewal_threshold,
                annotation_removal_delay=annotation_removal_delay,
                renewal_check_interval=renewal_check_interval,
            )
        except KubernetesConflictError:
            self._log.debug("policy_created_concurrently", namespace=ns)
            return self.get_policy(ns)

    def update_status(
        self,
        policy: RenewalPolicy,
        *,
        renewed: bool,
        ingress_paths: list[str],
        message: str = "",
    ) -> RenewalPolicy:
        """Write the policy status block after a pass with renewal activity.

        Args:
            policy: Policy to update.
            renewed: Whether every attempted renewal in the namespace succeeded.
            ingress_paths: ``namespace/name`` keys of the ingresses attempted.
            message: Human-readable condition message.

        Returns:
            The policy as stored after the status write.
        """
        ns = policy.namespace or self._resolve_namespace(None)
        condition = PolicyCondition(
            type=CONDITION_READY,
            status="True" if renewed else "False",
            reason=REASON_RENEWED if renewed else REASON_RENEWAL_FAILED,
            message=message,
            last_transition_time=datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ"),
        )
        conditions = [c for c in policy.conditions if c.type != CONDITION_READY]
        conditions.append(condition)
        updated = policy.model_copy(
            update={"conditions": conditions, "ingress_paths_for_renewal": sorted(ingress_paths)}
        )

        self._log.debug("updating_policy_status", name=policy.name, namespace=ns, renewed=renewed)
        result = self._call(
            ("NimbleOpti", policy.name, ns),
            self._client.custom_objects.patch_namespaced_custom_object_status,
            POLICY_GROUP,
            POLICY_VERSION,
            ns,
            POLICY_PLURAL,
            policy.name,
            updated.status_body(),
        )

        return self._parse(result, ns)
