"""Ingress resource manager.

Reads, watches and mutates Ingresses through ``NetworkingV1Api``. Every
mutation is a read-modify-replace that carries the freshly read
``resourceVersion``, so concurrent writers surface as 409 conflicts which are
retried with a new read.
"""

from __future__ import annotations

from collections.abc import Callable, Generator
from dataclasses import dataclass
from typing import Any

from ingress_renewal_manager.core.constants import WATCH_WINDOW_SECONDS
from ingress_renewal_manager.integrations.kubernetes.models.networking import IngressResource
from ingress_renewal_manager.services.kubernetes.base import K8sBaseManager


@dataclass(frozen=True)
class IngressEvent:
    """A watch event with the ingress already projected.

    Attributes:
        type: ADDED, MODIFIED, DELETED, BOOKMARK or ERROR.
        ingress: The projected ingress, or None when the event object was not
            a typed Ingress.
        object_kind: Python type name of the raw event object.
        resource_version: Resource version carried by the event object.
        error_code: HTTP status code of an ERROR event.
    """

    type: str
    ingress: IngressResource | None
    object_kind: str
    resource_version: str | None = None
    error_code: int | None = None


class IngressManager(K8sBaseManager):
    """Manager for the Ingresses the renewal engine operates on."""

    _entity_name = "ingress"

    # =========================================================================
    # Read Operations
    # =========================================================================

    def list_ingresses(
        self,
        namespace: str | None = None,
        *,
        label_selector: str | None = None,
    ) -> list[IngressResource]:
        """List ingresses.

        Args:
            namespace: Restrict to one namespace; None lists cluster-wide.
            label_selector: Filter by label selector.

        Returns:
            List of ingress projections.
        """
        self._log.debug("listing_ingresses", namespace=namespace or "*")
        kwargs: dict[str, Any] = {}
        if label_selector:
            kwargs["label_selector"] = label_selector

        target = ("Ingress", None, namespace)
        api = self._client.networking_v1
        if namespace:
            result = self._call(
                target,
                api.list_namespaced_ingress,
                namespace=namespace,
                retry_transient=True,
                **kwargs,
            )
        else:
            result = self._call(
                target, api.list_ingress_for_all_namespaces, retry_transient=True, **kwargs
            )

        items = [IngressResource.from_k8s_object(ing) for ing in result.items]
        self._log.debug("listed_ingresses", count=len(items))
        return items

    def get_ingress(self, name: str, namespace: str | None = None) -> IngressResource:
        """Get a single ingress by name.

        Args:
            name: Ingress name.
            namespace: Target namespace.

        Returns:
            Ingress projection.

        Raises:
            KubernetesNotFoundError: If the ingress does not exist.
        """
        ns = self._resolve_namespace(namespace)
        self._log.debug("getting_ingress", name=name, namespace=ns)
        result = self._call(
            ("Ingress", name, ns),
            self._client.networking_v1.read_namespaced_ingress,
            name=name,
            namespace=ns,
            retry_transient=True,
        )
        return IngressResource.from_k8s_object(result)

    # =========================================================================
    # Mutations
    # =========================================================================

    def mutate_ingress(
        self,
        name: str,
        namespace: str | None,
        mutate: Callable[[Any], bool],
    ) -> IngressResource:
        """Apply a change to the live ingress with read-modify-replace.

        ``mutate`` receives the freshly read V1Ingress and edits it in place,
        returning False when nothing needs to be written. On a write conflict
        the ingress is read again and ``mutate`` re-applied, up to the
        client's retry budget.

        Args:
            name: Ingress name.
            namespace: Target namespace.
            mutate: In-place edit of the V1Ingress object.

        Returns:
            Projection of the ingress as stored after the change.

        Raises:
            KubernetesConflictError: If every attempt lost the write race.
            KubernetesNotFoundError: If the ingress does not exist.
        """
        ns = self._resolve_namespace(namespace)

        target = ("Ingress", name, ns)
        api = self._client.networking_v1

        def attempt() -> IngressResource:
            current = self._call(target, api.read_namespaced_ingress, name=name, namespace=ns)

            if not mutate(current):
                self._log.debug("ingress_unchanged", name=name, namespace=ns)
                return IngressResource.from_k8s_object(current)

            result = self._call(
                target, api.replace_namespaced_ingress, name=name, namespace=ns, body=current
            )

            self._log.debug(
                "replaced_ingress",
                name=name,
                namespace=ns,
                resource_version=getattr(result.metadata, "resource_version", None),
            )
            return IngressResource.from_k8s_object(result)

        retrying = self._client.make_conflict_retry_decorator()
        result: IngressResource = retrying(attempt)()
        return result

    def remove_annotation(self, name: str, namespace: str | None, key: str) -> str | None:
        """Delete one annotation from the ingress.

        Args:
            name: Ingress name.
            namespace: Target namespace.
            key: Annotation key to delete.

        Returns:
            The value the annotation held before removal, or None if absent.
        """
        previous: list[str | None] = [None]

        def drop(ingress: Any) -> bool:
            annotations = ingress.metadata.annotations or {}
            previous[0] = annotations.get(key)
            if key not in annotations:
                return False
            del annotations[key]
            ingress.metadata.annotations = annotations
            return True

        self.mutate_ingress(name, namespace, drop)
        self._log.info("removed_annotation", name=name, namespace=namespace, key=key)
        return previous[0]

    def set_annotation(
        self,
        name: str,
        namespace: str | None,
        key: str,
        value: str,
    ) -> IngressResource:
        """Set one annotation on the ingress.

        Args:
            name: Ingress name.
            namespace: Target namespace.
            key: Annotation key.
            value: Annotation value.

        Returns:
            Projection of the ingress after the write.
        """

        def put(ingress: Any) -> bool:
            annotations = ingress.metadata.annotations or {}
            if annotations.get(key) == value:
                return False
            annotations[key] = value
            ingress.metadata.annotations = annotations
            return True

        result = self.mutate_ingress(name, namespace, put)
        self._log.info("set_annotation", name=name, namespace=namespace, key=key, value=value)
        return result

    def replace_tls_secret_name(
        self,
        name: str,
        namespace: str | None,
        old_secret: str,
        new_secret: str,
    ) -> bool:
        """Point the TLS entries referencing ``old_secret`` at ``new_secret``.

        Args:
            name: Ingress name.
            namespace: Target namespace.
            old_secret: Secret name currently referenced.
            new_secret: Secret name to reference instead.

        Returns:
            True if at least one TLS entry was rewritten.
        """
        replaced: list[bool] = [False]

        def rewrite(ingress: Any) -> bool:
            replaced[0] = False
            for entry in getattr(ingress.spec, "tls", None) or []:
                if entry.secret_name == old_secret:
                    entry.secret_name = new_secret
                    replaced[0] = True
            return replaced[0]

        self.mutate_ingress(name, namespace, rewrite)
        if replaced[0]:
            self._log.info(
                "replaced_tls_secret",
                name=name,
                namespace=namespace,
                old_secret=old_secret,
                new_secret=new_secret,
            )
        return replaced[0]

    # =========================================================================
    # Watches
    # =========================================================================

    def watch_ingress(
        self,
        name: str,
        namespace: str | None,
        *,
        timeout_seconds: int = WATCH_WINDOW_SECONDS,
    ) -> Generator[IngressEvent]:
        """Watch a single ingress for one bounded window.

        The stream ends when the server closes the window. Closing the
        generator stops the underlying watch.

        Args:
            name: Ingress name.
            namespace: Target namespace.
            timeout_seconds: Server-side window length.

        Yields:
            Projected watch events.
        """
        ns = self._resolve_namespace(namespace)
        yield from self._stream(
            self._client.networking_v1.list_namespaced_ingress,
            resource_name=name,
            namespace=ns,
            field_selector=f"metadata.name={name}",
            timeout_seconds=timeout_seconds,
        )

    def watch_ingresses(
        self,
        namespace: str | None = None,
        *,
        resource_version: str | None = None,
        timeout_seconds: int = WATCH_WINDOW_SECONDS,
    ) -> Generator[IngressEvent]:
        """Watch ingresses cluster-wide (or in one namespace) for one window.

        Args:
            namespace: Restrict to one namespace; None watches cluster-wide.
            resource_version: Resume point; None replays current state as ADDED.
            timeout_seconds: Server-side window length.

        Yields:
            Projected watch events.

        Raises:
            KubernetesGoneError: If ``resource_version`` has expired.
        """
        kwargs: dict[str, Any] = {"timeout_seconds": timeout_seconds}
        if resource_version:
            kwargs["resource_version"] = resource_version
        if namespace:
            yield from self._stream(
                self._client.networking_v1.list_namespaced_ingress,
                namespace=namespace,
                **kwargs,
            )
        else:
            yield from self._stream(
                self._client.networking_v1.list_ingress_for_all_namespaces,
                **kwargs,
            )

    def _stream(
        self,
        list_func: Callable[..., Any],
        *,
        resource_name: str | None = None,
        **kwargs: Any,
    ) -> Generator[IngressEvent]:
        """Run one watch window and project its events."""
        from kubernetes.client import V1Ingress
        from kubernetes.watch import Watch

        namespace = kwargs.get("namespace")
        watcher = Watch()
        try:
            for event in watcher.stream(list_func, **kwargs):
                obj = event.get("object")
                event_type = str(event.get("type", ""))
                if isinstance(obj, V1Ingress):
                    ingress = IngressResource.from_k8s_object(obj)
                    yield IngressEvent(
                        type=event_type,
                        ingress=ingress,
                        object_kind=type(obj).__name__,
                        resource_version=ingress.resource_version,
                    )
                else:
                    raw = event.get("raw_object") or {}
                    code = raw.get("code") if isinstance(raw, dict) else None
                    yield IngressEvent(
                        type=event_type,
                        ingress=None,
                        object_kind=type(obj).__name__,
                        error_code=code,
                    )
        except Exception as e:
            self._handle_api_error(e, "Ingress", resource_name, namespace)
        finally:
            watcher.stop()
