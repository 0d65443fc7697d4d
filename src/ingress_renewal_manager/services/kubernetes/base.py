"""Common plumbing for the Ingress, Secret and policy managers.

Every blocking object-store call goes through ``K8sBaseManager._call`` so it
carries the configured request deadline and fails with a translated
``KubernetesError``.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, NoReturn

import structlog

if TYPE_CHECKING:
    from ingress_renewal_manager.integrations.kubernetes.client import KubernetesClient

logger = structlog.get_logger()


class K8sBaseManager:
    """Base class for the renewal engine's resource managers.

    Holds the client, binds ``entity=<_entity_name>`` on the logger and
    resolves a missing namespace to the client default.

    Example:
        >>> class SecretManager(K8sBaseManager):
        ...     _entity_name = "secret"
    """

    _entity_name: str = ""

    def __init__(self, client: KubernetesClient) -> None:
        """Initialize the manager.

        Args:
            client: Kubernetes API client instance.
        """
        self._client = client
        self._log = logger.bind(entity=self._entity_name)

    def _resolve_namespace(self, namespace: str | None) -> str:
        """Return ``namespace``, or the client default when it is empty."""
        return namespace or self._client.default_namespace

    def _call(
        self,
        target: tuple[str, str | None, str | None],
        func: Callable[..., Any],
        *args: Any,
        retry_transient: bool = False,
        **kwargs: Any,
    ) -> Any:
        """Invoke one API method with the request deadline applied.

        Args:
            target: ``(resource_type, resource_name, namespace)`` for error
                messages.
            func: Bound API method, e.g. ``networking_v1.read_namespaced_ingress``.
            *args: Positional arguments for ``func``.
            retry_transient: Retry connection failures with backoff. Only
                for idempotent reads.
            **kwargs: Keyword arguments for ``func``.

        Returns:
            Whatever ``func`` returns.

        Raises:
            KubernetesError: Translated from the API failure.
        """
        kwargs["_request_timeout"] = self._client.timeout

        def invoke() -> Any:
            try:
                return func(*args, **kwargs)
            except Exception as e:
                self._handle_api_error(e, *target)

        if retry_transient:
            return self._client.make_retry_decorator()(invoke)()
        return invoke()

    def _handle_api_error(
        self,
        e: Exception,
        resource_type: str | None = None,
        resource_name: str | None = None,
        namespace: str | None = None,
    ) -> NoReturn:
        """Raise the ``KubernetesError`` subclass matching ``e``."""
        raise self._client.translate_api_exception(
            e,
            resource_type=resource_type,
            resource_name=resource_name,
            namespace=namespace,
        )
