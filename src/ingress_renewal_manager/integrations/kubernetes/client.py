"""Kubernetes API client wrapper.

Wraps the official kubernetes Python client with lazy API group
initialization, retry logic for transient connection failures, and
consistent error translation. This is the object store the renewal
engine reads from and writes to.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
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

if TYPE_CHECKING:
    from kubernetes.client import (
        CoreV1Api,
        CustomObjectsApi,
        NetworkingV1Api,
        VersionApi,
    )

    from ingress_renewal_manager.integrations.kubernetes.config import (
        KubernetesPluginConfig,
    )

logger = structlog.get_logger()


class KubernetesClient:
    """Kubernetes API client used as the renewal object store.

    Wraps the official kubernetes Python client with:
    - kubeconfig loading with in-cluster fallback
    - Lazy API group initialization
    - Automatic retry with tenacity for transient errors
    - Consistent error translation to custom exceptions
    - Context manager support

    Example:
        ```python
        from ingress_renewal_manager.integrations.kubernetes import KubernetesClient
        from ingress_renewal_manager.integrations.kubernetes.config import (
            KubernetesPluginConfig,
        )

        config = KubernetesPluginConfig.from_env()
        with KubernetesClient(config) as client:
            ingresses = client.networking_v1.list_ingress_for_all_namespaces()
            print(f"Cluster has {len(ingresses.items)} ingresses")
        ```
    """

    def __init__(self, plugin_config: KubernetesPluginConfig) -> None:
        """Initialize Kubernetes client from plugin config.

        Args:
            plugin_config: Complete connection configuration.
        """
        self._config = plugin_config
        self._retries = plugin_config.defaults.retry_attempts
        self._current_context: str | None = None

        # Lazy-loaded API group instances
        self._core_v1: CoreV1Api | None = None
        self._networking_v1: NetworkingV1Api | None = None
        self._custom_objects: CustomObjectsApi | None = None
        self._version_api: VersionApi | None = None

        self._load_config()

        logger.info(
            "Kubernetes client initialized",
            context=self._current_context,
            default_namespace=plugin_config.get_active_namespace(),
        )

    def _load_config(self) -> None:
        """Load Kubernetes configuration from kubeconfig or in-cluster."""
        from kubernetes import config
        from kubernetes.config import ConfigException

        active_context = self._config.get_active_context()
        kubeconfig_path = self._config.get_active_kubeconfig()

        try:
            config.load_kube_config(
                config_file=kubeconfig_path,
                context=active_context,
            )
            self._current_context = active_context
            logger.debug(
                "loaded_kubeconfig",
                context=active_context,
                kubeconfig=kubeconfig_path,
            )
        except ConfigException:
            try:
                config.load_incluster_config()
                self._current_context = "in-cluster"
                logger.debug("loaded_incluster_config")
            except ConfigException as e:
                raise KubernetesConnectionError(
                    message="Cannot load Kubernetes configuration. "
                    "Ensure kubeconfig exists or running inside a cluster.",
                    original_error=e,
                ) from e

        self._invalidate_api_cache()

    def _invalidate_api_cache(self) -> None:
        """Clear cached API group instances."""
        self._core_v1 = None
        self._networking_v1 = None
        self._custom_objects = None
        self._version_api = None

    # =========================================================================
    # Lazy API Group Accessors
    # =========================================================================

    @property
    def core_v1(self) -> CoreV1Api:
        """Get CoreV1Api instance (secrets, namespaces)."""
        if self._core_v1 is None:
            from kubernetes.client import CoreV1Api

            self._core_v1 = CoreV1Api()
        return self._core_v1

    @property
    def networking_v1(self) -> NetworkingV1Api:
        """Get NetworkingV1Api instance (ingresses)."""
        if self._networking_v1 is None:
            from kubernetes.client import NetworkingV1Api

            self._networking_v1 = NetworkingV1Api()
        return self._networking_v1

    @property
    def custom_objects(self) -> CustomObjectsApi:
        """Get CustomObjectsApi instance (renewal policy records)."""
        if self._custom_objects is None:
            from kubernetes.client import CustomObjectsApi

            self._custom_objects = CustomObjectsApi()
        return self._custom_objects

    @property
    def version_api(self) -> VersionApi:
        """Get VersionApi instance for cluster version info."""
        if self._version_api is None:
            from kubernetes.client import VersionApi

            self._version_api = VersionApi()
        return self._version_api

    def get_current_context(self) -> str:
        """Get the current active context name.

        Returns:
            The current context name, or 'in-cluster' if running inside a pod.
        """
        return self._current_context or "unknown"

    # =========================================================================
    # Error Translation
    # =========================================================================

    @staticmethod
    def translate_api_exception(
        e: Exception,
        resource_type: str | None = None,
        resource_name: str | None = None,
        namespace: str | None = None,
    ) -> KubernetesError:
        """Translate a kubernetes ApiException to a custom exception.

        Transport failures (connection refused, read timeouts) are translated
        as well so the retry decorator and the audit loop can tell them apart
        from API rejections.

        Args:
            e: The original exception.
            resource_type: Type of resource being operated on.
            resource_name: Name of the resource.
            namespace: Namespace of the resource.

        Returns:
            An appropriate KubernetesError subclass.
        """
        from kubernetes.client import ApiException
        from urllib3.exceptions import MaxRetryError, NewConnectionError, ReadTimeoutError

        if isinstance(e, KubernetesError):
            return e

        if isinstance(e, ReadTimeoutError):
            return KubernetesTimeoutError(message=f"Request for {resource_type} timed out")

        if isinstance(e, (MaxRetryError, NewConnectionError, ConnectionError)):
            return KubernetesConnectionError(
                message=f"Cannot reach Kubernetes API server: {e}",
                original_error=e,
            )

        if not isinstance(e, ApiException):
            return KubernetesError(
                message=str(e),
                resource_type=resource_type,
                resource_name=resource_name,
                namespace=namespace,
            )

        status = e.status

        if status in (401, 403):
            return KubernetesAuthError(
                message=e.reason or "Authentication/authorization failed",
                status_code=status,
                reason=e.reason,
            )

        if status == 404:
            return KubernetesNotFoundError(
                resource_type=resource_type,
                resource_name=resource_name,
                namespace=namespace,
            )

        if status == 409:
            return KubernetesConflictError(
                resource_type=resource_type,
                resource_name=resource_name,
                namespace=namespace,
            )

        if status == 410:
            return KubernetesGoneError(message=e.reason or "Resource version too old")

        if status in (400, 422):
            return KubernetesValidationError(
                message=e.reason or "Validation failed",
                status_code=status,
            )

        if status in (502, 503, 504):
            return KubernetesConnectionError(
                message=e.reason or f"Kubernetes API unavailable: {status}",
                original_error=e,
            )

        return KubernetesError(
            message=e.reason or f"Kubernetes API error: {status}",
            status_code=status,
            resource_type=resource_type,
            resource_name=resource_name,
            namespace=namespace,
        )

    # =========================================================================
    # Retry Decorators
    # =========================================================================

    def make_retry_decorator(self) -> Any:
        """Create a retry decorator for transient connection errors.

        Returns:
            A tenacity retry decorator configured with exponential backoff.
        """
        return retry(
            retry=retry_if_exception_type(KubernetesConnectionError),
            stop=stop_after_attempt(self._retries),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            reraise=True,
        )

    def make_conflict_retry_decorator(self) -> Any:
        """Create a retry decorator for optimistic-concurrency write conflicts.

        The decorated function must re-read the object on every attempt.

        Returns:
            A tenacity retry decorator with short exponential backoff.
        """
        return retry(
            retry=retry_if_exception_type(KubernetesConflictError),
            stop=stop_after_attempt(self._retries),
            wait=wait_exponential(multiplier=0.1, min=0.1, max=2),
            reraise=True,
        )

    # =========================================================================
    # Connection Check
    # =========================================================================

    def check_connection(self) -> bool:
        """Check if connection to the Kubernetes API server is working.

        Returns:
            True if connection is successful, False otherwise.
        """
        try:
            self.version_api.get_code()
            return True
        except Exception:
            return False

    def get_cluster_version(self) -> str:
        """Get the Kubernetes cluster version string.

        Returns:
            Kubernetes version (e.g., "v1.28").

        Raises:
            KubernetesConnectionError: If the cluster is unreachable.
        """
        try:
            version_info = self.version_api.get_code()
            return f"v{version_info.major}.{version_info.minor}"
        except Exception as e:
            raise KubernetesConnectionError(
                message="Failed to get cluster version",
                original_error=e,
            ) from e

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def default_namespace(self) -> str:
        """Get the default namespace from config."""
        return self._config.get_active_namespace()

    @property
    def timeout(self) -> int:
        """Get the configured request timeout."""
        return self._config.get_active_timeout()

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def close(self) -> None:
        """Close the client and release resources."""
        self._invalidate_api_cache()
        logger.debug("Kubernetes client closed")

    def __enter__(self) -> KubernetesClient:
        """Context manager entry."""
        return self

    def __exit__(self, *args: Any) -> None:
        """Context manager exit."""
        self.close()
