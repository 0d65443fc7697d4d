"""Domain exceptions for the renewal engine.

Object-store failures are reported with the ``KubernetesError`` hierarchy;
everything the engine itself decides is wrong derives from ``RenewalError``.
"""

from __future__ import annotations


class RenewalError(Exception):
    """Base exception for renewal engine failures.

    Attributes:
        message: Human-readable error message.
        namespace: Namespace of the ingress involved, if any.
        name: Name of the ingress involved, if any.
    """

    def __init__(
        self,
        message: str,
        namespace: str | None = None,
        name: str | None = None,
    ) -> None:
        self.message = message
        self.namespace = namespace
        self.name = name
        super().__init__(message)

    def __str__(self) -> str:
        if self.namespace and self.name:
            return f"{self.message} ({self.namespace}/{self.name})"
        return self.message


class LockContentionError(RenewalError):
    """Raised when a non-blocking lock acquisition finds the key held."""

    def __init__(self, key: str) -> None:
        namespace, _, name = key.partition("/")
        super().__init__(
            f"Ingress lock {key} is held by another operation",
            namespace=namespace or None,
            name=name or None,
        )
        self.key = key


class CertificateDataError(RenewalError):
    """Raised when a TLS secret has no usable certificate."""

    def __init__(
        self,
        message: str,
        namespace: str | None = None,
        secret_name: str | None = None,
    ) -> None:
        super().__init__(message, namespace=namespace, name=secret_name)
        self.secret_name = secret_name


class PolicyDataError(RenewalError):
    """Raised when a renewal policy record violates its constraints."""


class ConfigurationError(RenewalError):
    """Raised when process configuration cannot be loaded.

    Attributes:
        variable: Environment variable that held the bad value.
    """

    def __init__(self, message: str, variable: str | None = None) -> None:
        super().__init__(message)
        self.variable = variable

    def __str__(self) -> str:
        if self.variable:
            return f"{self.variable}: {self.message}"
        return self.message
