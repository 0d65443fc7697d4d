"""Shared fixtures for Kubernetes service tests."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from tenacity import retry, retry_if_exception_type, stop_after_attempt

from ingress_renewal_manager.integrations.kubernetes.client import KubernetesClient
from ingress_renewal_manager.integrations.kubernetes.exceptions import (
    KubernetesConflictError,
    KubernetesConnectionError,
)

REQUEST_TIMEOUT = 30


@pytest.fixture
def mock_k8s_client() -> MagicMock:
    """Create a mock Kubernetes client.

    Error translation is the real implementation. The transient and conflict
    retry decorators retry three times without waiting.
    """
    mock_client = MagicMock()
    mock_client.default_namespace = "default"
    mock_client.timeout = REQUEST_TIMEOUT
    mock_client.translate_api_exception.side_effect = KubernetesClient.translate_api_exception
    mock_client.make_retry_decorator.side_effect = lambda: retry(
        retry=retry_if_exception_type(KubernetesConnectionError),
        stop=stop_after_attempt(3),
        reraise=True,
    )
    mock_client.make_conflict_retry_decorator.side_effect = lambda: retry(
        retry=retry_if_exception_type(KubernetesConflictError),
        stop=stop_after_attempt(3),
        reraise=True,
    )
    return mock_client
