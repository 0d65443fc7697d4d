"""Kubernetes integration configuration models."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator


class ClusterConfig(BaseModel):
    """Configuration for a single Kubernetes cluster."""

    model_config = ConfigDict(extra="forbid")

    context: str = ""
    kubeconfig: str | None = None
    namespace: str = "default"
    timeout: int = 30

    @field_validator("timeout")
    @classmethod
    def validate_timeout(cls, v: int) -> int:
        """Validate timeout is positive."""
        if v <= 0:
            raise ValueError("timeout must be positive")
        return v

    @field_validator("kubeconfig")
    @classmethod
    def validate_kubeconfig(cls, v: str | None) -> str | None:
        """Expand ~ in kubeconfig path; None defers to KUBECONFIG or ~/.kube/config."""
        return str(Path(v).expanduser()) if v else None


class KubernetesDefaultsConfig(BaseModel):
    """Default settings for object-store requests."""

    model_config = ConfigDict(extra="forbid")

    timeout: int = 30
    retry_attempts: int = 3

    @field_validator("timeout")
    @classmethod
    def validate_timeout(cls, v: int) -> int:
        """Validate timeout is positive."""
        if v <= 0:
            raise ValueError("timeout must be positive")
        return v

    @field_validator("retry_attempts")
    @classmethod
    def validate_retry_attempts(cls, v: int) -> int:
        """Validate retry_attempts is at least one."""
        if v < 1:
            raise ValueError("retry_attempts must be at least 1")
        return v


class KubernetesPluginConfig(BaseModel):
    """Complete Kubernetes connection configuration."""

    model_config = ConfigDict(extra="forbid")

    clusters: dict[str, ClusterConfig] = {}
    active_cluster: str | None = None
    defaults: KubernetesDefaultsConfig = KubernetesDefaultsConfig()

    @classmethod
    def from_env(cls, base_config: dict[str, Any] | None = None) -> KubernetesPluginConfig:
        """Create configuration with environment variable overrides.

        Environment variables take precedence over base_config values.

        Supported environment variables:
            IRM_K8S_CONTEXT: Override active Kubernetes context
            IRM_K8S_NAMESPACE: Override default namespace
            IRM_K8S_KUBECONFIG: Override kubeconfig path
            IRM_K8S_TIMEOUT: Default request timeout in seconds
            IRM_K8S_RETRY_ATTEMPTS: Attempts for transient errors and write conflicts
        """
        config_dict = base_config.copy() if base_config else {}

        if "defaults" not in config_dict:
            config_dict["defaults"] = {}
        if "clusters" not in config_dict:
            config_dict["clusters"] = {}

        if kubeconfig := os.environ.get("IRM_K8S_KUBECONFIG"):
            config_dict.setdefault("_kubeconfig_override", kubeconfig)

        if context := os.environ.get("IRM_K8S_CONTEXT"):
            config_dict["active_cluster"] = context

        if namespace := os.environ.get("IRM_K8S_NAMESPACE"):
            config_dict.setdefault("_namespace_override", namespace)

        # Left as strings so pydantic reports malformed numbers instead of int() raising
        if timeout := os.environ.get("IRM_K8S_TIMEOUT"):
            config_dict["defaults"]["timeout"] = timeout

        if retry_attempts := os.environ.get("IRM_K8S_RETRY_ATTEMPTS"):
            config_dict["defaults"]["retry_attempts"] = retry_attempts

        kubeconfig_override = config_dict.pop("_kubeconfig_override", None)
        namespace_override = config_dict.pop("_namespace_override", None)

        instance = cls.model_validate(config_dict)

        if (kubeconfig_override or namespace_override) and not instance.clusters:
            name = instance.active_cluster or "default"
            instance.clusters[name] = ClusterConfig(context=instance.active_cluster or "")

        if kubeconfig_override:
            for cluster_cfg in instance.clusters.values():
                cluster_cfg.kubeconfig = str(Path(kubeconfig_override).expanduser())

        if namespace_override:
            for cluster_cfg in instance.clusters.values():
                cluster_cfg.namespace = namespace_override

        return instance

    def get_active_context(self) -> str | None:
        """Get the active cluster context name.

        Returns the active_cluster if set, or the context from the first
        configured cluster, or None if no clusters are configured.
        """
        if self.active_cluster:
            if cluster := self.clusters.get(self.active_cluster):
                return cluster.context or None
            return self.active_cluster
        if self.clusters:
            first = next(iter(self.clusters.values()))
            return first.context or None
        return None

    def get_active_kubeconfig(self) -> str | None:
        """Get the kubeconfig path for the active cluster, if one is configured."""
        if self.active_cluster and self.active_cluster in self.clusters:
            return self.clusters[self.active_cluster].kubeconfig
        if self.clusters:
            return next(iter(self.clusters.values())).kubeconfig
        return None

    def get_active_namespace(self) -> str:
        """Get the default namespace for the active cluster.

        Returns the namespace from the active cluster config,
        or 'default' if no cluster is configured.
        """
        if self.active_cluster and self.active_cluster in self.clusters:
            return self.clusters[self.active_cluster].namespace
        if self.clusters:
            first = next(iter(self.clusters.values()))
            return first.namespace
        return "default"

    def get_active_timeout(self) -> int:
        """Get the request timeout for the active cluster.

        Returns the timeout from the active cluster config,
        or the default timeout.
        """
        if self.active_cluster and self.active_cluster in self.clusters:
            return self.clusters[self.active_cluster].timeout
        return self.defaults.timeout
