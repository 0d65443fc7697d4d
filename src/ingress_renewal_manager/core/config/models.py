"""Process settings for the renewal engine.

Settings are read once at startup from ``IRM_*`` environment variables and
validated with pydantic. Any invalid value aborts startup with a
``ConfigurationError`` naming the variable.
"""

from __future__ import annotations

import os
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from ingress_renewal_manager.core.exceptions import ConfigurationError


class RunMode(StrEnum):
    """Logging/runtime profile."""

    DEV = "dev"
    PROD = "prod"


class ChallengeStrategy(StrEnum):
    """How the challenge observer detects the challenge path vanishing."""

    POLL = "poll"
    WATCH = "watch"


# Field name -> environment variable
ENV_VARS: dict[str, str] = {
    "run_mode": "IRM_RUN_MODE",
    "certificate_renewal_threshold": "IRM_CERTIFICATE_RENEWAL_THRESHOLD",
    "annotation_removal_delay": "IRM_ANNOTATION_REMOVAL_DELAY",
    "admin_user_permission": "IRM_ADMIN_USER_PERMISSION",
    "renewal_check_interval": "IRM_RENEWAL_CHECK_INTERVAL",
    "challenge_strategy": "IRM_CHALLENGE_STRATEGY",
    "enable_event_dispatcher": "IRM_ENABLE_EVENT_DISPATCHER",
    "watch_namespace": "IRM_WATCH_NAMESPACE",
    "metrics_port": "IRM_METRICS_PORT",
    "dispatch_workers": "IRM_DISPATCH_WORKERS",
}


class RenewerSettings(BaseModel):
    """Renewal engine settings.

    Attributes:
        run_mode: ``dev`` renders console logs, ``prod`` renders JSON.
        certificate_renewal_threshold: Days of remaining validity at or below
            which a certificate is renewed.
        annotation_removal_delay: Seconds to wait for a challenge to clear.
        admin_user_permission: Allow the audit to delete expiring secrets.
        renewal_check_interval: Minutes between audit passes.
        challenge_strategy: ``poll`` or ``watch`` challenge observation.
        enable_event_dispatcher: Run the ingress watch alongside the audit.
        watch_namespace: Restrict audit and dispatch to one namespace.
        metrics_port: Prometheus exposition port, 0 disables it.
        dispatch_workers: Worker threads for dispatched renewals.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    run_mode: RunMode = RunMode.DEV
    certificate_renewal_threshold: int = 60
    annotation_removal_delay: int = 10
    admin_user_permission: bool = False
    renewal_check_interval: int = 1440
    challenge_strategy: ChallengeStrategy = ChallengeStrategy.POLL
    enable_event_dispatcher: bool = True
    watch_namespace: str | None = None
    metrics_port: int = 8080
    dispatch_workers: int = 4

    @field_validator(
        "certificate_renewal_threshold",
        "annotation_removal_delay",
        "renewal_check_interval",
        "dispatch_workers",
    )
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Validate durations and pool sizes are strictly positive."""
        if v <= 0:
            raise ValueError("must be positive")
        return v

    @field_validator("metrics_port")
    @classmethod
    def validate_metrics_port(cls, v: int) -> int:
        """Validate the port is 0 (disabled) or a usable TCP port."""
        if v < 0 or v > 65535:
            raise ValueError("must be 0 or between 1 and 65535")
        return v

    @field_validator("watch_namespace")
    @classmethod
    def validate_watch_namespace(cls, v: str | None) -> str | None:
        """Treat an empty namespace as cluster-wide."""
        if v is None:
            return None
        return v.strip() or None

    @property
    def check_interval_seconds(self) -> float:
        """Audit interval in seconds."""
        return self.renewal_check_interval * 60.0

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> RenewerSettings:
        """Load settings from ``IRM_*`` environment variables.

        Args:
            environ: Mapping to read instead of ``os.environ``.

        Returns:
            Validated settings.

        Raises:
            ConfigurationError: If any variable holds an invalid value.
        """
        env = os.environ if environ is None else environ
        values = {field: env[var] for field, var in ENV_VARS.items() if env.get(var, "") != ""}
        try:
            return cls.model_validate(values)
        except ValidationError as e:
            error = e.errors()[0]
            field = str(error["loc"][0]) if error["loc"] else ""
            raise ConfigurationError(
                f"invalid value {values.get(field)!r}: {error['msg']}",
                variable=ENV_VARS.get(field),
            ) from e
