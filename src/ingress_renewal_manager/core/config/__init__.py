"""Configuration management with Pydantic validation."""

from ingress_renewal_manager.core.config.models import (
    ChallengeStrategy,
    RenewerSettings,
    RunMode,
)
from ingress_renewal_manager.core.exceptions import ConfigurationError

__all__ = [
    "ChallengeStrategy",
    "ConfigurationError",
    "RenewerSettings",
    "RunMode",
]
