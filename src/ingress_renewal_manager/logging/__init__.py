"""Logging configuration for ingress_renewal_manager."""

from ingress_renewal_manager.logging.config import configure_logging

__all__ = ["configure_logging"]
