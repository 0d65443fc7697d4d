"""Ingress Renewal Manager - ACME renewal coordination for force-HTTPS ingresses."""

from ingress_renewal_manager.__version__ import __version__

__all__ = ["__version__"]
