"""Version information for ingress_renewal_manager."""

__version__ = "0.3.0"
