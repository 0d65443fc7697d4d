"""Service layer: object-store managers and the renewal engine."""
