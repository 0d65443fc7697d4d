"""Command-line interface for the renewal controller."""
