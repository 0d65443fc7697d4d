"""Deterministic TLS secret name versioning."""

from __future__ import annotations

import re

_VERSION_SUFFIX = re.compile(r"^(?P<base>.+)-v(?P<version>\d+)$")


def next_secret_name(name: str) -> str:
    """Return the next versioned name for a TLS secret.

    ``cert`` becomes ``cert-v1`` and ``cert-v9`` becomes ``cert-v10``. A
    suffix that is not ``-v`` followed by digits counts as no suffix, so
    ``cert-vX`` becomes ``cert-vX-v1``.

    Args:
        name: Current secret name.

    Returns:
        The rotated secret name.
    """
    match = _VERSION_SUFFIX.match(name)
    if match is None:
        return f"{name}-v1"
    return f"{match.group('base')}-v{int(match.group('version')) + 1}"
