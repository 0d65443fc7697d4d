"""Shared constants for the renewal engine.

Every label, annotation and custom-resource coordinate the engine relies on
lives here so the managers, models and services agree on them.
"""

from __future__ import annotations

# Ingress opt-in label; the value must be "true" (case-insensitive)
ENABLED_LABEL = "nimble.opti.adapter/enabled"

# Force-HTTPS marker removed while an HTTP-01 challenge is served
FORCE_HTTPS_ANNOTATION = "nginx.ingress.kubernetes.io/backend-protocol"
FORCE_HTTPS_VALUE = "HTTPS"

# Any rule path containing this substring is an in-flight challenge
CHALLENGE_PATH_SUBSTRING = ".well-known/acme-challenge"

# Renewal policy custom resource coordinates
POLICY_GROUP = "adapter.uri-tech.github.io"
POLICY_VERSION = "v1"
POLICY_PLURAL = "nimbleoptis"
POLICY_KIND = "NimbleOpti"
DEFAULT_POLICY_NAME = "default"

# Policy status condition values
CONDITION_READY = "Ready"
REASON_RENEWED = "CertificateRenewed"
REASON_RENEWAL_FAILED = "CertificateRenewalFailed"

# Secret data key holding the PEM (or DER) certificate
TLS_CERT_KEY = "tls.crt"

# Timing, in seconds
CHALLENGE_POLL_INTERVAL = 1.0
SECRET_DELETE_SETTLE = 5.0
WATCH_WINDOW_SECONDS = 5
