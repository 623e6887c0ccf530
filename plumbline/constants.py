"""Centralized constants and enums for plumbline.

Label keys, annotation keys and record kinds live here so the reader,
the predicates and the annotator agree on them.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Final

# =============================================================================
# Annotations
# =============================================================================

FINGERPRINT_ANNOTATION: Final = "plumbline.io/spec-fingerprint"
"""Annotation stamped on instances, holding the fingerprint of their node group."""


# =============================================================================
# Labels
# =============================================================================


class Label(StrEnum):
    """Label keys set by the orchestrator on managed records."""

    CLUSTER_NAME = "cluster.orchestrator.io/name"
    GROUP_NAME = "cluster.orchestrator.io/node-group"
    VERSION = "cluster.orchestrator.io/version"


# =============================================================================
# Record kinds
# =============================================================================


class Kind(StrEnum):
    """Typed record kinds exposed by a cluster store."""

    INSTANCE = "instance"
    GROUP = "group"
    CLUSTER = "cluster"
    SERVICE = "service"
    ENDPOINTS = "endpoints"
    SECRET = "secret"


class CAKind(StrEnum):
    """Certificate authorities managed per cluster."""

    TRANSPORT = "transport"
    HTTP = "http"


# =============================================================================
# Observed state enums
# =============================================================================


class Health(StrEnum):
    """Cluster health as recorded by the orchestrator."""

    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"
    UNKNOWN = "unknown"


class Phase(StrEnum):
    """Instance lifecycle phase."""

    PENDING = "Pending"
    RUNNING = "Running"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    UNKNOWN = "Unknown"


# =============================================================================
# Secret keys
# =============================================================================

CERT_KEY: Final = "tls.crt"
PRIVATE_KEY_KEY: Final = "tls.key"
ADMIN_USER: Final = "admin"
