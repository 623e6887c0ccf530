"""Desired specification and observed snapshot records.

The desired side (ClusterSpec, NodeGroup, ExposureConfig) is owned by the
test author and never mutated. The observed side is a point-in-time read
of the store, re-fetched on every poll attempt.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

from plumbline.constants import Health, Phase

if TYPE_CHECKING:
    from cryptography.hazmat.primitives.asymmetric.types import PrivateKeyTypes
    from cryptography.x509 import Certificate


# =============================================================================
# Desired specification
# =============================================================================


@dataclass(frozen=True, slots=True)
class NodeGroup:
    """A named subset of instances sharing one configuration shape.

    Args:
        name: Group name, unique within the cluster.
        count: Desired number of instances.
        config: Free-form settings applied to every instance of the group.
        storage_class: Storage class expected on the data volume, if any.
    """

    name: str
    count: int
    config: Mapping[str, Any] = field(default_factory=dict)
    storage_class: str | None = None

    def __post_init__(self) -> None:
        if self.count < 0:
            raise ValueError(f"count must be >= 0, got {self.count}")


@dataclass(frozen=True, slots=True)
class ExposureConfig:
    """Network exposure of the cluster's HTTP service."""

    service_type: str = "ClusterIP"
    tls: bool = True
    subject_alt_names: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ClusterSpec:
    """Desired cluster specification.

    Example:
        >>> spec = ClusterSpec(
        ...     name="search",
        ...     namespace="default",
        ...     version="8.11.0",
        ...     node_groups=(NodeGroup("masters", 3), NodeGroup("data", 2)),
        ... )
        >>> spec.node_count
        5
    """

    name: str
    namespace: str
    version: str
    node_groups: tuple[NodeGroup, ...] = ()
    exposure: ExposureConfig = field(default_factory=ExposureConfig)

    @property
    def node_count(self) -> int:
        return sum(group.count for group in self.node_groups)


# =============================================================================
# Observed snapshot
# =============================================================================


@dataclass(frozen=True, slots=True)
class Condition:
    type: str
    status: bool
    reason: str = ""


@dataclass(frozen=True, slots=True)
class InstanceStatus:
    phase: Phase = Phase.PENDING
    ready: bool = False
    conditions: tuple[Condition, ...] = ()
    message: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "phase": str(self.phase),
            "ready": self.ready,
            "conditions": [
                {"type": c.type, "status": c.status, "reason": c.reason} for c in self.conditions
            ],
            "message": self.message,
        }


@dataclass(frozen=True, slots=True)
class VolumeClaim:
    name: str
    storage_class: str | None = None


@dataclass(frozen=True, slots=True)
class InstanceRecord:
    """One running unit belonging to a node group."""

    name: str
    namespace: str
    labels: Mapping[str, str] = field(default_factory=dict)
    annotations: Mapping[str, str] = field(default_factory=dict)
    status: InstanceStatus = field(default_factory=InstanceStatus)
    volume_claims: tuple[VolumeClaim, ...] = ()
    resource_version: str = ""

    def with_annotation(self, key: str, value: str) -> InstanceRecord:
        return replace(self, annotations={**self.annotations, key: value})


@dataclass(frozen=True, slots=True)
class GroupRecord:
    """Replica count currently recorded for a node group."""

    name: str
    namespace: str
    replicas: int
    labels: Mapping[str, str] = field(default_factory=dict)
    resource_version: str = ""


@dataclass(frozen=True, slots=True)
class ClusterRecord:
    name: str
    namespace: str
    health: Health = Health.UNKNOWN
    resource_version: str = ""


@dataclass(frozen=True, slots=True)
class ServiceRecord:
    name: str
    namespace: str
    resource_version: str = ""


@dataclass(frozen=True, slots=True)
class EndpointSubset:
    addresses: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class EndpointsRecord:
    name: str
    namespace: str
    subsets: tuple[EndpointSubset, ...] = ()
    resource_version: str = ""


@dataclass(frozen=True, slots=True)
class SecretRecord:
    name: str
    namespace: str
    data: Mapping[str, str] = field(default_factory=dict)
    resource_version: str = ""


@dataclass(frozen=True, slots=True)
class CertificateAuthority:
    """A loaded CA: certificate plus its private key."""

    certificate: Certificate
    private_key: PrivateKeyTypes


type Record = (
    InstanceRecord | GroupRecord | ClusterRecord | ServiceRecord | EndpointsRecord | SecretRecord
)
