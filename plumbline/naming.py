"""Naming conventions of records produced by the orchestrator."""

from __future__ import annotations

from plumbline.constants import CAKind, Label


def group_resource(cluster: str, group: str) -> str:
    """Name of the record backing a node group."""
    return f"{cluster}-nodes-{group}"


def instance_names(cluster: str, group: str, count: int) -> list[str]:
    """Names of the instances a group with ``count`` replicas should have."""
    base = group_resource(cluster, group)
    return [f"{base}-{ordinal}" for ordinal in range(count)]


def http_service(cluster: str) -> str:
    return f"{cluster}-http"


def transport_service(cluster: str) -> str:
    return f"{cluster}-transport"


def ca_secret(cluster: str, kind: CAKind) -> str:
    return f"{cluster}-{kind}-ca-internal"


def transport_certs_secret(cluster: str) -> str:
    return f"{cluster}-transport-certificates"


def transport_cert_key(instance: str) -> str:
    return f"{instance}.tls.crt"


def transport_private_key_key(instance: str) -> str:
    return f"{instance}.tls.key"


def admin_secret(cluster: str) -> str:
    return f"{cluster}-admin-user"


def cluster_selector(cluster: str) -> dict[str, str]:
    return {Label.CLUSTER_NAME: cluster}


def group_selector(cluster: str, group: str) -> dict[str, str]:
    return {Label.CLUSTER_NAME: cluster, Label.GROUP_NAME: group}
