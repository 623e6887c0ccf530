"""Typed read façade over a ClusterStore.

Every method is a single read with no retry: a NotFoundError here is
surfaced as-is, and it is the caller's ``eventually`` loop that decides
to poll again.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, cast

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from loguru import logger

from plumbline import naming
from plumbline.constants import ADMIN_USER, CERT_KEY, PRIVATE_KEY_KEY, CAKind, Kind
from plumbline.errors import InvalidCertificateError, KeyMissingError
from plumbline.model import (
    CertificateAuthority,
    ClusterRecord,
    EndpointsRecord,
    GroupRecord,
    InstanceRecord,
    SecretRecord,
    ServiceRecord,
)

if TYPE_CHECKING:
    from cryptography.hazmat.primitives.asymmetric.types import PrivateKeyTypes

    from plumbline.store.protocol import ClusterStore

log = logger.bind(component="reader")


def load_certificate(pem: str, source: str) -> x509.Certificate:
    try:
        return x509.load_pem_x509_certificate(pem.encode())
    except ValueError as e:
        raise InvalidCertificateError(f"cannot load certificate from {source}: {e}") from e


def load_private_key(pem: str, source: str) -> PrivateKeyTypes:
    try:
        return serialization.load_pem_private_key(pem.encode(), password=None)
    except (ValueError, TypeError) as e:
        raise InvalidCertificateError(f"cannot load private key from {source}: {e}") from e


class StateReader:
    """Read-only view of one cluster store, plus the annotator's single write."""

    def __init__(self, store: ClusterStore) -> None:
        self.store = store

    # -------------------------------------------------------------------------
    # Secrets and certificates
    # -------------------------------------------------------------------------

    def get_secret(self, namespace: str, name: str) -> SecretRecord:
        return cast(SecretRecord, self.store.get(Kind.SECRET, namespace, name))

    def get_secret_value(self, namespace: str, name: str, key: str) -> str:
        secret = self.get_secret(namespace, name)
        if key not in secret.data:
            raise KeyMissingError(namespace, name, key)
        return secret.data[key]

    def _non_empty_value(self, namespace: str, name: str, key: str) -> str:
        value = self.get_secret_value(namespace, name, key)
        if not value:
            raise KeyMissingError(namespace, name, key)
        return value

    def get_ca(self, namespace: str, cluster: str, kind: CAKind) -> CertificateAuthority:
        """Load the ``kind`` certificate authority of ``cluster``.

        Raises:
            NotFoundError: The CA secret does not exist.
            KeyMissingError: The certificate or the private key is missing.
            InvalidCertificateError: Either one cannot be parsed.
        """
        name = naming.ca_secret(cluster, kind)
        cert_pem = self._non_empty_value(namespace, name, CERT_KEY)
        key_pem = self._non_empty_value(namespace, name, PRIVATE_KEY_KEY)
        source = f"secret {namespace}/{name}"
        return CertificateAuthority(
            certificate=load_certificate(cert_pem, source),
            private_key=load_private_key(key_pem, source),
        )

    def get_transport_cert(
        self, namespace: str, cluster: str, instance: str
    ) -> tuple[x509.Certificate, PrivateKeyTypes]:
        name = naming.transport_certs_secret(cluster)
        cert_pem = self._non_empty_value(namespace, name, naming.transport_cert_key(instance))
        key_pem = self._non_empty_value(namespace, name, naming.transport_private_key_key(instance))
        source = f"secret {namespace}/{name} ({instance})"
        return load_certificate(cert_pem, source), load_private_key(key_pem, source)

    def get_admin_password(self, namespace: str, cluster: str) -> str:
        return self.get_secret_value(namespace, naming.admin_secret(cluster), ADMIN_USER)

    # -------------------------------------------------------------------------
    # Instances
    # -------------------------------------------------------------------------

    def list_instances(
        self, namespace: str, selector: Mapping[str, str]
    ) -> list[InstanceRecord]:
        records = self.store.list(Kind.INSTANCE, namespace, selector)
        log.trace("Listed {n} instances for {selector}", n=len(records), selector=dict(selector))
        return cast(list[InstanceRecord], records)

    def list_cluster_instances(self, namespace: str, cluster: str) -> list[InstanceRecord]:
        return self.list_instances(namespace, naming.cluster_selector(cluster))

    def list_group_instances(
        self, namespace: str, cluster: str, group: str
    ) -> list[InstanceRecord]:
        return self.list_instances(namespace, naming.group_selector(cluster, group))

    def update_instance(self, record: InstanceRecord) -> InstanceRecord:
        """Write an instance back to the store. ConflictError propagates."""
        return cast(InstanceRecord, self.store.update(record))

    # -------------------------------------------------------------------------
    # Cluster-level records
    # -------------------------------------------------------------------------

    def get_cluster_record(self, namespace: str, name: str) -> ClusterRecord:
        return cast(ClusterRecord, self.store.get(Kind.CLUSTER, namespace, name))

    def get_service(self, namespace: str, name: str) -> ServiceRecord:
        return cast(ServiceRecord, self.store.get(Kind.SERVICE, namespace, name))

    def get_endpoints(self, namespace: str, name: str) -> EndpointsRecord:
        return cast(EndpointsRecord, self.store.get(Kind.ENDPOINTS, namespace, name))

    def get_group_records(self, namespace: str, cluster: str) -> list[GroupRecord]:
        records = self.store.list(Kind.GROUP, namespace, naming.cluster_selector(cluster))
        return cast(list[GroupRecord], records)

    def get_group_record(self, namespace: str, cluster: str, group: str) -> GroupRecord:
        name = naming.group_resource(cluster, group)
        return cast(GroupRecord, self.store.get(Kind.GROUP, namespace, name))
