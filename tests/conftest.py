from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import UTC, datetime, timedelta

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

from plumbline import naming
from plumbline.constants import ADMIN_USER, CERT_KEY, PRIVATE_KEY_KEY, CAKind, Health, Kind, Label, Phase
from plumbline.model import (
    ClusterRecord,
    ClusterSpec,
    EndpointsRecord,
    EndpointSubset,
    ExposureConfig,
    GroupRecord,
    InstanceRecord,
    InstanceStatus,
    NodeGroup,
    SecretRecord,
    ServiceRecord,
    VolumeClaim,
)
from plumbline.reader import StateReader
from plumbline.retry import RetryPolicy
from plumbline.store import MemoryStore


@dataclass(frozen=True, slots=True)
class KeyPair:
    cert: str
    key: str


def _self_signed(common_name: str) -> KeyPair:
    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    now = datetime.now(UTC)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=30))
        .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
        .sign(key, hashes.SHA256())
    )
    return KeyPair(
        cert=cert.public_bytes(serialization.Encoding.PEM).decode(),
        key=key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption(),
        ).decode(),
    )


@pytest.fixture(scope="session")
def keypair() -> KeyPair:
    return _self_signed("plumbline-test")


class Orchestrator:
    """Writes into a MemoryStore what a converged orchestrator would produce."""

    def __init__(self, store: MemoryStore, keypair: KeyPair) -> None:
        self.store = store
        self.keypair = keypair

    def apply(
        self,
        spec: ClusterSpec,
        *,
        ready: bool = True,
        phase: Phase = Phase.RUNNING,
        health: Health = Health.GREEN,
        recreate: bool = False,
    ) -> None:
        """Converge the store to ``spec``.

        Existing instances keep their annotations unless ``recreate`` is set,
        which models a completed rolling replacement.
        """
        ns = spec.namespace
        existing = {
            r.name: r
            for r in self.store.list(Kind.INSTANCE, ns, naming.cluster_selector(spec.name))
        }
        wanted: set[str] = set()
        transport_certs: dict[str, str] = {}

        for group in spec.node_groups:
            self.store.put(
                GroupRecord(
                    name=naming.group_resource(spec.name, group.name),
                    namespace=ns,
                    replicas=group.count,
                    labels=naming.cluster_selector(spec.name),
                )
            )
            for name in naming.instance_names(spec.name, group.name, group.count):
                wanted.add(name)
                previous = existing.get(name)
                annotations = {} if previous is None or recreate else dict(previous.annotations)
                self.store.put(
                    InstanceRecord(
                        name=name,
                        namespace=ns,
                        labels={
                            **naming.group_selector(spec.name, group.name),
                            Label.VERSION: spec.version,
                        },
                        annotations=annotations,
                        status=InstanceStatus(phase=phase, ready=ready),
                        volume_claims=(VolumeClaim("data", group.storage_class),),
                    )
                )
                transport_certs[naming.transport_cert_key(name)] = self.keypair.cert
                transport_certs[naming.transport_private_key_key(name)] = self.keypair.key

        for name in set(existing) - wanted:
            self.store.delete(Kind.INSTANCE, ns, name)

        for kind in CAKind:
            self.store.put(
                SecretRecord(
                    name=naming.ca_secret(spec.name, kind),
                    namespace=ns,
                    data={CERT_KEY: self.keypair.cert, PRIVATE_KEY_KEY: self.keypair.key},
                )
            )
        self.store.put(
            SecretRecord(naming.transport_certs_secret(spec.name), ns, data=transport_certs)
        )
        self.store.put(
            SecretRecord(naming.admin_secret(spec.name), ns, data={ADMIN_USER: "s3cr3t"})
        )
        self.store.put(ClusterRecord(spec.name, ns, health=health))
        self.store.put(ServiceRecord(naming.http_service(spec.name), ns))
        self.store.put(ServiceRecord(naming.transport_service(spec.name), ns))
        addresses = tuple(f"10.0.0.{i}" for i in range(spec.node_count))
        self.store.put(
            EndpointsRecord(
                naming.http_service(spec.name),
                ns,
                subsets=(EndpointSubset(addresses),) if addresses else (),
            )
        )

    def instance(self, spec: ClusterSpec, name: str) -> InstanceRecord:
        record = self.store.get(Kind.INSTANCE, spec.namespace, name)
        assert isinstance(record, InstanceRecord)
        return record

    def patch_instance(self, spec: ClusterSpec, name: str, **changes: object) -> None:
        self.store.put(replace(self.instance(spec, name), **changes))


@pytest.fixture
def spec() -> ClusterSpec:
    return ClusterSpec(
        name="search",
        namespace="e2e",
        version="8.11.0",
        node_groups=(
            NodeGroup("masters", 3, config={"roles": ["master"]}),
            NodeGroup("data", 2, config={"roles": ["data"]}, storage_class="ssd"),
        ),
        exposure=ExposureConfig(service_type="LoadBalancer"),
    )


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def reader(store: MemoryStore) -> StateReader:
    return StateReader(store)


@pytest.fixture
def orchestrator(store: MemoryStore, keypair: KeyPair) -> Orchestrator:
    return Orchestrator(store, keypair)


@pytest.fixture
def converged(spec: ClusterSpec, orchestrator: Orchestrator) -> Orchestrator:
    orchestrator.apply(spec)
    return orchestrator


@pytest.fixture
def no_wait() -> RetryPolicy:
    """Policy that polls without sleeping, for predicates that flip on their own."""
    return RetryPolicy(timeout=5, interval=0)
