"""Predicates comparing observed cluster state with the desired specification.

Each predicate has the signature ``(spec, reader) -> None``: it performs
one round of reads, returns when the observed state matches, and raises
otherwise. Predicates never retry and never swallow errors; wrapping them
in ``eventually`` is what turns "not converged yet" into polling.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Iterable

from loguru import logger

from plumbline import naming
from plumbline.constants import FINGERPRINT_ANNOTATION, CAKind, Health, Label, Phase
from plumbline.errors import MismatchError, NotReadyError, StaleInstanceError
from plumbline.fingerprint import fingerprint
from plumbline.model import ClusterSpec, InstanceRecord, NodeGroup
from plumbline.reader import StateReader

log = logger.bind(component="checks")

type Check = Callable[[ClusterSpec, StateReader], None]
type InstanceCondition = Callable[[InstanceRecord], None]


# =============================================================================
# Certificates
# =============================================================================


def check_certificate_authorities(spec: ClusterSpec, reader: StateReader) -> None:
    """Both the transport and the HTTP certificate authorities load (cert + key)."""
    for kind in (CAKind.TRANSPORT, CAKind.HTTP):
        reader.get_ca(spec.namespace, spec.name, kind)


def check_instance_certificates(spec: ClusterSpec, reader: StateReader) -> None:
    """Every instance of the cluster has a loadable transport certificate."""
    for instance in reader.list_cluster_instances(spec.namespace, spec.name):
        reader.get_transport_cert(spec.namespace, spec.name, instance.name)


# =============================================================================
# Instances
# =============================================================================


def _check_instance_count(spec: ClusterSpec, instances: list[InstanceRecord]) -> None:
    if len(instances) != spec.node_count:
        raise MismatchError("instance count", spec.node_count, len(instances))


def check_version(spec: ClusterSpec, reader: StateReader) -> None:
    """All desired instances exist and run the desired version."""
    instances = reader.list_cluster_instances(spec.namespace, spec.name)
    _check_instance_count(spec, instances)
    for instance in instances:
        version = instance.labels.get(Label.VERSION)
        if version != spec.version:
            raise MismatchError(f"version of instance {instance.name}", spec.version, version)


def check_instances(name: str, condition: InstanceCondition) -> Check:
    """Build a predicate requiring every desired instance to satisfy ``condition``.

    ``condition`` raises for a non-conforming instance. The instance count is
    checked first, so an empty cluster never passes vacuously.
    """

    def check(spec: ClusterSpec, reader: StateReader) -> None:
        instances = reader.list_cluster_instances(spec.namespace, spec.name)
        _check_instance_count(spec, instances)
        for instance in instances:
            condition(instance)

    check.__name__ = name
    check.__qualname__ = name
    return check


def check_instances_in_phase(phase: Phase) -> Check:
    def in_phase(instance: InstanceRecord) -> None:
        if instance.status.phase != phase:
            raise MismatchError(f"phase of instance {instance.name}", phase, instance.status.phase)

    return check_instances(f"check_instances_{phase.lower()}", in_phase)


def check_volume_storage_class(spec: ClusterSpec, reader: StateReader) -> None:
    """Data volumes use the storage class declared by their node group.

    Groups without a storage class are not checked.
    """
    for group in spec.node_groups:
        if group.storage_class is None:
            continue
        for instance in reader.list_group_instances(spec.namespace, spec.name, group.name):
            classes = sorted(claim.storage_class or "" for claim in instance.volume_claims)
            if not classes or any(c != group.storage_class for c in classes):
                raise MismatchError(
                    f"storage classes of instance {instance.name}", [group.storage_class], classes
                )


# =============================================================================
# Cluster health, services, credentials
# =============================================================================


def check_cluster_health(spec: ClusterSpec, reader: StateReader) -> None:
    """Cluster health is exactly green; yellow is a failure like any other value."""
    record = reader.get_cluster_record(spec.namespace, spec.name)
    if record.health != Health.GREEN:
        raise MismatchError("cluster health", Health.GREEN, record.health)


def expected_services(spec: ClusterSpec) -> list[str]:
    return [naming.http_service(spec.name), naming.transport_service(spec.name)]


def expected_endpoints(spec: ClusterSpec) -> dict[str, int]:
    """Services mapped to the number of addresses they should back."""
    return {naming.http_service(spec.name): spec.node_count}


def check_services(spec: ClusterSpec, reader: StateReader) -> None:
    for service in expected_services(spec):
        reader.get_service(spec.namespace, service)


def check_service_endpoints(spec: ClusterSpec, reader: StateReader) -> None:
    """Each service lists exactly one subset with the expected address count.

    Services expecting zero addresses stand for an optional co-located
    component and are skipped without reading their endpoints.
    """
    for service, count in expected_endpoints(spec).items():
        if count == 0:
            continue
        endpoints = reader.get_endpoints(spec.namespace, service)
        if len(endpoints.subsets) != 1:
            raise MismatchError(f"subsets of endpoints {service}", 1, len(endpoints.subsets))
        addresses = len(endpoints.subsets[0].addresses)
        if addresses != count:
            raise MismatchError(f"addresses of endpoints {service}", count, addresses)


def check_admin_password(spec: ClusterSpec, reader: StateReader) -> None:
    password = reader.get_admin_password(spec.namespace, spec.name)
    if not password:
        raise MismatchError("admin password", "<non-empty>", "")


# =============================================================================
# Expected instances
# =============================================================================


def check_group_records(spec: ClusterSpec, reader: StateReader) -> None:
    """The recorded node groups are exactly the desired ones, with desired replicas."""
    expected = {naming.group_resource(spec.name, g.name): g.count for g in spec.node_groups}
    actual = {r.name: r.replicas for r in reader.get_group_records(spec.namespace, spec.name)}
    expected_entries = sorted(expected.items())
    actual_entries = sorted(actual.items())
    if expected_entries != actual_entries:
        raise MismatchError("node group records", dict(expected_entries), dict(actual_entries))


def _check_names(group: NodeGroup, expected: Iterable[str], actual: Iterable[str]) -> None:
    expected_names = sorted(expected)
    actual_names = sorted(actual)
    if expected_names != actual_names:
        raise MismatchError(f"instances of node group {group.name}", expected_names, actual_names)


def _check_ready(instance: InstanceRecord) -> None:
    if not instance.status.ready:
        status = json.dumps(instance.status.to_dict(), indent=4)
        raise NotReadyError(instance.name, status)


def _check_not_stale(instance: InstanceRecord, current: str) -> None:
    stamped = instance.annotations.get(FINGERPRINT_ANNOTATION, "")
    if stamped and stamped != current:
        raise StaleInstanceError(instance.name, current, stamped)


def check_expected_instances_ready(spec: ClusterSpec, reader: StateReader) -> None:
    """Exactly the expected instances exist, all ready, none left on a previous spec.

    For every node group:

    1. The recorded node groups equal the desired groups and replica counts.
    2. The sorted instance names equal the names the orchestrator should produce.
    3. Every instance reports ready.
    4. An instance annotated with a fingerprint carries the current one. An
       instance without annotation is accepted: it was recreated, or never
       stamped.

    The fingerprint covers the group shape, the version and the exposure
    config only. A change that alters instance contents without touching those
    fields (a credential rotation, for instance) leaves the fingerprint intact,
    so an unfinished rollout caused by it goes unnoticed here.
    """
    check_group_records(spec, reader)
    for group in spec.node_groups:
        actual = reader.list_group_instances(spec.namespace, spec.name, group.name)
        expected = naming.instance_names(spec.name, group.name, group.count)
        _check_names(group, expected, (i.name for i in actual))

        current = fingerprint(group, spec)
        for instance in actual:
            _check_ready(instance)
            _check_not_stale(instance, current)
    log.debug("{n} expected instances ready", n=spec.node_count)
