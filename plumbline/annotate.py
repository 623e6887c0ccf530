"""Stamp instances with the fingerprint of their node group.

Used around a mutation of the desired spec: stamp every instance before
applying the mutation, then ``check_expected_instances_ready`` rejects any
instance still carrying the old fingerprint until the rolling replacement
is over.

Two phases, each meant to run under ``eventually``:

1. ``annotate_instances`` writes the annotation on every instance. The
   orchestrator may update the same records concurrently; a lost race
   surfaces as ConflictError and the whole phase runs again.
2. ``wait_for_annotations`` reads the instances back until every one shows
   the annotation. It cannot tell cache lag apart from a write that was
   silently lost: both look like a missing annotation until the deadline.
"""

from __future__ import annotations

from loguru import logger

from plumbline.constants import FINGERPRINT_ANNOTATION
from plumbline.errors import MismatchError
from plumbline.fingerprint import fingerprint
from plumbline.model import ClusterSpec, InstanceRecord
from plumbline.reader import StateReader
from plumbline.steps import Step, StepList

log = logger.bind(component="annotate")


def annotate_instances(spec: ClusterSpec, reader: StateReader) -> None:
    for group in spec.node_groups:
        value = fingerprint(group, spec)
        for instance in reader.list_group_instances(spec.namespace, spec.name, group.name):
            if instance.annotations.get(FINGERPRINT_ANNOTATION) == value:
                continue
            reader.update_instance(instance.with_annotation(FINGERPRINT_ANNOTATION, value))
            log.debug("Annotated {instance}", instance=instance.name)


def _annotated(instance: InstanceRecord) -> None:
    if not instance.annotations.get(FINGERPRINT_ANNOTATION):
        raise MismatchError(
            f"annotation {FINGERPRINT_ANNOTATION} of instance {instance.name}",
            "<fingerprint>",
            "",
        )


def wait_for_annotations(spec: ClusterSpec, reader: StateReader) -> None:
    for instance in reader.list_cluster_instances(spec.namespace, spec.name):
        _annotated(instance)


def annotate_steps() -> StepList:
    return StepList.of(
        Step("Annotate instances with a fingerprint of their spec", annotate_instances),
        Step("Wait for annotated instances to appear in the cache", wait_for_annotations),
    )
