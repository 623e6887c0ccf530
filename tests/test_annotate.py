from __future__ import annotations

from dataclasses import replace

import pytest

from plumbline.annotate import annotate_instances, annotate_steps, wait_for_annotations
from plumbline.checks import check_expected_instances_ready
from plumbline.constants import FINGERPRINT_ANNOTATION, Kind
from plumbline.errors import ConflictError, MismatchError, StaleInstanceError
from plumbline.fingerprint import fingerprint
from plumbline.model import ClusterSpec, ExposureConfig
from plumbline.reader import StateReader
from plumbline.retry import RetryPolicy, eventually
from plumbline.steps import check_steps
from plumbline.store import MemoryStore

from conftest import KeyPair, Orchestrator

pytestmark = [pytest.mark.unit, pytest.mark.xdist_group("unit")]


def _no_sleep(_: float) -> None:
    return None


def annotations(store: MemoryStore, spec: ClusterSpec) -> dict[str, str | None]:
    return {
        r.name: r.annotations.get(FINGERPRINT_ANNOTATION)
        for r in store.list(Kind.INSTANCE, spec.namespace)
    }


class TestAnnotateInstances:
    def test_stamps_current_fingerprint(
        self, spec: ClusterSpec, store: MemoryStore, reader: StateReader, converged: Orchestrator
    ):
        annotate_instances(spec, reader)

        stamped = annotations(store, spec)
        masters, data = spec.node_groups
        assert stamped["search-nodes-masters-0"] == fingerprint(masters, spec)
        assert stamped["search-nodes-data-1"] == fingerprint(data, spec)
        assert all(stamped.values())
        check_expected_instances_ready(spec, reader)

    def test_conflict_propagates(
        self, spec: ClusterSpec, store: MemoryStore, reader: StateReader, converged: Orchestrator
    ):
        store.inject_conflicts(1)
        with pytest.raises(ConflictError):
            annotate_instances(spec, reader)

    def test_conflicts_retried_under_eventually(
        self, spec: ClusterSpec, store: MemoryStore, reader: StateReader, converged: Orchestrator
    ):
        store.inject_conflicts(3)
        eventually(lambda: annotate_instances(spec, reader), timeout=5, interval=1, sleep=_no_sleep)
        wait_for_annotations(spec, reader)

    def test_concurrent_orchestrator_write_conflicts(
        self, spec: ClusterSpec, store: MemoryStore, reader: StateReader, converged: Orchestrator
    ):
        stale = converged.instance(spec, "search-nodes-masters-0")
        converged.patch_instance(spec, stale.name, labels={**stale.labels, "touched": "yes"})
        with pytest.raises(ConflictError):
            reader.update_instance(stale.with_annotation(FINGERPRINT_ANNOTATION, "x"))


class TestWaitForAnnotations:
    def test_unannotated_instance_fails(
        self, spec: ClusterSpec, reader: StateReader, converged: Orchestrator
    ):
        with pytest.raises(MismatchError, match=FINGERPRINT_ANNOTATION):
            wait_for_annotations(spec, reader)

    def test_read_back_waits_for_cache(self, spec: ClusterSpec, keypair: KeyPair):
        store = MemoryStore(lag=2)
        reader = StateReader(store)
        Orchestrator(store, keypair).apply(spec)
        store.sync()

        annotate_instances(spec, reader)
        with pytest.raises(MismatchError):
            wait_for_annotations(spec, reader)

        eventually(lambda: wait_for_annotations(spec, reader), timeout=5, interval=1, sleep=_no_sleep)


class TestRollingUpgrade:
    @pytest.fixture
    def annotated(
        self, spec: ClusterSpec, reader: StateReader, converged: Orchestrator, no_wait: RetryPolicy
    ) -> Orchestrator:
        annotate_steps().run(spec, reader, no_wait, sleep=_no_sleep)
        return converged

    def test_annotate_steps(self):
        assert annotate_steps().names == [
            "Annotate instances with a fingerprint of their spec",
            "Wait for annotated instances to appear in the cache",
        ]

    def test_version_upgrade_detected_until_replaced(
        self, spec: ClusterSpec, reader: StateReader, annotated: Orchestrator
    ):
        upgraded = replace(spec, version="8.12.0")
        annotated.apply(upgraded)

        with pytest.raises(StaleInstanceError):
            check_expected_instances_ready(upgraded, reader)

        annotated.apply(upgraded, recreate=True)
        check_expected_instances_ready(upgraded, reader)

    def test_exposure_change_detected(
        self, spec: ClusterSpec, reader: StateReader, annotated: Orchestrator
    ):
        mutated = replace(spec, exposure=ExposureConfig(service_type="NodePort"))
        annotated.apply(mutated)
        with pytest.raises(StaleInstanceError):
            check_expected_instances_ready(mutated, reader)

    def test_scale_up_is_not_a_rollout(
        self, spec: ClusterSpec, store: MemoryStore, reader: StateReader, annotated: Orchestrator
    ):
        masters, data = spec.node_groups
        scaled = replace(spec, node_groups=(masters, replace(data, count=4)))
        annotated.apply(scaled)

        stamped = annotations(store, scaled)
        assert stamped["search-nodes-data-0"] == fingerprint(data, spec)
        assert stamped["search-nodes-data-3"] is None
        check_steps().run(scaled, reader, RetryPolicy(timeout=0, interval=0))

    def test_scale_down_is_not_a_rollout(
        self, spec: ClusterSpec, reader: StateReader, annotated: Orchestrator
    ):
        masters, data = spec.node_groups
        scaled = replace(spec, node_groups=(replace(masters, count=1), data))
        annotated.apply(scaled)
        check_expected_instances_ready(scaled, reader)
