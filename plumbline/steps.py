"""Ordered checklists of named steps.

A Step is a plain record {name, predicate}; the StepList runs its steps
strictly in sequence, each under the convergence driver, and stops at the
first step that never converges so the failure names the first broken
invariant.

Example:
    from plumbline import MemoryStore, RetryPolicy, StateReader, check_steps

    reader = StateReader(store)
    check_steps().run(spec, reader, RetryPolicy(timeout=120, interval=1))
"""

from __future__ import annotations

import time
from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from loguru import logger

from plumbline import checks
from plumbline.constants import Phase
from plumbline.errors import StepFailedError
from plumbline.model import ClusterSpec
from plumbline.reader import StateReader
from plumbline.retry import RetryPolicy, Sleep

log = logger.bind(component="steps")


@dataclass(frozen=True, slots=True)
class Step:
    """A named predicate.

    Args:
        name: Human-readable description, reported on failure.
        predicate: Check run against the cluster spec and the reader.
        retry: Run under ``eventually`` (default) or exactly once.
    """

    name: str
    predicate: checks.Check
    retry: bool = True

    def run(
        self,
        spec: ClusterSpec,
        reader: StateReader,
        policy: RetryPolicy,
        sleep: Sleep = time.sleep,
    ) -> None:
        if self.retry:
            policy.run(lambda: self.predicate(spec, reader), sleep=sleep)
        else:
            self.predicate(spec, reader)


@dataclass(frozen=True, slots=True)
class StepList:
    steps: tuple[Step, ...] = ()

    @classmethod
    def of(cls, *steps: Step) -> StepList:
        return cls(steps)

    def __iter__(self) -> Iterator[Step]:
        return iter(self.steps)

    def __len__(self) -> int:
        return len(self.steps)

    def __add__(self, other: StepList | Iterable[Step]) -> StepList:
        return StepList((*self.steps, *other))

    @property
    def names(self) -> list[str]:
        return [step.name for step in self.steps]

    def run(
        self,
        spec: ClusterSpec,
        reader: StateReader,
        policy: RetryPolicy | None = None,
        sleep: Sleep = time.sleep,
    ) -> None:
        """Run every step in order, stopping at the first failure.

        Raises:
            StepFailedError: Carries the step name and, as ``error``, the
                exception raised by the step's final attempt.
        """
        policy = policy or RetryPolicy()
        for index, step in enumerate(self.steps, start=1):
            log.info("[{i}/{n}] {name}", i=index, n=len(self.steps), name=step.name)
            started = time.monotonic()
            try:
                step.run(spec, reader, policy, sleep=sleep)
            except Exception as e:
                log.error("Step failed: {name}: {error}", name=step.name, error=e)
                raise StepFailedError(step.name, e) from e
            log.debug(
                "Step passed in {elapsed:.2f}s: {name}",
                elapsed=time.monotonic() - started,
                name=step.name,
            )


def check_steps() -> StepList:
    """Checklist asserting that a cluster is healthy and matches its spec.

    Certificate authorities come first: a missing CA blocks everything else
    and is the most useful failure to report.
    """
    return StepList.of(
        Step("Certificate authorities should be set and deployed", checks.check_certificate_authorities),
        Step("All expected instances should eventually be ready", checks.check_expected_instances_ready),
        Step("Instance version should be the expected one", checks.check_version),
        Step("Services should be created", checks.check_services),
        Step("Instances should eventually have a certificate", checks.check_instance_certificates),
        Step("Services should have endpoints", checks.check_service_endpoints),
        Step("Cluster health should eventually be green", checks.check_cluster_health),
        Step("Admin password should be available", checks.check_admin_password),
        Step("Data volumes should use the expected storage class", checks.check_volume_storage_class),
    )


def pending_steps() -> StepList:
    """Checklist for a cluster whose instances cannot be scheduled yet."""
    return StepList.of(
        Step(
            "Instances should eventually be Pending",
            checks.check_instances_in_phase(Phase.PENDING),
        ),
    )
