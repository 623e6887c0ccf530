"""Convergence driver: poll a predicate until it holds or a deadline passes.

Predicates are cheap idempotent reads, so attempts are spaced by a fixed
interval with no backoff. Each attempt must fully satisfy the predicate;
nothing carries over between attempts.

When the deadline passes, the exception raised by the final attempt is
re-raised verbatim, so the caller sees the precise failing condition
rather than a generic timeout.

Example:
    from plumbline.retry import RetryPolicy, eventually

    eventually(lambda: check_cluster_health(spec, reader), timeout=60, interval=1)

    policy = RetryPolicy(timeout=60, interval=1)
    wait_green = policy.wrap(lambda: check_cluster_health(spec, reader))
    wait_green()
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass

from loguru import logger
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_before_delay,
    wait_fixed,
)

log = logger.bind(component="eventually")

type Predicate = Callable[[], object]
type Sleep = Callable[[float], None]

DEFAULT_TIMEOUT = 300.0
DEFAULT_INTERVAL = 1.0


def _log_attempt(retry_state: RetryCallState) -> None:
    if retry_state.outcome is None or not retry_state.outcome.failed:
        return
    log.debug(
        "Attempt {n} not converged after {elapsed:.1f}s: {error}",
        n=retry_state.attempt_number,
        elapsed=retry_state.seconds_since_start or 0.0,
        error=retry_state.outcome.exception(),
    )


def eventually(
    predicate: Predicate,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    interval: float = DEFAULT_INTERVAL,
    sleep: Sleep = time.sleep,
) -> None:
    """Re-invoke ``predicate`` until it returns without raising.

    Args:
        predicate: Zero-argument callable; raising means "not converged".
        timeout: Seconds after the first attempt past which no new attempt starts.
        interval: Fixed delay between attempts.
        sleep: Blocking sleep function, injectable for tests.

    Raises:
        Exception: Whatever the last attempt raised, once the deadline passed.
    """
    retrying = Retrying(
        stop=stop_before_delay(timeout),
        wait=wait_fixed(interval),
        retry=retry_if_exception_type(Exception),
        before_sleep=_log_attempt,
        sleep=sleep,
        reraise=True,
    )
    try:
        retrying(predicate)
    except Exception as e:
        log.warning(
            "Gave up after {n} attempts ({timeout}s): {error}",
            n=retrying.statistics.get("attempt_number", 1),
            timeout=timeout,
            error=e,
        )
        raise


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Deadline and poll interval applied to every retried step.

    Args:
        timeout: Seconds before giving up on a step.
        interval: Seconds between two attempts.
    """

    timeout: float = DEFAULT_TIMEOUT
    interval: float = DEFAULT_INTERVAL

    def __post_init__(self) -> None:
        if self.timeout < 0:
            raise ValueError(f"timeout must be >= 0, got {self.timeout}")
        if self.interval < 0:
            raise ValueError(f"interval must be >= 0, got {self.interval}")

    def run(self, predicate: Predicate, sleep: Sleep = time.sleep) -> None:
        eventually(predicate, timeout=self.timeout, interval=self.interval, sleep=sleep)

    def wrap(self, predicate: Predicate, sleep: Sleep = time.sleep) -> Callable[[], None]:
        """Turn a check-once predicate into a wait-until-true callable."""

        def wait() -> None:
            self.run(predicate, sleep=sleep)

        return wait
