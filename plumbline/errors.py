"""Exception hierarchy for plumbline.

All plumbline exceptions inherit from PlumblineError, enabling
callers to catch every verification failure with a single except clause.

Retry policy is never decided here: any of these may be raised by a
predicate, and it is the enclosing ``eventually`` loop that polls again.
"""

from __future__ import annotations

from typing import Any


class PlumblineError(Exception):
    """Base exception for all plumbline errors."""


class NotFoundError(PlumblineError):
    """Raised when a required record is absent from the store."""

    def __init__(self, kind: str, namespace: str, name: str) -> None:
        self.kind = kind
        self.namespace = namespace
        self.name = name
        super().__init__(f"{kind} {namespace}/{name} not found")


class KeyMissingError(NotFoundError):
    """Raised when a secret exists but lacks the requested key."""

    def __init__(self, namespace: str, name: str, key: str) -> None:
        super().__init__("secret", namespace, name)
        self.key = key
        self.args = (f"secret {namespace}/{name} has no value for key {key!r}",)


class InvalidCertificateError(PlumblineError):
    """Raised when a certificate or private key is present but cannot be loaded."""


class MismatchError(PlumblineError):
    """Raised when an observed value disagrees with the expected one."""

    def __init__(self, what: str, expected: Any, actual: Any, detail: str = "") -> None:
        self.what = what
        self.expected = expected
        self.actual = actual
        message = f"{what}: expected {expected!r}, got {actual!r}"
        if detail:
            message = f"{message}\n{detail}"
        super().__init__(message)


class NotReadyError(MismatchError):
    """Raised when an instance exists but does not report ready."""

    def __init__(self, instance: str, status: str) -> None:
        self.instance = instance
        super().__init__(f"instance {instance} readiness", True, False, f"Status: {status}")


class StaleInstanceError(MismatchError):
    """Raised when an instance still carries the fingerprint of a previous spec."""

    def __init__(self, instance: str, expected: str, actual: str) -> None:
        self.instance = instance
        super().__init__(
            f"instance {instance} was not replaced (yet?) to match the expected specification",
            expected,
            actual,
        )


class ConflictError(PlumblineError):
    """Raised when a write lost a race with a concurrent mutator - retry."""

    def __init__(self, kind: str, namespace: str, name: str, expected: str, actual: str) -> None:
        self.kind = kind
        self.namespace = namespace
        self.name = name
        super().__init__(
            f"conflict updating {kind} {namespace}/{name}: "
            f"resource version {expected} is stale (current {actual})"
        )


class StepFailedError(PlumblineError):
    """Raised by the sequencer when a step never converged."""

    def __init__(self, step: str, error: BaseException) -> None:
        self.step = step
        self.error = error
        super().__init__(f"{step}: {error}")


class ConfigurationError(PlumblineError):
    """Raised for invalid configuration values."""
