"""In-memory cluster store.

Used by tests and dry runs. It behaves like the orchestrator's store as
seen through a client cache:

- Every record carries a resource_version; ``update`` with a stale one
  raises ConflictError (optimistic concurrency).
- With ``lag > 0`` a write stays hidden from the next ``lag`` read calls,
  modelling an eventually-consistent cache.
- ``inject_conflicts(n)`` makes the next ``n`` updates fail as if a
  concurrent mutator had won the race.
"""

from __future__ import annotations

import builtins
import itertools
import threading
from collections.abc import Mapping
from dataclasses import dataclass, replace

from loguru import logger

from plumbline.constants import Kind
from plumbline.errors import ConflictError, NotFoundError
from plumbline.model import (
    ClusterRecord,
    EndpointsRecord,
    GroupRecord,
    InstanceRecord,
    Record,
    SecretRecord,
    ServiceRecord,
)

type _Key = tuple[Kind, str, str]

_KINDS: dict[type, Kind] = {
    InstanceRecord: Kind.INSTANCE,
    GroupRecord: Kind.GROUP,
    ClusterRecord: Kind.CLUSTER,
    ServiceRecord: Kind.SERVICE,
    EndpointsRecord: Kind.ENDPOINTS,
    SecretRecord: Kind.SECRET,
}


def kind_of(record: Record) -> Kind:
    try:
        return _KINDS[type(record)]
    except KeyError:
        raise TypeError(f"Unsupported record type: {type(record).__name__}") from None


def _matches(record: Record, selector: Mapping[str, str] | None) -> bool:
    if not selector:
        return True
    labels: Mapping[str, str] = getattr(record, "labels", {})
    return all(labels.get(k) == v for k, v in selector.items())


@dataclass(slots=True)
class _PendingWrite:
    reads_left: int
    key: _Key
    record: Record | None


class MemoryStore:
    """Thread-safe in-process implementation of ClusterStore."""

    def __init__(self, *, lag: int = 0) -> None:
        if lag < 0:
            raise ValueError(f"lag must be >= 0, got {lag}")
        self.lag = lag
        self._lock = threading.Lock()
        self._objects: dict[_Key, Record] = {}
        self._cache: dict[_Key, Record] = {}
        self._pending: builtins.list[_PendingWrite] = []
        self._versions = itertools.count(1)
        self._conflicts = 0
        self._log = logger.bind(component="memory-store")

    # -------------------------------------------------------------------------
    # ClusterStore
    # -------------------------------------------------------------------------

    def get(self, kind: Kind, namespace: str, name: str) -> Record:
        with self._lock:
            self._advance()
            record = self._cache.get((kind, namespace, name))
        if record is None:
            raise NotFoundError(kind, namespace, name)
        return record

    def list(
        self,
        kind: Kind,
        namespace: str,
        selector: Mapping[str, str] | None = None,
    ) -> builtins.list[Record]:
        with self._lock:
            self._advance()
            return [
                record
                for (k, ns, _), record in sorted(self._cache.items())
                if k == kind and ns == namespace and _matches(record, selector)
            ]

    def update(self, record: Record) -> Record:
        key = (kind_of(record), record.namespace, record.name)
        with self._lock:
            current = self._objects.get(key)
            if current is None:
                raise NotFoundError(*key)
            if self._conflicts > 0:
                self._conflicts -= 1
                self._log.debug("Injected conflict on {key}", key=key)
                raise ConflictError(*key, record.resource_version, current.resource_version)
            if record.resource_version != current.resource_version:
                raise ConflictError(*key, record.resource_version, current.resource_version)
            return self._write(key, record)

    # -------------------------------------------------------------------------
    # Orchestrator side
    # -------------------------------------------------------------------------

    def put(self, record: Record) -> Record:
        """Create or replace a record unconditionally."""
        key = (kind_of(record), record.namespace, record.name)
        with self._lock:
            return self._write(key, record)

    def delete(self, kind: Kind, namespace: str, name: str) -> None:
        key = (kind, namespace, name)
        with self._lock:
            if self._objects.pop(key, None) is None:
                raise NotFoundError(kind, namespace, name)
            self._publish(key, None)

    def inject_conflicts(self, count: int) -> None:
        """Fail the next ``count`` updates with ConflictError."""
        with self._lock:
            self._conflicts = count

    def sync(self) -> None:
        """Make every pending write visible immediately."""
        with self._lock:
            for write in self._pending:
                self._apply(write)
            self._pending.clear()

    # -------------------------------------------------------------------------
    # Internals (lock held)
    # -------------------------------------------------------------------------

    def _write(self, key: _Key, record: Record) -> Record:
        stored = replace(record, resource_version=str(next(self._versions)))
        self._objects[key] = stored
        self._publish(key, stored)
        return stored

    def _publish(self, key: _Key, record: Record | None) -> None:
        write = _PendingWrite(reads_left=self.lag, key=key, record=record)
        if self.lag == 0:
            self._apply(write)
        else:
            self._pending.append(write)

    def _advance(self) -> None:
        remaining: builtins.list[_PendingWrite] = []
        for write in self._pending:
            if write.reads_left <= 0:
                self._apply(write)
            else:
                write.reads_left -= 1
                remaining.append(write)
        self._pending = remaining

    def _apply(self, write: _PendingWrite) -> None:
        if write.record is None:
            self._cache.pop(write.key, None)
        else:
            self._cache[write.key] = write.record
