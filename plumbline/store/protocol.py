"""Protocol implemented by cluster-state stores."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from plumbline.constants import Kind
    from plumbline.model import Record

__all__ = ["ClusterStore"]


@runtime_checkable
class ClusterStore(Protocol):
    """Typed-record store owned by the orchestrator under test.

    Reads go through an eventually-consistent cache: two reads a moment
    apart may disagree, and a successful write may not be visible to the
    next read.

    Implementations raise NotFoundError from ``get`` when the record is
    absent, and ConflictError from ``update`` when the record's
    resource_version is stale.
    """

    def get(self, kind: Kind, namespace: str, name: str) -> Record:
        """Fetch one record by namespace and name."""
        ...

    def list(
        self,
        kind: Kind,
        namespace: str,
        selector: Mapping[str, str] | None = None,
    ) -> list[Record]:
        """List records whose labels contain every ``selector`` entry."""
        ...

    def update(self, record: Record) -> Record:
        """Replace a record, returning it with its new resource_version."""
        ...
