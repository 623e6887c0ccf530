"""Cluster-state store interface and the in-memory backend."""

from plumbline.store.memory import MemoryStore, kind_of
from plumbline.store.protocol import ClusterStore

__all__ = ["ClusterStore", "MemoryStore", "kind_of"]
