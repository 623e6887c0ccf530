"""Deterministic fingerprint of a node group's desired shape.

The fingerprint is stamped on instances and compared later to tell whether
an instance still reflects a previous specification (rolling replacement
not over yet).

The instance count is excluded: scaling up or down does not cycle the
instances left untouched by the scaling, so they keep the previous
annotation and must still compare equal.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping
from dataclasses import fields, is_dataclass, replace
from enum import Enum
from typing import Any

from plumbline.model import ClusterSpec, NodeGroup


def _shallow(obj: Any) -> dict[str, Any]:
    # one level only; json.dumps reaches nested values through _default
    return {f.name: getattr(obj, f.name) for f in fields(obj)}


def _default(obj: Any) -> Any:
    if is_dataclass(obj) and not isinstance(obj, type):
        return _shallow(obj)
    if isinstance(obj, Mapping):
        return dict(obj)
    if isinstance(obj, (set, frozenset)):
        return sorted(obj)
    if isinstance(obj, Enum):
        return obj.value
    raise TypeError(f"Object of type {type(obj).__name__} cannot be fingerprinted")


def hash_object(obj: Any) -> str:
    """SHA-256 of the canonical JSON serialization of ``obj``."""
    if is_dataclass(obj) and not isinstance(obj, type):
        obj = _shallow(obj)
    content = json.dumps(obj, sort_keys=True, separators=(",", ":"), default=_default)
    return hashlib.sha256(content.encode()).hexdigest()


def fingerprint(group: NodeGroup, spec: ClusterSpec) -> str:
    """Fingerprint ``group`` in the context of ``spec``.

    Each input is hashed on its own before the digests are combined, so the
    serialization of one input can never bleed into another's.

    Args:
        group: Node group to fingerprint. Its count is ignored.
        spec: Cluster specification providing the version and exposure config.

    Returns:
        Opaque hex digest, only meant to be compared for equality.
    """
    group_hash = hash_object(replace(group, count=0))
    version_hash = hash_object(spec.version)
    exposure_hash = hash_object(spec.exposure)
    return hash_object(group_hash + version_hash + exposure_hash)
