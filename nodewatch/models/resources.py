"""Observed resource state held by the mirror."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class MirrorState(StrEnum):
    """Lifecycle of a ResourceMirror.  Transitions only move forward."""

    UNINITIALIZED = "uninitialized"
    SYNCING = "syncing"
    SYNCED = "synced"


@dataclass(frozen=True, order=True)
class ResourceIdentity:
    """Stable key of a resource within one kind.

    ``namespace`` is empty for cluster-scoped kinds such as Node.
    """

    namespace: str
    name: str

    @classmethod
    def parse(cls, value: str) -> ResourceIdentity:
        """Parse ``name`` or ``namespace/name``."""
        parts = value.split("/")
        if len(parts) == 1 and parts[0]:
            return cls(namespace="", name=parts[0])
        if len(parts) == 2 and all(parts):
            return cls(namespace=parts[0], name=parts[1])
        raise ValueError(f"Invalid resource identity: {value!r}")

    @classmethod
    def from_metadata(cls, metadata: Mapping[str, Any]) -> ResourceIdentity:
        return cls(
            namespace=str(metadata.get("namespace") or ""),
            name=str(metadata.get("name") or ""),
        )

    def __str__(self) -> str:
        if self.namespace:
            return f"{self.namespace}/{self.name}"
        return self.name


@dataclass(frozen=True)
class ResourceRecord:
    """One resource's observed state at a point in time.

    Immutable: an update replaces the whole record in the mirror, so a reader
    never sees a record mid-mutation.  ``version`` is the opaque
    resourceVersion token and is only ever compared for equality.
    """

    identity: ResourceIdentity
    version: str
    kind: str = "Node"
    payload: Mapping[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @property
    def name(self) -> str:
        return self.identity.name

    @property
    def namespace(self) -> str:
        return self.identity.namespace

    @classmethod
    def from_object(cls, kind: str, obj: Mapping[str, Any]) -> ResourceRecord:
        """Build a record from a raw API object dict (``metadata`` + fields)."""
        metadata = obj.get("metadata") or {}
        return cls(
            identity=ResourceIdentity.from_metadata(metadata),
            version=str(metadata.get("resourceVersion") or ""),
            kind=kind,
            payload=obj,
        )
