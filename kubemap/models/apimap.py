"""API map data structures: version tokens, discovery documents, lookup results."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum, StrEnum
from typing import Any

from kubemap.errors import DiscoveryError


class CompareResult(IntEnum):
    """Order relation between two API version tokens."""

    LESS = -1
    EQUAL = 0
    GREATER = 1


@dataclass(frozen=True)
class VersionToken:
    """Parsed API version token such as ``v1``, ``v1beta1`` or ``v2alpha10``."""

    raw: str
    major: int
    label: str | None = None
    minor: int | None = None

    @property
    def is_stable(self) -> bool:
        return self.label is None


@dataclass(frozen=True)
class ResourceMapping:
    """Resolved endpoint for a resource within one cluster version."""

    group_version: str  # e.g. "apps/v1", or bare "v1" for the core group
    namespaced: bool

    @property
    def is_core(self) -> bool:
        return "/" not in self.group_version

    def to_dict(self) -> dict[str, object]:
        return {"groupVersion": self.group_version, "namespaced": self.namespaced}


@dataclass(frozen=True)
class ResourceDescriptor:
    """One entry of a discovery document's ``resources`` list."""

    name: str
    namespaced: bool
    kind: str = ""
    verbs: tuple[str, ...] = ()
    short_names: tuple[str, ...] = ()

    @property
    def is_subresource(self) -> bool:
        return "/" in self.name

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ResourceDescriptor:
        return cls(
            name=str(data["name"]),
            namespaced=bool(data.get("namespaced", False)),
            kind=str(data.get("kind", "")),
            verbs=tuple(data.get("verbs") or ()),
            short_names=tuple(data.get("shortNames") or ()),
        )


@dataclass(frozen=True)
class DiscoveryResponse:
    """Resources served by a single group-version (``/api/v1``, ``/apis/<gv>``).

    ``preferred_version`` is the owning group's preferred group-version and
    stays ``None`` for the core group.
    """

    group_version: str
    resources: tuple[ResourceDescriptor, ...] = ()
    preferred_version: str | None = None

    @classmethod
    def from_dict(cls, doc: dict[str, Any], preferred_version: str | None = None) -> DiscoveryResponse:
        """Build from a Kubernetes ``APIResourceList`` document.

        Raises:
            ValueError: if the document has no ``groupVersion`` or its
                        ``resources`` entries lack a name.
        """
        if not isinstance(doc, dict) or not doc.get("groupVersion"):
            raise ValueError("Discovery document has no 'groupVersion'")
        try:
            resources = tuple(ResourceDescriptor.from_dict(r) for r in doc.get("resources") or ())
        except (KeyError, TypeError, AttributeError) as exc:
            raise ValueError(f"Malformed resource entry in '{doc['groupVersion']}': {exc}") from exc
        return cls(
            group_version=str(doc["groupVersion"]),
            resources=resources,
            preferred_version=preferred_version or None,
        )


@dataclass(frozen=True)
class ApiGroup:
    """One entry of the ``/apis`` ``APIGroupList``."""

    name: str
    versions: tuple[str, ...]
    preferred_version: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ApiGroup:
        """Build from one ``APIGroup`` entry.

        Raises:
            ValueError: if the entry, its versions or its preferred version
                        are not shaped like an ``APIGroup``.
        """
        if not isinstance(data, dict):
            raise ValueError(f"API group entry is not a mapping: {data!r}")
        name = str(data.get("name", ""))
        try:
            preferred = (data.get("preferredVersion") or {}).get("groupVersion")
            versions = tuple(str(v["groupVersion"]) for v in data.get("versions") or ())
        except (KeyError, TypeError, AttributeError) as exc:
            raise ValueError(f"Malformed API group '{name}': {exc!r}") from exc
        return cls(name=name, versions=versions, preferred_version=preferred or None)


class LookupOutcome(StrEnum):
    """Which variant a lookup produced."""

    FOUND = "found"
    FALLBACK_ALL = "fallback_all"
    UNKNOWN_CLUSTER = "unknown_cluster"


@dataclass(frozen=True)
class Found:
    """The resource resolved to a single mapping."""

    mapping: ResourceMapping
    resource: str  # key that matched, i.e. the plural discovery name
    outcome: LookupOutcome = field(default=LookupOutcome.FOUND, init=False)


@dataclass(frozen=True)
class FallbackAll:
    """The cluster version is known but the resource is not; carries the whole map."""

    resources: dict[str, ResourceMapping]
    outcome: LookupOutcome = field(default=LookupOutcome.FALLBACK_ALL, init=False)


@dataclass(frozen=True)
class UnknownCluster:
    """Nothing has ever been folded for this cluster version."""

    cluster_version: str
    outcome: LookupOutcome = field(default=LookupOutcome.UNKNOWN_CLUSTER, init=False)


LookupResult = Found | FallbackAll | UnknownCluster


@dataclass
class DiscoveryResult:
    """Outcome of a full discovery build.

    ``resources`` holds whatever was folded successfully, even when some
    group-versions failed; the failures are listed in ``errors``.
    """

    cluster_version: str
    resources: dict[str, ResourceMapping] = field(default_factory=dict)
    errors: list[DiscoveryError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, dict[str, object]]:
        return {name: mapping.to_dict() for name, mapping in sorted(self.resources.items())}
