"""Data structures for the Dataset resource graph.

The graph is the only output of a mapping call.  Every value here is built
once per call and never mutated afterwards; sequences are tuples so that two
graphs built from the same cluster state compare equal.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, timedelta
from enum import StrEnum
from types import MappingProxyType
from typing import Any

MAPPER_VERSION = "1.0.0"

_EPOCH = datetime.fromtimestamp(0, tz=UTC)


class RuntimeType(StrEnum):
    """Fluid runtime engines."""

    ALLUXIO = "alluxio"
    JINDO = "jindo"
    JUICEFS = "juicefs"
    GOOSEFS = "goosefs"
    VINEYARD = "vineyard"
    EFC = "efc"
    THIN = "thin"
    UNKNOWN = "unknown"


class ComponentType(StrEnum):
    """Structural role of a discovered resource."""

    MASTER = "master"
    WORKER = "worker"
    FUSE = "fuse"
    STORAGE = "storage"
    CONFIG = "config"
    UNKNOWN = "unknown"


class WarningLevel(StrEnum):
    """Severity of a mapping warning."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class ResourcePhase(StrEnum):
    """Normalised lifecycle phase of a discovered resource."""

    READY = "Ready"
    NOT_READY = "NotReady"
    PENDING = "Pending"
    FAILED = "Failed"
    UNKNOWN = "Unknown"
    BOUND = "Bound"
    NOT_BOUND = "NotBound"


class DatasetPhase(StrEnum):
    """Lifecycle phases reported in Dataset status."""

    NOT_BOUND = "NotBound"
    PENDING = "Pending"
    BOUND = "Bound"
    FAILED = "Failed"


class ResourceKind(StrEnum):
    """Kubernetes kinds the mapper discovers."""

    STATEFUL_SET = "StatefulSet"
    DAEMON_SET = "DaemonSet"
    POD = "Pod"
    PERSISTENT_VOLUME_CLAIM = "PersistentVolumeClaim"
    PERSISTENT_VOLUME = "PersistentVolume"
    CONFIG_MAP = "ConfigMap"
    SECRET = "Secret"


class WarningCode(StrEnum):
    """Stable machine-readable warning codes."""

    DATASET_NOT_FOUND = "DATASET_NOT_FOUND"
    RUNTIME_NOT_BOUND = "RUNTIME_NOT_BOUND"
    UNKNOWN_RUNTIME_TYPE = "UNKNOWN_RUNTIME_TYPE"
    MASTER_MISSING = "MASTER_MISSING"
    WORKER_MISSING = "WORKER_MISSING"
    FUSE_MISSING = "FUSE_MISSING"
    PODS_NOT_READY = "PODS_NOT_READY"
    ORPHANED_RESOURCE = "ORPHANED_RESOURCE"
    PV_NOT_BOUND = "PV_NOT_BOUND"
    STS_LIST_FAILED = "STS_LIST_FAILED"
    DS_LIST_FAILED = "DS_LIST_FAILED"
    POD_LIST_FAILED = "POD_LIST_FAILED"
    PVC_LIST_FAILED = "PVC_LIST_FAILED"
    PV_GET_FAILED = "PV_GET_FAILED"
    CM_LIST_FAILED = "CM_LIST_FAILED"
    SECRET_LIST_FAILED = "SECRET_LIST_FAILED"


@dataclass(frozen=True)
class RuntimeComponents:
    """Which components a runtime engine deploys."""

    has_master: bool = True
    has_worker: bool = True
    has_fuse: bool = True


_FULL_STACK = RuntimeComponents()

_COMPONENT_MATRIX: dict[RuntimeType, RuntimeComponents] = {
    RuntimeType.ALLUXIO: _FULL_STACK,
    RuntimeType.JINDO: _FULL_STACK,
    RuntimeType.GOOSEFS: _FULL_STACK,
    RuntimeType.VINEYARD: _FULL_STACK,
    RuntimeType.EFC: _FULL_STACK,
    RuntimeType.JUICEFS: RuntimeComponents(has_master=False),
    RuntimeType.THIN: RuntimeComponents(has_master=False, has_worker=False),
}


# Presentation order of component groups.
COMPONENT_ORDER: tuple[ComponentType, ...] = (
    ComponentType.MASTER,
    ComponentType.WORKER,
    ComponentType.FUSE,
    ComponentType.STORAGE,
    ComponentType.CONFIG,
    ComponentType.UNKNOWN,
)


def runtime_components(runtime_type: RuntimeType) -> RuntimeComponents:
    """Return the component shape for *runtime_type*.

    Unknown types are assumed to be full-stack, so missing components are
    reported rather than silently ignored.
    """
    return _COMPONENT_MATRIX.get(runtime_type, _FULL_STACK)


@dataclass(frozen=True)
class Condition:
    """Simplified Kubernetes status condition."""

    type: str
    status: str
    reason: str = ""
    message: str = ""
    last_transition_time: str = ""

    def to_dict(self) -> dict[str, Any]:
        return _compact(
            {
                "type": self.type,
                "status": self.status,
                "reason": self.reason,
                "message": self.message,
                "lastTransitionTime": self.last_transition_time,
            },
            keep=("type", "status"),
        )


@dataclass(frozen=True)
class RuntimeRef:
    """One entry of a Dataset's ``status.runtimes`` list."""

    type: str
    name: str = ""
    namespace: str = ""


@dataclass(frozen=True)
class DatasetSnapshot:
    """Parsed view of a Dataset custom resource."""

    name: str
    namespace: str
    phase: str = ""
    ufs_total: str = ""
    cached: str = ""
    cached_percentage: str = ""
    conditions: tuple[Condition, ...] = ()
    mount_points: tuple[str, ...] = ()
    runtimes: tuple[RuntimeRef, ...] = ()

    @property
    def is_bound(self) -> bool:
        return self.phase == DatasetPhase.BOUND

    def to_dict(self) -> dict[str, Any]:
        return _compact(
            {
                "name": self.name,
                "namespace": self.namespace,
                "phase": self.phase,
                "ufsTotal": self.ufs_total,
                "cached": self.cached,
                "cachedPercentage": self.cached_percentage,
                "conditions": [c.to_dict() for c in self.conditions],
                "mountPoints": list(self.mount_points),
            },
            keep=("name", "namespace", "phase"),
        )


@dataclass(frozen=True)
class RuntimeSnapshot:
    """Parsed view of the Runtime bound to a Dataset."""

    name: str
    namespace: str
    type: RuntimeType
    master_phase: str = ""
    worker_phase: str = ""
    fuse_phase: str = ""
    master_ready: str = ""
    worker_ready: str = ""
    fuse_ready: str = ""
    conditions: tuple[Condition, ...] = ()

    @property
    def components(self) -> RuntimeComponents:
        return runtime_components(self.type)

    def to_dict(self) -> dict[str, Any]:
        return _compact(
            {
                "name": self.name,
                "namespace": self.namespace,
                "type": self.type.value,
                "masterPhase": self.master_phase,
                "workerPhase": self.worker_phase,
                "fusePhase": self.fuse_phase,
                "masterReady": self.master_ready,
                "workerReady": self.worker_ready,
                "fuseReady": self.fuse_ready,
                "conditions": [c.to_dict() for c in self.conditions],
            },
            keep=("name", "namespace", "type"),
        )


@dataclass(frozen=True)
class ResourceStatus:
    """Health status of a discovered resource."""

    phase: ResourcePhase
    ready: str = ""  # "ready/desired" for workloads and pods
    message: str = ""
    created_at: datetime | None = None

    def age(self, now: datetime) -> str:
        """Humanised age relative to *now*, empty when the creation time is unknown."""
        if self.created_at is None:
            return ""
        return format_age(now - self.created_at)


@dataclass(frozen=True)
class OwnerInfo:
    """Controller owner of a resource."""

    kind: str
    name: str
    uid: str = ""

    def to_dict(self) -> dict[str, Any]:
        return _compact({"kind": self.kind, "name": self.name, "uid": self.uid}, keep=("kind", "name"))


@dataclass(frozen=True)
class ResourceNode:
    """A Kubernetes object attributed to the Dataset."""

    kind: ResourceKind
    name: str
    namespace: str | None
    component: ComponentType
    status: ResourceStatus
    owner: OwnerInfo | None = None
    labels: Mapping[str, str] = field(default_factory=dict, hash=False)
    details: Mapping[str, str] = field(default_factory=dict, hash=False)
    children: tuple[ResourceNode, ...] = ()
    api_version: str = "v1"

    def __post_init__(self) -> None:
        object.__setattr__(self, "labels", MappingProxyType(dict(self.labels)))
        object.__setattr__(self, "details", MappingProxyType(dict(self.details)))

    def to_dict(self, now: datetime | None = None) -> dict[str, Any]:
        status = _compact(
            {
                "phase": self.status.phase.value,
                "ready": self.status.ready,
                "message": self.status.message,
                "age": self.status.age(now) if now is not None else "",
                "createdAt": self.status.created_at.isoformat() if self.status.created_at else "",
            },
            keep=("phase",),
        )
        return _compact(
            {
                "kind": self.kind.value,
                "apiVersion": self.api_version,
                "name": self.name,
                "namespace": self.namespace or "",
                "component": self.component.value,
                "status": status,
                "owner": self.owner.to_dict() if self.owner else None,
                "labels": dict(self.labels),
                "details": dict(self.details),
                "children": [c.to_dict(now) for c in self.children],
            },
            keep=("kind", "name", "component", "status"),
        )


@dataclass(frozen=True)
class MappingWarning:
    """A detected problem, reported to the user as data."""

    level: WarningLevel
    code: WarningCode
    message: str
    resource: str = ""
    suggestion: str = ""

    def to_dict(self) -> dict[str, Any]:
        return _compact(
            {
                "level": self.level.value,
                "code": self.code.value,
                "message": self.message,
                "resource": self.resource,
                "suggestion": self.suggestion,
            },
            keep=("level", "code", "message"),
        )


@dataclass(frozen=True)
class GraphMetadata:
    """Run metadata stamped on every graph."""

    mapped_at: datetime
    duration_ms: float = 0.0
    cluster_name: str = ""
    version: str = MAPPER_VERSION
    mock_mode: bool = False

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "mappedAt": self.mapped_at.isoformat(),
            "duration": f"{self.duration_ms:.3f}ms",
            "version": self.version,
        }
        if self.cluster_name:
            data["clusterName"] = self.cluster_name
        if self.mock_mode:
            data["mockMode"] = True
        return data


@dataclass(frozen=True)
class ResourceGraph:
    """Dataset, optional Runtime, discovered resources, warnings and metadata.

    ``resources`` holds workload sets, storage and configuration objects in
    discovery order.  Pods only appear as ``children`` of their workload set.
    """

    dataset: DatasetSnapshot
    metadata: GraphMetadata
    runtime: RuntimeSnapshot | None = None
    resources: tuple[ResourceNode, ...] = ()
    warnings: tuple[MappingWarning, ...] = ()

    @property
    def healthy(self) -> bool:
        """True when no warning is at error level."""
        return not any(w.level == WarningLevel.ERROR for w in self.warnings)

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)

    def resources_by_kind(self, kind: ResourceKind) -> list[ResourceNode]:
        return [r for r in self.resources if r.kind == kind]

    def resources_by_component(self, component: ComponentType) -> list[ResourceNode]:
        return [r for r in self.resources if r.component == component]

    def by_component(self) -> dict[ComponentType, list[ResourceNode]]:
        return group_by_component(self.resources)

    def warnings_by_code(self, code: WarningCode) -> list[MappingWarning]:
        return [w for w in self.warnings if w.code == code]

    def summary(self) -> str:
        if self.runtime is None:
            return f"Dataset: {self.dataset.name} (No Runtime)"
        return f"Dataset: {self.dataset.name} → {self.runtime.type.value} Runtime"

    def without_timing(self) -> ResourceGraph:
        """Copy with the timing fields zeroed, for comparing two runs."""
        return replace(self, metadata=replace(self.metadata, mapped_at=_EPOCH, duration_ms=0.0))

    def to_dict(self) -> dict[str, Any]:
        now = self.metadata.mapped_at
        data: dict[str, Any] = {"dataset": self.dataset.to_dict()}
        if self.runtime is not None:
            data["runtime"] = self.runtime.to_dict()
        data["resources"] = [r.to_dict(now) for r in self.resources]
        data["warnings"] = [w.to_dict() for w in self.warnings]
        data["metadata"] = self.metadata.to_dict()
        return data


def group_by_component(resources: Iterable[ResourceNode]) -> dict[ComponentType, list[ResourceNode]]:
    """Group *resources* in COMPONENT_ORDER; empty groups are left out."""
    groups: dict[ComponentType, list[ResourceNode]] = {c: [] for c in COMPONENT_ORDER}
    for resource in resources:
        groups[resource.component].append(resource)
    return {c: nodes for c, nodes in groups.items() if nodes}


def format_age(delta: timedelta) -> str:
    """Render a timedelta the way kubectl does (``42s``, ``5m``, ``3h``, ``2d``)."""
    seconds = max(int(delta.total_seconds()), 0)
    if seconds < 60:
        return f"{seconds}s"
    if seconds < 3600:
        return f"{seconds // 60}m"
    if seconds < 86400:
        return f"{seconds // 3600}h"
    return f"{seconds // 86400}d"


def _compact(data: dict[str, Any], keep: tuple[str, ...] = ()) -> dict[str, Any]:
    # Drop empty optional fields; keys in *keep* are always emitted.
    return {k: v for k, v in data.items() if k in keep or v not in ("", None, [], {})}
