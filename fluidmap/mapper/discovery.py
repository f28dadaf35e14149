"""Label-based discovery of the Kubernetes objects behind a Dataset.

Every object carrying ``release=<dataset name>`` is a candidate.  Categories
are fetched concurrently under a single deadline; each writes into its own
bucket and the buckets are merged in a fixed order afterwards, so the result
never depends on which fetch finished first.

A failed or timed-out fetch becomes a ``warning``-level MappingWarning with a
category-specific code.  Whatever the other categories gathered is kept.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from fluidmap.k8s.client import Obj, QueryClient
from fluidmap.k8s.errors import QueryError
from fluidmap.mapper.accessors import (
    get_datetime,
    get_int,
    get_map,
    get_maps,
    get_optional_int,
    get_str,
    get_str_map,
)
from fluidmap.mapper.conventions import DEFAULT_CONVENTIONS, Conventions, release_selector
from fluidmap.models.graph import (
    ComponentType,
    MappingWarning,
    OwnerInfo,
    ResourceKind,
    ResourceNode,
    ResourcePhase,
    ResourceStatus,
    RuntimeType,
    WarningCode,
    WarningLevel,
)
from fluidmap.observability.logging import get_logger
from fluidmap.observability.metrics import discovery_failures_total

_log = get_logger("discovery")

# Which workload kinds may own pods.
_WORKLOAD_KINDS = (ResourceKind.STATEFUL_SET, ResourceKind.DAEMON_SET)

_POD_PHASES = {
    "Pending": ResourcePhase.PENDING,
    "Failed": ResourcePhase.FAILED,
    "Unknown": ResourcePhase.UNKNOWN,
    "Succeeded": ResourcePhase.NOT_READY,
}

_VOLUME_PHASES = {
    "Bound": ResourcePhase.BOUND,
    "Available": ResourcePhase.NOT_BOUND,
    "Released": ResourcePhase.NOT_BOUND,
    "Failed": ResourcePhase.FAILED,
    "Pending": ResourcePhase.PENDING,
}

_FAILURE_TEXT = {
    WarningCode.STS_LIST_FAILED: "Failed to list StatefulSets",
    WarningCode.DS_LIST_FAILED: "Failed to list DaemonSets",
    WarningCode.POD_LIST_FAILED: "Failed to list Pods",
    WarningCode.PVC_LIST_FAILED: "Failed to list PVCs",
    WarningCode.PV_GET_FAILED: "Failed to get PersistentVolume",
    WarningCode.CM_LIST_FAILED: "Failed to list ConfigMaps",
    WarningCode.SECRET_LIST_FAILED: "Failed to list Secrets",
}

NodeKey = tuple[ResourceKind, str]


@dataclass(frozen=True)
class DiscoveryOptions:
    """Which optional categories to fetch."""

    include_pods: bool = True
    include_configs: bool = True
    include_storage: bool = True


@dataclass(frozen=True)
class DiscoveryResult:
    """Top-level nodes in category order, pod children keyed by parent, and warnings.

    Children are not attached to ``nodes`` here; the graph builder does that.
    """

    nodes: tuple[ResourceNode, ...] = ()
    children: Mapping[NodeKey, tuple[ResourceNode, ...]] = field(default_factory=dict)
    warnings: tuple[MappingWarning, ...] = ()


class _Bucket:
    """Output slot of one category.

    ``pending`` lists the failure codes, with the object they concern, of the
    steps not yet settled; when the deadline cancels the category, each of
    them is reported.
    """

    def __init__(self, category: str, *codes: WarningCode) -> None:
        self.category = category
        self.nodes: list[ResourceNode] = []
        self.pod_owners: list[tuple[ResourceNode, list[dict[str, Any]]]] = []
        self.warnings: list[MappingWarning] = []
        self.pending: list[tuple[WarningCode, str]] = [(code, "") for code in codes]

    def settle(self, code: WarningCode, resource: str = "") -> None:
        self.pending.remove((code, resource))

    def fail(self, code: WarningCode, detail: str, resource: str = "") -> None:
        self.warnings.append(failure_warning(code, detail, resource))
        discovery_failures_total.labels(category=self.category).inc()
        _log.warning("discovery_category_failed", category=self.category, code=code.value, error=detail)


def failure_warning(code: WarningCode, detail: str, resource: str = "") -> MappingWarning:
    return MappingWarning(
        level=WarningLevel.WARNING,
        code=code,
        message=f"{_FAILURE_TEXT[code]}: {detail}",
        resource=resource,
    )


class Discovery:
    """Fetches and classifies every object labelled with a Dataset's release.

    Args:
        client:      Query Interface to read from.
        conventions: Label and role tables; the defaults match Fluid's charts.
    """

    def __init__(self, client: QueryClient, conventions: Conventions = DEFAULT_CONVENTIONS) -> None:
        self._client = client
        self._conventions = conventions

    async def discover(
        self,
        name: str,
        namespace: str,
        runtime_type: RuntimeType | None,
        options: DiscoveryOptions = DiscoveryOptions(),
        timeout: float | None = None,
    ) -> DiscoveryResult:
        """Discover the objects released under *name* in *namespace*.

        *runtime_type* narrows role classification; None (no runtime resolved)
        accepts every known runtime's roles.  *timeout* bounds the whole call.
        """
        selector = release_selector(name)
        steps: list[tuple[_Bucket, Callable[[_Bucket], Awaitable[None]]]] = []

        sts = _Bucket("statefulsets", WarningCode.STS_LIST_FAILED)
        steps.append((sts, lambda b: self._workloads(b, namespace, selector, runtime_type, ResourceKind.STATEFUL_SET)))
        ds = _Bucket("daemonsets", WarningCode.DS_LIST_FAILED)
        steps.append((ds, lambda b: self._workloads(b, namespace, selector, runtime_type, ResourceKind.DAEMON_SET)))

        pods: _Bucket | None = None
        if options.include_pods:
            pods = _Bucket("pods", WarningCode.POD_LIST_FAILED)
            steps.append((pods, lambda b: self._pods(b, namespace, selector, runtime_type)))
        if options.include_storage:
            steps.append((_Bucket("storage", WarningCode.PVC_LIST_FAILED), lambda b: self._storage(b, namespace, selector)))
        if options.include_configs:
            configs = _Bucket("configs", WarningCode.CM_LIST_FAILED, WarningCode.SECRET_LIST_FAILED)
            steps.append((configs, lambda b: self._configs(b, namespace, selector)))

        tasks = {asyncio.create_task(step(bucket), name=f"discover-{bucket.category}"): bucket for bucket, step in steps}
        done, still_pending = await asyncio.wait(tasks, timeout=timeout)
        for task in still_pending:
            task.cancel()
        if still_pending:
            await asyncio.gather(*still_pending, return_exceptions=True)
        for task in done:
            task.result()  # programming errors propagate; QueryError never reaches here
        for task in still_pending:
            bucket = tasks[task]
            for code, resource in list(bucket.pending):
                bucket.fail(code, f"timed out after {timeout:g}s", resource=resource)

        buckets = [bucket for bucket, _ in steps]
        nodes = [node for bucket in buckets for node in bucket.nodes]
        warnings = [w for bucket in buckets for w in bucket.warnings]
        children = attribute_pods(nodes, pods.pod_owners if pods else [])

        _log.debug(
            "discovery_complete",
            release=name,
            namespace=namespace,
            resources=len(nodes),
            pods=sum(len(c) for c in children.values()),
            warnings=len(warnings),
        )
        return DiscoveryResult(nodes=tuple(nodes), children=children, warnings=tuple(warnings))

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    async def _workloads(
        self,
        bucket: _Bucket,
        namespace: str,
        selector: str,
        runtime_type: RuntimeType | None,
        kind: ResourceKind,
    ) -> None:
        code, _ = bucket.pending[0]
        try:
            if kind == ResourceKind.STATEFUL_SET:
                objs = await self._client.list_stateful_sets(namespace, selector)
            else:
                objs = await self._client.list_daemon_sets(namespace, selector)
        except QueryError as exc:
            bucket.fail(code, str(exc))
        else:
            build = stateful_set_node if kind == ResourceKind.STATEFUL_SET else daemon_set_node
            bucket.nodes.extend(build(obj, runtime_type, self._conventions) for obj in objs)
        bucket.settle(code)

    async def _pods(self, bucket: _Bucket, namespace: str, selector: str, runtime_type: RuntimeType | None) -> None:
        try:
            objs = await self._client.list_pods(namespace, selector)
        except QueryError as exc:
            bucket.fail(WarningCode.POD_LIST_FAILED, str(exc))
        else:
            bucket.pod_owners.extend(
                (pod_node(obj, runtime_type, self._conventions), get_maps(obj, "metadata", "ownerReferences"))
                for obj in objs
            )
        bucket.settle(WarningCode.POD_LIST_FAILED)

    async def _storage(self, bucket: _Bucket, namespace: str, selector: str) -> None:
        try:
            claims = await self._client.list_persistent_volume_claims(namespace, selector)
        except QueryError as exc:
            bucket.fail(WarningCode.PVC_LIST_FAILED, str(exc))
            bucket.settle(WarningCode.PVC_LIST_FAILED)
            return
        bucket.settle(WarningCode.PVC_LIST_FAILED)

        for obj in claims:
            claim = claim_node(obj, self._conventions)
            bucket.nodes.append(claim)
            volume_name = get_str(obj, "spec", "volumeName")
            if not volume_name:
                continue
            bucket.pending.append((WarningCode.PV_GET_FAILED, volume_name))
            try:
                volume = await self._client.get_persistent_volume(volume_name)
            except QueryError as exc:
                bucket.fail(WarningCode.PV_GET_FAILED, str(exc), resource=volume_name)
            else:
                bucket.nodes.append(volume_node(volume, claim, self._conventions))
            bucket.settle(WarningCode.PV_GET_FAILED, volume_name)

    async def _configs(self, bucket: _Bucket, namespace: str, selector: str) -> None:
        try:
            config_maps = await self._client.list_config_maps(namespace, selector)
        except QueryError as exc:
            bucket.fail(WarningCode.CM_LIST_FAILED, str(exc))
        else:
            bucket.nodes.extend(config_map_node(obj, self._conventions) for obj in config_maps)
        bucket.settle(WarningCode.CM_LIST_FAILED)

        try:
            secrets = await self._client.list_secrets(namespace, selector)
        except QueryError as exc:
            bucket.fail(WarningCode.SECRET_LIST_FAILED, str(exc))
        else:
            bucket.nodes.extend(secret_node(obj, self._conventions) for obj in secrets)
        bucket.settle(WarningCode.SECRET_LIST_FAILED)


# ---------------------------------------------------------------------------
# Pod attribution
# ---------------------------------------------------------------------------


def attribute_pods(
    nodes: list[ResourceNode],
    pods: list[tuple[ResourceNode, list[dict[str, Any]]]],
) -> dict[NodeKey, tuple[ResourceNode, ...]]:
    """Assign each pod to at most one workload set.

    An owner reference matching a workload's kind and name wins.  Otherwise
    the workload with the longest ``<name>-`` prefix of the pod name is used,
    so ``demo-worker-0`` is never mistaken for a child of ``demo``.
    """
    workloads = [n for n in nodes if n.kind in _WORKLOAD_KINDS]
    by_key = {(n.kind.value, n.name) for n in workloads}
    grouped: dict[NodeKey, list[ResourceNode]] = {}

    for pod, owner_refs in pods:
        parent: NodeKey | None = None
        for ref in owner_refs:
            key = (get_str(ref, "kind"), get_str(ref, "name"))
            if key in by_key:
                parent = (ResourceKind(key[0]), key[1])
                break
        if parent is None:
            prefixed = [w for w in workloads if pod.name.startswith(f"{w.name}-")]
            if prefixed:
                best = max(prefixed, key=lambda w: len(w.name))
                parent = (best.kind, best.name)
        if parent is not None:
            grouped.setdefault(parent, []).append(pod)

    return {key: tuple(children) for key, children in grouped.items()}


# ---------------------------------------------------------------------------
# Node builders
# ---------------------------------------------------------------------------


def _owner(obj: Obj) -> OwnerInfo | None:
    refs = get_maps(obj, "metadata", "ownerReferences")
    if not refs:
        return None
    ref = next((r for r in refs if r.get("controller") is True), refs[0])
    return OwnerInfo(kind=get_str(ref, "kind"), name=get_str(ref, "name"), uid=get_str(ref, "uid"))


def _node(
    obj: Obj,
    kind: ResourceKind,
    component: ComponentType,
    status: ResourceStatus,
    conventions: Conventions,
    *,
    owner: OwnerInfo | None = None,
    details: dict[str, str] | None = None,
    namespaced: bool = True,
) -> ResourceNode:
    return ResourceNode(
        kind=kind,
        api_version=get_str(obj, "apiVersion") or ("apps/v1" if kind in _WORKLOAD_KINDS else "v1"),
        name=get_str(obj, "metadata", "name"),
        namespace=get_str(obj, "metadata", "namespace") if namespaced else None,
        component=component,
        status=status,
        owner=owner if owner is not None else _owner(obj),
        labels=conventions.filter_labels(get_str_map(obj, "metadata", "labels")),
        details=details or {},
    )


def stateful_set_node(obj: Obj, runtime_type: RuntimeType | None, conventions: Conventions) -> ResourceNode:
    desired = get_optional_int(obj, "spec", "replicas")
    desired = 1 if desired is None else desired
    ready = get_int(obj, "status", "readyReplicas")
    return _node(
        obj,
        ResourceKind.STATEFUL_SET,
        conventions.classify_role(get_str_map(obj, "metadata", "labels"), runtime_type),
        ResourceStatus(
            phase=ResourcePhase.READY if ready >= desired else ResourcePhase.NOT_READY,
            ready=f"{ready}/{desired}",
            created_at=get_datetime(obj, "metadata", "creationTimestamp"),
        ),
        conventions,
    )


def daemon_set_node(obj: Obj, runtime_type: RuntimeType | None, conventions: Conventions) -> ResourceNode:
    desired = get_int(obj, "status", "desiredNumberScheduled")
    ready = get_int(obj, "status", "numberReady")
    return _node(
        obj,
        ResourceKind.DAEMON_SET,
        conventions.classify_role(get_str_map(obj, "metadata", "labels"), runtime_type),
        ResourceStatus(
            phase=ResourcePhase.READY if ready >= desired else ResourcePhase.NOT_READY,
            ready=f"{ready}/{desired}",
            created_at=get_datetime(obj, "metadata", "creationTimestamp"),
        ),
        conventions,
    )


def pod_phase(obj: Obj) -> tuple[ResourcePhase, str]:
    """Normalised phase and ``ready/total`` container count of a pod."""
    containers = get_maps(obj, "status", "containerStatuses")
    ready = sum(1 for c in containers if c.get("ready") is True)
    counts = f"{ready}/{len(containers)}" if containers else ""
    raw = get_str(obj, "status", "phase")
    if raw == "Running":
        all_ready = bool(containers) and ready == len(containers)
        return (ResourcePhase.READY if all_ready else ResourcePhase.NOT_READY), counts
    return _POD_PHASES.get(raw, ResourcePhase.UNKNOWN), counts


def pod_node(obj: Obj, runtime_type: RuntimeType | None, conventions: Conventions) -> ResourceNode:
    phase, ready = pod_phase(obj)
    return _node(
        obj,
        ResourceKind.POD,
        conventions.classify_role(get_str_map(obj, "metadata", "labels"), runtime_type),
        ResourceStatus(
            phase=phase,
            ready=ready,
            message=get_str(obj, "status", "phase"),
            created_at=get_datetime(obj, "metadata", "creationTimestamp"),
        ),
        conventions,
    )


def claim_node(obj: Obj, conventions: Conventions) -> ResourceNode:
    details = {}
    if volume_name := get_str(obj, "spec", "volumeName"):
        details["volumeName"] = volume_name
    if capacity := get_str(obj, "status", "capacity", "storage"):
        details["capacity"] = capacity
    bound = get_str(obj, "status", "phase") == "Bound"
    return _node(
        obj,
        ResourceKind.PERSISTENT_VOLUME_CLAIM,
        ComponentType.STORAGE,
        ResourceStatus(
            phase=ResourcePhase.BOUND if bound else ResourcePhase.NOT_BOUND,
            created_at=get_datetime(obj, "metadata", "creationTimestamp"),
        ),
        conventions,
        details=details,
    )


def volume_node(obj: Obj, claim: ResourceNode, conventions: Conventions) -> ResourceNode:
    details = {}
    if capacity := get_str(obj, "spec", "capacity", "storage"):
        details["capacity"] = capacity
    return _node(
        obj,
        ResourceKind.PERSISTENT_VOLUME,
        ComponentType.STORAGE,
        ResourceStatus(
            phase=_VOLUME_PHASES.get(get_str(obj, "status", "phase"), ResourcePhase.UNKNOWN),
            created_at=get_datetime(obj, "metadata", "creationTimestamp"),
        ),
        conventions,
        owner=OwnerInfo(kind=ResourceKind.PERSISTENT_VOLUME_CLAIM.value, name=claim.name),
        details=details,
        namespaced=False,
    )


def config_map_node(obj: Obj, conventions: Conventions) -> ResourceNode:
    keys = len(get_map(obj, "data")) + len(get_map(obj, "binaryData"))
    return _node(
        obj,
        ResourceKind.CONFIG_MAP,
        ComponentType.CONFIG,
        ResourceStatus(phase=ResourcePhase.READY, created_at=get_datetime(obj, "metadata", "creationTimestamp")),
        conventions,
        details={"keys": str(keys)},
    )


def secret_node(obj: Obj, conventions: Conventions) -> ResourceNode:
    # Only counts leave this function; secret values are never read.
    keys = len(get_map(obj, "data")) + len(get_map(obj, "stringData"))
    return _node(
        obj,
        ResourceKind.SECRET,
        ComponentType.CONFIG,
        ResourceStatus(phase=ResourcePhase.READY, created_at=get_datetime(obj, "metadata", "creationTimestamp")),
        conventions,
        details={"type": get_str(obj, "type") or "Opaque", "keys": str(keys)},
    )
