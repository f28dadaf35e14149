"""Warning detection over an assembled ResourceGraph.

Each rule is a plain function ``(graph, runtime, conventions) -> warnings``.
Rules are evaluated independently and in table order; none of them
short-circuits another.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator

from fluidmap.mapper.conventions import (
    DEFAULT_CONVENTIONS,
    LABEL_RELEASE,
    Conventions,
    fuse_daemon_set_name,
    master_stateful_set_name,
    worker_stateful_set_name,
)
from fluidmap.models.graph import (
    ComponentType,
    MappingWarning,
    ResourceGraph,
    ResourceKind,
    ResourceNode,
    ResourcePhase,
    RuntimeSnapshot,
    WarningCode,
    WarningLevel,
)

Rule = Callable[[ResourceGraph, RuntimeSnapshot | None, Conventions], Iterator[MappingWarning]]

_CONTROLLER_HINT = "Check if the runtime controller is running correctly"


def _has_component(graph: ResourceGraph, component: ComponentType) -> bool:
    return any(r.component == component for r in graph.resources)


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------


def master_missing(
    graph: ResourceGraph, runtime: RuntimeSnapshot | None, conventions: Conventions
) -> Iterator[MappingWarning]:
    if runtime is None or not runtime.components.has_master:
        return
    if not _has_component(graph, ComponentType.MASTER):
        expected = master_stateful_set_name(runtime.name)
        yield MappingWarning(
            level=WarningLevel.ERROR,
            code=WarningCode.MASTER_MISSING,
            message=f"No master StatefulSet found (expected {expected})",
            resource=expected,
            suggestion=_CONTROLLER_HINT,
        )


def worker_missing(
    graph: ResourceGraph, runtime: RuntimeSnapshot | None, conventions: Conventions
) -> Iterator[MappingWarning]:
    if runtime is None or not runtime.components.has_worker:
        return
    if not _has_component(graph, ComponentType.WORKER):
        expected = worker_stateful_set_name(runtime.name)
        yield MappingWarning(
            level=WarningLevel.ERROR,
            code=WarningCode.WORKER_MISSING,
            message=f"No worker StatefulSet found (expected {expected})",
            resource=expected,
            suggestion=_CONTROLLER_HINT,
        )


def fuse_missing(
    graph: ResourceGraph, runtime: RuntimeSnapshot | None, conventions: Conventions
) -> Iterator[MappingWarning]:
    if runtime is None or not runtime.components.has_fuse:
        return
    if not _has_component(graph, ComponentType.FUSE):
        expected = fuse_daemon_set_name(runtime.name)
        yield MappingWarning(
            level=WarningLevel.WARNING,
            code=WarningCode.FUSE_MISSING,
            message=f"No fuse DaemonSet found (expected {expected})",
            resource=expected,
            suggestion="Fuse pods are created on-demand when data is accessed",
        )


def pods_not_ready(
    graph: ResourceGraph, runtime: RuntimeSnapshot | None, conventions: Conventions
) -> Iterator[MappingWarning]:
    # Top-level resources only; a workload's pods are summarised by its ready count.
    for res in graph.resources:
        if res.status.phase in (ResourcePhase.NOT_READY, ResourcePhase.FAILED):
            state = res.status.ready or res.status.phase.value
            yield MappingWarning(
                level=WarningLevel.WARNING,
                code=WarningCode.PODS_NOT_READY,
                message=f"{res.kind.value} {res.name} is not ready ({state})",
                resource=res.name,
                suggestion=f"Inspect the pods of {res.name} with kubectl describe",
            )


def _is_orphaned(node: ResourceNode, conventions: Conventions) -> bool:
    if LABEL_RELEASE not in node.labels:
        return False
    if node.kind in (ResourceKind.STATEFUL_SET, ResourceKind.DAEMON_SET):
        return node.owner is None or node.owner.kind not in conventions.recognized_owner_kinds
    # Claims and config objects are commonly unowned; volume owners are synthetic.
    if node.owner is None or node.kind == ResourceKind.PERSISTENT_VOLUME:
        return False
    return node.owner.kind not in conventions.recognized_config_owner_kinds


def orphaned_resources(
    graph: ResourceGraph, runtime: RuntimeSnapshot | None, conventions: Conventions
) -> Iterator[MappingWarning]:
    for res in graph.resources:
        if not _is_orphaned(res, conventions):
            continue
        owner = f"owned by {res.owner.kind} {res.owner.name}" if res.owner else "has no owner reference"
        yield MappingWarning(
            level=WarningLevel.WARNING,
            code=WarningCode.ORPHANED_RESOURCE,
            message=f"{res.kind.value} {res.name} carries release={res.labels[LABEL_RELEASE]} but {owner}",
            resource=res.name,
            suggestion="Delete the leftover object or restore its owner reference to the Runtime",
        )


def claims_not_bound(
    graph: ResourceGraph, runtime: RuntimeSnapshot | None, conventions: Conventions
) -> Iterator[MappingWarning]:
    for res in graph.resources_by_kind(ResourceKind.PERSISTENT_VOLUME_CLAIM):
        if res.status.phase != ResourcePhase.BOUND:
            yield MappingWarning(
                level=WarningLevel.WARNING,
                code=WarningCode.PV_NOT_BOUND,
                message=f"PersistentVolumeClaim {res.name} is not bound",
                resource=res.name,
                suggestion="Check that a matching PersistentVolume exists and is Available",
            )


RULES: tuple[Rule, ...] = (
    master_missing,
    worker_missing,
    fuse_missing,
    pods_not_ready,
    orphaned_resources,
    claims_not_bound,
)


def detect(
    graph: ResourceGraph,
    runtime: RuntimeSnapshot | None = None,
    conventions: Conventions = DEFAULT_CONVENTIONS,
    rules: tuple[Rule, ...] = RULES,
) -> list[MappingWarning]:
    """Run every rule against *graph* and collect their warnings in table order."""
    return [warning for rule in rules for warning in rule(graph, runtime, conventions)]
