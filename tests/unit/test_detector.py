"""Tests for the warning rules run over an assembled graph."""

from __future__ import annotations

from collections.abc import Iterator
from datetime import UTC, datetime

import pytest

from fluidmap.mapper.conventions import DEFAULT_CONVENTIONS, Conventions
from fluidmap.mapper.detector import RULES, detect
from fluidmap.models.graph import (
    ComponentType,
    DatasetSnapshot,
    GraphMetadata,
    MappingWarning,
    OwnerInfo,
    ResourceGraph,
    ResourceKind,
    ResourceNode,
    ResourcePhase,
    ResourceStatus,
    RuntimeSnapshot,
    RuntimeType,
    WarningCode,
    WarningLevel,
)

_RUNTIME_OWNER = OwnerInfo(kind="AlluxioRuntime", name="demo", uid="u1")


def _node(
    name: str,
    kind: ResourceKind = ResourceKind.STATEFUL_SET,
    component: ComponentType = ComponentType.UNKNOWN,
    phase: ResourcePhase = ResourcePhase.READY,
    ready: str = "",
    owner: OwnerInfo | None = _RUNTIME_OWNER,
    labels: dict[str, str] | None = None,
    children: tuple[ResourceNode, ...] = (),
) -> ResourceNode:
    return ResourceNode(
        kind=kind,
        name=name,
        namespace="fluid",
        component=component,
        status=ResourceStatus(phase=phase, ready=ready),
        owner=owner,
        labels={"release": "demo"} if labels is None else labels,
        children=children,
    )


def _runtime(runtime_type: RuntimeType = RuntimeType.ALLUXIO) -> RuntimeSnapshot:
    return RuntimeSnapshot(name="demo", namespace="fluid", type=runtime_type)


def _graph(*resources: ResourceNode, runtime: RuntimeSnapshot | None = None) -> ResourceGraph:
    return ResourceGraph(
        dataset=DatasetSnapshot(name="demo", namespace="fluid", phase="Bound"),
        runtime=runtime,
        resources=resources,
        metadata=GraphMetadata(mapped_at=datetime(2026, 2, 18, tzinfo=UTC)),
    )


def _full_stack() -> tuple[ResourceNode, ...]:
    return (
        _node("demo-master", component=ComponentType.MASTER, ready="1/1"),
        _node("demo-worker", component=ComponentType.WORKER, ready="2/2"),
        _node("demo-fuse", ResourceKind.DAEMON_SET, ComponentType.FUSE, ready="3/3"),
    )


def _codes(warnings: list[MappingWarning]) -> list[WarningCode]:
    return [w.code for w in warnings]


# ---------------------------------------------------------------------------
# Missing components
# ---------------------------------------------------------------------------


class TestMissingComponents:
    def test_complete_stack_is_clean(self) -> None:
        rt = _runtime()
        assert detect(_graph(*_full_stack(), runtime=rt), rt) == []

    def test_master_missing_is_error_with_expected_name(self) -> None:
        rt = _runtime()
        warnings = detect(_graph(*_full_stack()[1:], runtime=rt), rt)
        assert _codes(warnings) == [WarningCode.MASTER_MISSING]
        assert warnings[0].level == WarningLevel.ERROR
        assert warnings[0].resource == "demo-master"
        assert "expected demo-master" in warnings[0].message

    def test_fuse_missing_is_warning(self) -> None:
        rt = _runtime()
        warnings = detect(_graph(*_full_stack()[:2], runtime=rt), rt)
        assert _codes(warnings) == [WarningCode.FUSE_MISSING]
        assert warnings[0].level == WarningLevel.WARNING
        assert warnings[0].resource == "demo-fuse"

    def test_thin_runtime_expects_only_fuse(self) -> None:
        rt = _runtime(RuntimeType.THIN)
        assert _codes(detect(_graph(runtime=rt), rt)) == [WarningCode.FUSE_MISSING]

    def test_juicefs_runtime_has_no_master(self) -> None:
        rt = _runtime(RuntimeType.JUICEFS)
        assert _codes(detect(_graph(runtime=rt), rt)) == [WarningCode.WORKER_MISSING, WarningCode.FUSE_MISSING]

    def test_unknown_type_expects_full_stack(self) -> None:
        rt = _runtime(RuntimeType.UNKNOWN)
        assert _codes(detect(_graph(runtime=rt), rt)) == [
            WarningCode.MASTER_MISSING,
            WarningCode.WORKER_MISSING,
            WarningCode.FUSE_MISSING,
        ]

    def test_no_runtime_expects_nothing(self) -> None:
        assert detect(_graph(), None) == []

    def test_presence_is_by_component_not_kind(self) -> None:
        rt = _runtime()
        master_pod = _node("demo-master-0", ResourceKind.POD, ComponentType.MASTER)
        warnings = detect(_graph(master_pod, *_full_stack()[1:], runtime=rt), rt)
        assert WarningCode.MASTER_MISSING not in _codes(warnings)


# ---------------------------------------------------------------------------
# Readiness
# ---------------------------------------------------------------------------


class TestPodsNotReady:
    @pytest.mark.parametrize("phase", [ResourcePhase.NOT_READY, ResourcePhase.FAILED])
    def test_not_ready_workload(self, phase: ResourcePhase) -> None:
        worker = _node("demo-worker", component=ComponentType.WORKER, phase=phase, ready="1/2")
        warnings = detect(_graph(worker))
        assert _codes(warnings) == [WarningCode.PODS_NOT_READY]
        assert warnings[0].level == WarningLevel.WARNING
        assert warnings[0].message == "StatefulSet demo-worker is not ready (1/2)"

    def test_message_falls_back_to_phase(self) -> None:
        pod = _node("demo-worker-0", ResourceKind.POD, phase=ResourcePhase.FAILED)
        assert detect(_graph(pod))[0].message == "Pod demo-worker-0 is not ready (Failed)"

    @pytest.mark.parametrize("phase", [ResourcePhase.PENDING, ResourcePhase.UNKNOWN, ResourcePhase.READY])
    def test_other_phases_are_not_flagged(self, phase: ResourcePhase) -> None:
        assert detect(_graph(_node("demo-worker", phase=phase))) == []

    def test_children_are_not_inspected(self) -> None:
        failed_pod = _node("demo-worker-0", ResourceKind.POD, phase=ResourcePhase.FAILED)
        worker = _node("demo-worker", component=ComponentType.WORKER, ready="2/2", children=(failed_pod,))
        assert detect(_graph(worker)) == []


# ---------------------------------------------------------------------------
# Orphans
# ---------------------------------------------------------------------------


class TestOrphanedResources:
    def test_workload_without_owner(self) -> None:
        warnings = detect(_graph(_node("demo-worker", owner=None)))
        assert _codes(warnings) == [WarningCode.ORPHANED_RESOURCE]
        assert warnings[0].message == "StatefulSet demo-worker carries release=demo but has no owner reference"

    def test_workload_with_foreign_owner(self) -> None:
        owner = OwnerInfo(kind="Deployment", name="someone-else")
        warnings = detect(_graph(_node("demo-fuse", ResourceKind.DAEMON_SET, owner=owner)))
        assert warnings[0].message.endswith("but owned by Deployment someone-else")

    def test_workload_owned_by_dataset_is_orphaned(self) -> None:
        owner = OwnerInfo(kind="Dataset", name="demo")
        warnings = detect(_graph(_node("demo-worker", owner=owner)))
        assert _codes(warnings) == [WarningCode.ORPHANED_RESOURCE]
        assert warnings[0].message.endswith("but owned by Dataset demo")

    @pytest.mark.parametrize("kind", [ResourceKind.CONFIG_MAP, ResourceKind.PERSISTENT_VOLUME_CLAIM])
    def test_config_and_claims_owned_by_dataset_are_normal(self, kind: ResourceKind) -> None:
        owner = OwnerInfo(kind="Dataset", name="demo")
        node = _node("demo", kind, phase=ResourcePhase.BOUND, owner=owner)
        assert detect(_graph(node)) == []

    def test_unlabelled_workload_is_ignored(self) -> None:
        assert detect(_graph(_node("demo-worker", owner=None, labels={}))) == []

    @pytest.mark.parametrize("kind", [ResourceKind.CONFIG_MAP, ResourceKind.SECRET, ResourceKind.PERSISTENT_VOLUME_CLAIM])
    def test_unowned_config_and_claims_are_normal(self, kind: ResourceKind) -> None:
        node = _node("demo", kind, phase=ResourcePhase.BOUND, owner=None)
        assert detect(_graph(node)) == []

    def test_config_with_foreign_owner_is_flagged(self) -> None:
        owner = OwnerInfo(kind="HelmRelease", name="demo")
        warnings = detect(_graph(_node("demo-config", ResourceKind.CONFIG_MAP, owner=owner)))
        assert _codes(warnings) == [WarningCode.ORPHANED_RESOURCE]

    def test_volume_claim_owner_is_not_an_orphan(self) -> None:
        owner = OwnerInfo(kind="PersistentVolumeClaim", name="demo")
        node = _node("fluid-demo", ResourceKind.PERSISTENT_VOLUME, phase=ResourcePhase.BOUND, owner=owner)
        assert detect(_graph(node)) == []

    def test_custom_owner_kinds(self) -> None:
        conventions = Conventions(recognized_owner_kinds=frozenset({"Deployment"}))
        owner = OwnerInfo(kind="Deployment", name="x")
        assert detect(_graph(_node("demo-worker", owner=owner)), conventions=conventions) == []


# ---------------------------------------------------------------------------
# Claims
# ---------------------------------------------------------------------------


class TestClaimsNotBound:
    def test_unbound_claim(self) -> None:
        claim = _node("demo", ResourceKind.PERSISTENT_VOLUME_CLAIM, phase=ResourcePhase.NOT_BOUND, owner=None)
        warnings = detect(_graph(claim))
        assert _codes(warnings) == [WarningCode.PV_NOT_BOUND]
        assert warnings[0].message == "PersistentVolumeClaim demo is not bound"

    def test_unbound_volume_is_not_flagged(self) -> None:
        volume = _node("pv", ResourceKind.PERSISTENT_VOLUME, phase=ResourcePhase.NOT_BOUND, owner=None)
        assert detect(_graph(volume)) == []


# ---------------------------------------------------------------------------
# Composition
# ---------------------------------------------------------------------------


class TestComposition:
    def test_rules_run_in_table_order_without_short_circuit(self) -> None:
        rt = _runtime()
        worker = _node("demo-worker", component=ComponentType.WORKER, phase=ResourcePhase.NOT_READY, owner=None)
        claim = _node("demo", ResourceKind.PERSISTENT_VOLUME_CLAIM, phase=ResourcePhase.PENDING, owner=None)
        assert _codes(detect(_graph(worker, claim, runtime=rt), rt)) == [
            WarningCode.MASTER_MISSING,
            WarningCode.FUSE_MISSING,
            WarningCode.PODS_NOT_READY,
            WarningCode.ORPHANED_RESOURCE,
            WarningCode.PV_NOT_BOUND,
        ]

    def test_custom_rule_table(self) -> None:
        def always(
            graph: ResourceGraph, runtime: RuntimeSnapshot | None, conventions: Conventions
        ) -> Iterator[MappingWarning]:
            yield MappingWarning(level=WarningLevel.INFO, code=WarningCode.PODS_NOT_READY, message="hi")

        assert _codes(detect(_graph(), rules=(always, always))) == [WarningCode.PODS_NOT_READY] * 2

    def test_default_table_is_exported(self) -> None:
        assert len(RULES) == 6
        assert detect(_graph(), conventions=DEFAULT_CONVENTIONS) == []
