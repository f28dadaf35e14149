"""Tests for pure graph assembly."""

from __future__ import annotations

from datetime import UTC, datetime

from fluidmap.mapper.discovery import DiscoveryResult
from fluidmap.mapper.graph_builder import assemble, attach_children
from fluidmap.models.graph import (
    ComponentType,
    DatasetSnapshot,
    GraphMetadata,
    MappingWarning,
    ResourceKind,
    ResourceNode,
    ResourcePhase,
    ResourceStatus,
    WarningCode,
    WarningLevel,
)

_META = GraphMetadata(mapped_at=datetime(2026, 2, 18, tzinfo=UTC))
_DATASET = DatasetSnapshot(name="demo", namespace="fluid", phase="Bound")


def _node(name: str, kind: ResourceKind = ResourceKind.STATEFUL_SET) -> ResourceNode:
    return ResourceNode(
        kind=kind,
        name=name,
        namespace="fluid",
        component=ComponentType.WORKER,
        status=ResourceStatus(phase=ResourcePhase.READY),
    )


def _warning(code: WarningCode) -> MappingWarning:
    return MappingWarning(level=WarningLevel.WARNING, code=code, message=code.value)


class TestAttachChildren:
    def test_pods_attached_by_kind_and_name(self) -> None:
        sts = _node("demo-worker")
        ds = _node("demo-worker", ResourceKind.DAEMON_SET)
        pod = _node("demo-worker-0", ResourceKind.POD)
        attached = attach_children([sts, ds], {(ResourceKind.STATEFUL_SET, "demo-worker"): (pod,)})
        assert attached[0].children == (pod,)
        assert attached[1].children == ()

    def test_nodes_without_children_are_unchanged(self) -> None:
        node = _node("demo-master")
        assert attach_children([node], {})[0] is node


class TestAssemble:
    def test_order_and_warning_precedence(self) -> None:
        discovered = DiscoveryResult(
            nodes=(_node("b"), _node("a")),
            warnings=(_warning(WarningCode.DS_LIST_FAILED),),
        )
        graph = assemble(_DATASET, None, discovered, [_warning(WarningCode.RUNTIME_NOT_BOUND)], _META)
        assert [r.name for r in graph.resources] == ["b", "a"]
        assert [w.code for w in graph.warnings] == [WarningCode.RUNTIME_NOT_BOUND, WarningCode.DS_LIST_FAILED]
        assert graph.runtime is None
        assert graph.metadata is _META

    def test_pods_are_not_top_level(self) -> None:
        pod = _node("a-0", ResourceKind.POD)
        discovered = DiscoveryResult(nodes=(_node("a"),), children={(ResourceKind.STATEFUL_SET, "a"): (pod,)})
        graph = assemble(_DATASET, None, discovered, [], _META)
        assert len(graph.resources) == 1
        assert graph.resources[0].children == (pod,)
