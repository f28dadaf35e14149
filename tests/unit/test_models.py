"""Tests for the ResourceGraph data model and its JSON contract."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from hypothesis import given
from hypothesis import strategies as st

from fluidmap.models.graph import (
    ComponentType,
    DatasetSnapshot,
    GraphMetadata,
    MappingWarning,
    ResourceGraph,
    ResourceKind,
    ResourceNode,
    ResourcePhase,
    ResourceStatus,
    RuntimeSnapshot,
    RuntimeType,
    WarningCode,
    WarningLevel,
    format_age,
    runtime_components,
)

_TS = datetime(2026, 2, 18, 12, 0, 0, tzinfo=UTC)


def _graph(**kwargs: object) -> ResourceGraph:
    defaults: dict[str, object] = {
        "dataset": DatasetSnapshot(name="demo", namespace="default", phase="Bound"),
        "metadata": GraphMetadata(mapped_at=_TS, duration_ms=1.5, cluster_name="test-cluster"),
    }
    defaults.update(kwargs)
    return ResourceGraph(**defaults)  # type: ignore[arg-type]


def _node(name: str, component: ComponentType, created_at: datetime | None = None) -> ResourceNode:
    return ResourceNode(
        kind=ResourceKind.STATEFUL_SET,
        api_version="apps/v1",
        name=name,
        namespace="default",
        component=component,
        status=ResourceStatus(phase=ResourcePhase.READY, ready="1/1", created_at=created_at),
    )


# ---------------------------------------------------------------------------
# Runtime component matrix
# ---------------------------------------------------------------------------


class TestRuntimeComponents:
    @pytest.mark.parametrize(
        "runtime_type",
        [RuntimeType.ALLUXIO, RuntimeType.JINDO, RuntimeType.GOOSEFS, RuntimeType.VINEYARD, RuntimeType.EFC],
    )
    def test_full_stack_engines(self, runtime_type: RuntimeType) -> None:
        c = runtime_components(runtime_type)
        assert (c.has_master, c.has_worker, c.has_fuse) == (True, True, True)

    def test_juicefs_has_no_master(self) -> None:
        c = runtime_components(RuntimeType.JUICEFS)
        assert (c.has_master, c.has_worker, c.has_fuse) == (False, True, True)

    def test_thin_is_fuse_only(self) -> None:
        c = runtime_components(RuntimeType.THIN)
        assert (c.has_master, c.has_worker, c.has_fuse) == (False, False, True)

    def test_unknown_defaults_to_full_stack(self) -> None:
        c = runtime_components(RuntimeType.UNKNOWN)
        assert (c.has_master, c.has_worker, c.has_fuse) == (True, True, True)

    def test_runtime_snapshot_exposes_components(self) -> None:
        rt = RuntimeSnapshot(name="demo", namespace="default", type=RuntimeType.THIN)
        assert rt.components == runtime_components(RuntimeType.THIN)


# ---------------------------------------------------------------------------
# Health predicate
# ---------------------------------------------------------------------------


@given(levels=st.lists(st.sampled_from(list(WarningLevel)), max_size=8))
def test_healthy_iff_no_error_warning(levels: list[WarningLevel]) -> None:
    warnings = tuple(MappingWarning(level=lv, code=WarningCode.PODS_NOT_READY, message="x") for lv in levels)
    graph = _graph(warnings=warnings)
    assert graph.healthy == (WarningLevel.ERROR not in levels)
    assert graph.has_warnings == bool(levels)


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


class TestQueries:
    def test_by_component_follows_presentation_order(self) -> None:
        graph = _graph(
            resources=(
                _node("c", ComponentType.CONFIG),
                _node("w", ComponentType.WORKER),
                _node("m", ComponentType.MASTER),
                _node("w2", ComponentType.WORKER),
            )
        )
        groups = graph.by_component()
        assert list(groups) == [ComponentType.MASTER, ComponentType.WORKER, ComponentType.CONFIG]
        assert [n.name for n in groups[ComponentType.WORKER]] == ["w", "w2"]

    def test_resources_by_kind_and_component(self) -> None:
        graph = _graph(resources=(_node("m", ComponentType.MASTER), _node("w", ComponentType.WORKER)))
        assert len(graph.resources_by_kind(ResourceKind.STATEFUL_SET)) == 2
        assert [n.name for n in graph.resources_by_component(ComponentType.WORKER)] == ["w"]
        assert graph.resources_by_kind(ResourceKind.POD) == []

    def test_summary(self) -> None:
        assert _graph().summary() == "Dataset: demo (No Runtime)"
        rt = RuntimeSnapshot(name="demo", namespace="default", type=RuntimeType.ALLUXIO)
        assert _graph(runtime=rt).summary() == "Dataset: demo → alluxio Runtime"


# ---------------------------------------------------------------------------
# JSON contract
# ---------------------------------------------------------------------------


class TestToDict:
    def test_runtime_omitted_when_absent_lists_always_present(self) -> None:
        data = _graph().to_dict()
        assert "runtime" not in data
        assert data["resources"] == []
        assert data["warnings"] == []
        assert data["metadata"]["version"] == "1.0.0"
        assert data["metadata"]["clusterName"] == "test-cluster"
        assert "mockMode" not in data["metadata"]

    def test_empty_optional_fields_omitted(self) -> None:
        data = _graph().to_dict()
        assert data["dataset"] == {"name": "demo", "namespace": "default", "phase": "Bound"}

    def test_resource_age_is_relative_to_mapped_at(self) -> None:
        graph = _graph(resources=(_node("m", ComponentType.MASTER, created_at=_TS - timedelta(hours=3)),))
        resource = graph.to_dict()["resources"][0]
        assert resource["status"] == {
            "phase": "Ready",
            "ready": "1/1",
            "age": "3h",
            "createdAt": "2026-02-18T09:00:00+00:00",
        }
        assert resource["apiVersion"] == "apps/v1"
        assert "children" not in resource
        assert "owner" not in resource

    def test_warning_fields_camel_case_and_compact(self) -> None:
        w = MappingWarning(level=WarningLevel.ERROR, code=WarningCode.MASTER_MISSING, message="gone")
        assert w.to_dict() == {"level": "error", "code": "MASTER_MISSING", "message": "gone"}

    def test_runtime_fields(self) -> None:
        rt = RuntimeSnapshot(
            name="demo", namespace="default", type=RuntimeType.ALLUXIO, master_phase="Ready", master_ready="1/1"
        )
        assert _graph(runtime=rt).to_dict()["runtime"] == {
            "name": "demo",
            "namespace": "default",
            "type": "alluxio",
            "masterPhase": "Ready",
            "masterReady": "1/1",
        }


# ---------------------------------------------------------------------------
# Timing
# ---------------------------------------------------------------------------


class TestTiming:
    def test_without_timing_ignores_mapped_at_and_duration(self) -> None:
        a = _graph(metadata=GraphMetadata(mapped_at=_TS, duration_ms=3.0))
        b = _graph(metadata=GraphMetadata(mapped_at=_TS + timedelta(seconds=5), duration_ms=9.0))
        assert a != b
        assert a.without_timing() == b.without_timing()

    def test_without_timing_keeps_other_metadata(self) -> None:
        g = _graph(metadata=GraphMetadata(mapped_at=_TS, cluster_name="c", mock_mode=True))
        assert g.without_timing().metadata.cluster_name == "c"
        assert g.without_timing().metadata.mock_mode is True

    @pytest.mark.parametrize(
        ("delta", "expected"),
        [
            (timedelta(seconds=42), "42s"),
            (timedelta(minutes=5, seconds=59), "5m"),
            (timedelta(hours=3), "3h"),
            (timedelta(days=2, hours=23), "2d"),
            (timedelta(seconds=-10), "0s"),
        ],
    )
    def test_format_age(self, delta: timedelta, expected: str) -> None:
        assert format_age(delta) == expected

    def test_age_unknown_without_creation_time(self) -> None:
        assert ResourceStatus(phase=ResourcePhase.READY).age(_TS) == ""


# ---------------------------------------------------------------------------
# Node immutability
# ---------------------------------------------------------------------------


class TestResourceNodeImmutability:
    def test_labels_and_details_are_read_only(self) -> None:
        labels = {"release": "demo"}
        node = ResourceNode(
            kind=ResourceKind.SECRET,
            name="demo-secret",
            namespace="default",
            component=ComponentType.CONFIG,
            status=ResourceStatus(phase=ResourcePhase.READY),
            labels=labels,
            details={"type": "Opaque"},
        )
        with pytest.raises(TypeError):
            node.labels["release"] = "other"  # type: ignore[index]
        with pytest.raises(TypeError):
            node.details["type"] = "tls"  # type: ignore[index]
        labels["release"] = "changed"
        assert node.labels == {"release": "demo"}

    def test_nodes_are_hashable(self) -> None:
        a = _node("demo-master", ComponentType.MASTER, created_at=_TS)
        b = _node("demo-master", ComponentType.MASTER, created_at=_TS)
        assert a == b
        assert hash(a) == hash(b)
        assert len({a, b}) == 1

    def test_to_dict_emits_plain_dicts(self) -> None:
        node = ResourceNode(
            kind=ResourceKind.CONFIG_MAP,
            name="demo-config",
            namespace="default",
            component=ComponentType.CONFIG,
            status=ResourceStatus(phase=ResourcePhase.READY),
            labels={"release": "demo"},
        )
        assert type(node.to_dict()["labels"]) is dict
