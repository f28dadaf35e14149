"""Tests for the tree, wide, list and JSON renderers."""

from __future__ import annotations

import json
from datetime import UTC, datetime

import click

from fluidmap.k8s.mock import MockQueryClient, MockScenario
from fluidmap.mapper import Mapper
from fluidmap.models.graph import (
    DatasetSnapshot,
    GraphMetadata,
    ResourceGraph,
    RuntimeRef,
    RuntimeSnapshot,
    RuntimeType,
)
from fluidmap.render import render_dataset_list, render_json, render_tree, render_wide

_NOW = datetime(2026, 2, 18, 12, 0, tzinfo=UTC)


async def _map(scenario: MockScenario, name: str = "demo-data") -> ResourceGraph:
    return await Mapper(MockQueryClient(scenario)).map_from_dataset(name, "default")


# ---------------------------------------------------------------------------
# Tree
# ---------------------------------------------------------------------------


class TestRenderTree:
    async def test_healthy_layout(self) -> None:
        out = click.unstyle(render_tree(await _map(MockScenario.HEALTHY)))
        assert "Resource Map for Dataset: default/demo-data" in out
        assert "Dataset: demo-data (Bound)" in out
        assert "Runtime: demo-data (alluxio)" in out
        assert "UFS Total: 100Gi | Cached: 25Gi (50%)" in out
        for title in ("Master", "Worker", "Fuse", "Storage", "Configuration"):
            assert f"── {title}" in out
        assert "StatefulSet: demo-data-worker (2/2)" in out
        assert "Pod: demo-data-worker-0 (Running 1/1)" in out
        assert "Warnings" not in out
        assert "Summary: 9 resources mapped in" in out
        assert "Status: HEALTHY" in out

    async def test_sections_follow_component_order(self) -> None:
        out = click.unstyle(render_tree(await _map(MockScenario.HEALTHY)))
        positions = [out.index(f"── {t}") for t in ("Master", "Worker", "Fuse", "Storage", "Configuration")]
        assert positions == sorted(positions)

    async def test_missing_fuse_placeholder(self) -> None:
        out = click.unstyle(render_tree(await _map(MockScenario.MISSING_FUSE)))
        assert "⚠ not deployed (on-demand)" in out
        assert "Warnings (1)" in out
        assert "[FUSE_MISSING]" in out
        assert "hint: Fuse pods are created on-demand" in out

    async def test_no_runtime(self) -> None:
        out = click.unstyle(render_tree(await _map(MockScenario.MISSING_RUNTIME)))
        assert "⚠ No Runtime bound" in out
        assert "MISSING" not in out

    async def test_missing_dataset_is_unhealthy(self) -> None:
        out = click.unstyle(render_tree(await _map(MockScenario.MULTIPLE, name="nope")))
        assert "Dataset: nope (Unknown)" in out
        assert "[DATASET_NOT_FOUND]" in out
        assert "Status: UNHEALTHY" in out

    def test_missing_master_placeholder(self) -> None:
        graph = ResourceGraph(
            dataset=DatasetSnapshot(name="demo", namespace="fluid", phase="Bound"),
            runtime=RuntimeSnapshot(name="demo", namespace="fluid", type=RuntimeType.ALLUXIO),
            metadata=GraphMetadata(mapped_at=_NOW),
        )
        out = click.unstyle(render_tree(graph))
        assert out.count("✗ MISSING") == 2


# ---------------------------------------------------------------------------
# Wide
# ---------------------------------------------------------------------------


class TestRenderWide:
    async def test_columns_and_children(self) -> None:
        lines = click.unstyle(render_wide(await _map(MockScenario.HEALTHY))).splitlines()
        assert lines[0] == "Dataset: demo-data → alluxio Runtime (9 resources)"
        assert lines[2].split() == ["KIND", "NAME", "COMPONENT", "STATUS", "READY", "AGE"]
        worker_pod = next(line for line in lines if "demo-data-worker-1" in line)
        assert worker_pod.split() == ["Pod", "demo-data-worker-1", "worker", "Ready", "1/1", "1h"]
        volume = next(line for line in lines if line.startswith("PersistentVolume "))
        assert volume.split()[-2:] == ["-", "1d"]

    def test_empty_graph(self) -> None:
        graph = ResourceGraph(
            dataset=DatasetSnapshot(name="demo", namespace="fluid"),
            metadata=GraphMetadata(mapped_at=_NOW),
        )
        assert "No resources found." in render_wide(graph)


# ---------------------------------------------------------------------------
# Dataset list
# ---------------------------------------------------------------------------


class TestRenderDatasetList:
    def test_table(self) -> None:
        datasets = [
            DatasetSnapshot(
                name="alpha",
                namespace="fluid",
                phase="Bound",
                ufs_total="10Gi",
                cached="1Gi",
                cached_percentage="10%",
                runtimes=(RuntimeRef(type="alluxio"),),
            ),
            DatasetSnapshot(name="beta", namespace="fluid"),
        ]
        lines = render_dataset_list(datasets, "fluid").splitlines()
        assert lines[0].split() == ["NAME", "PHASE", "RUNTIME", "UFS", "TOTAL", "CACHED"]
        assert lines[1].split() == ["alpha", "Bound", "alluxio", "10Gi", "1Gi", "(10%)"]
        assert lines[2].split() == ["beta", "-", "-", "-", "-"]

    def test_empty(self) -> None:
        assert render_dataset_list([], "fluid") == "No datasets found in namespace fluid."


# ---------------------------------------------------------------------------
# JSON
# ---------------------------------------------------------------------------


class TestRenderJson:
    async def test_document_shape(self) -> None:
        data = json.loads(render_json(await _map(MockScenario.HEALTHY)))
        assert set(data) == {"dataset", "runtime", "resources", "warnings", "metadata"}
        assert data["metadata"]["mockMode"] is True
        assert data["metadata"]["mappedAt"].endswith("+00:00")
        worker = next(r for r in data["resources"] if r["name"] == "demo-data-worker")
        assert worker["status"]["age"] == "1d"
        assert [c["status"]["age"] for c in worker["children"]] == ["1h", "1h"]

    async def test_compact(self) -> None:
        text = render_json(await _map(MockScenario.HEALTHY), indent=None)
        assert "\n" not in text
