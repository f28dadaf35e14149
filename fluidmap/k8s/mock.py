"""Scenario-driven in-memory cluster for demos and tests.

``MockQueryClient`` answers every Query Interface read with Kubernetes JSON
shaped like a real Fluid alluxio deployment.  Objects are named after the
``release=<name>`` label selector the mapper sends, so any dataset name works.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from enum import StrEnum
from typing import Any

from fluidmap.k8s.client import Obj, QueryClient
from fluidmap.k8s.crds import FLUID_API, RUNTIME_RESOURCES, parse_runtime_type
from fluidmap.k8s.errors import NotFoundError, UnknownRuntimeTypeError
from fluidmap.models.graph import RuntimeType

_FUSE_HASHES = ("a1b2c", "d3e4f", "g5h6i", "j7k8l", "m9n0p")


class MockScenario(StrEnum):
    """Canned cluster states."""

    HEALTHY = "healthy"
    PARTIAL_READY = "partial-ready"
    MISSING_RUNTIME = "missing-runtime"
    MISSING_FUSE = "missing-fuse"
    FAILED_PODS = "failed-pods"
    ORPHANED = "orphaned"
    MULTIPLE = "multiple"


_MULTIPLE_DATASETS = ("dataset-alpha", "dataset-beta", "dataset-gamma")


class MockQueryClient(QueryClient):
    """QueryClient that serves a canned scenario.

    Args:
        scenario: Which cluster state to serve.
        now:      Reference time for creation timestamps.  Fixed per client so
                  repeated mappings see identical objects.
    """

    def __init__(self, scenario: MockScenario | str = MockScenario.HEALTHY, now: datetime | None = None) -> None:
        self.scenario = MockScenario(scenario)
        self._now = now or datetime.now(tz=UTC)

    @property
    def cluster_name(self) -> str:
        return "mock-cluster"

    @property
    def mock_mode(self) -> bool:
        return True

    # ------------------------------------------------------------------
    # Fluid objects
    # ------------------------------------------------------------------

    async def get_dataset(self, name: str, namespace: str) -> Obj:
        if self.scenario == MockScenario.MULTIPLE and name not in _MULTIPLE_DATASETS:
            raise NotFoundError(f"Dataset {namespace}/{name}: 404 Not Found", target="Dataset", status=404)
        if self.scenario == MockScenario.MISSING_RUNTIME:
            return self._dataset(name, namespace, "NotBound", runtimes=None)
        return self._dataset(name, namespace, "Bound", runtimes=[_runtime_ref(name, namespace)])

    async def list_datasets(self, namespace: str) -> list[Obj]:
        names = _MULTIPLE_DATASETS if self.scenario == MockScenario.MULTIPLE else ("demo-data",)
        return [self._dataset(n, namespace, "Bound", runtimes=[_runtime_ref(n, namespace)]) for n in names]

    async def get_runtime(self, runtime_type: str, name: str, namespace: str) -> Obj:
        resolved = parse_runtime_type(runtime_type)
        if resolved == RuntimeType.UNKNOWN:
            raise UnknownRuntimeTypeError(runtime_type)
        if self.scenario == MockScenario.MISSING_RUNTIME:
            raise NotFoundError(f"runtime not found: {namespace}/{name}", target="Runtime", status=404)

        phases = {"master": "Ready", "worker": "Ready", "fuse": "Ready"}
        current = {"master": 1, "worker": 2, "fuse": 3}
        desired = {"master": 1, "worker": 2, "fuse": 3}
        if self.scenario == MockScenario.PARTIAL_READY:
            phases["worker"] = "PartialReady"
            current["worker"] = 1
        elif self.scenario == MockScenario.MISSING_FUSE:
            phases["fuse"] = "NotReady"
            current["fuse"] = 0
        elif self.scenario == MockScenario.FAILED_PODS:
            phases["worker"] = "Failed"
            current["worker"] = 0

        status: dict[str, Any] = {
            "conditions": [
                {
                    "type": "Ready",
                    "status": "True",
                    "reason": "RuntimeReady",
                    "message": "Runtime is ready",
                    "lastTransitionTime": self._ago(hours=1),
                }
            ],
        }
        for component in ("master", "worker", "fuse"):
            title = component.capitalize()
            status[f"{component}Phase"] = phases[component]
            status[f"current{title}NumberScheduled"] = current[component]
            status[f"desired{title}NumberScheduled"] = desired[component]

        return {
            "apiVersion": FLUID_API,
            "kind": RUNTIME_RESOURCES[resolved].kind,
            "metadata": self._meta(name, namespace, labels=None, age=timedelta(hours=24)),
            "spec": {"replicas": 2, "master": {"replicas": 1}, "worker": {"replicas": 2}},
            "status": status,
        }

    # ------------------------------------------------------------------
    # Workloads
    # ------------------------------------------------------------------

    async def list_stateful_sets(self, namespace: str, label_selector: str) -> list[Obj]:
        release = _release(label_selector)
        worker_ready = {MockScenario.PARTIAL_READY: 1, MockScenario.FAILED_PODS: 0}.get(self.scenario, 2)
        worker = self._stateful_set(f"{release}-worker", namespace, release, "alluxio-worker", 2, worker_ready)
        if self.scenario == MockScenario.ORPHANED:
            worker["metadata"].pop("ownerReferences")
        return [
            self._stateful_set(f"{release}-master", namespace, release, "alluxio-master", 1, 1),
            worker,
        ]

    async def list_daemon_sets(self, namespace: str, label_selector: str) -> list[Obj]:
        if self.scenario == MockScenario.MISSING_FUSE:
            return []
        release = _release(label_selector)
        ready = 2 if self.scenario == MockScenario.PARTIAL_READY else 3
        return [self._daemon_set(f"{release}-fuse", namespace, release, "alluxio-fuse", 3, ready)]

    async def list_pods(self, namespace: str, label_selector: str) -> list[Obj]:
        release = _release(label_selector)
        pods = [self._pod(f"{release}-master-0", namespace, release, "alluxio-master", "Running")]

        worker_phase = "Failed" if self.scenario == MockScenario.FAILED_PODS else "Running"
        for i in range(2):
            phase = "Pending" if self.scenario == MockScenario.PARTIAL_READY and i == 1 else worker_phase
            pods.append(self._pod(f"{release}-worker-{i}", namespace, release, "alluxio-worker", phase))

        if self.scenario != MockScenario.MISSING_FUSE:
            fuse_count = 2 if self.scenario == MockScenario.PARTIAL_READY else 3
            for i in range(fuse_count):
                pods.append(
                    self._pod(f"{release}-fuse-{_FUSE_HASHES[i]}", namespace, release, "alluxio-fuse", "Running")
                )
        return pods

    # ------------------------------------------------------------------
    # Storage and configuration
    # ------------------------------------------------------------------

    async def list_persistent_volume_claims(self, namespace: str, label_selector: str) -> list[Obj]:
        release = _release(label_selector)
        return [
            {
                "apiVersion": "v1",
                "kind": "PersistentVolumeClaim",
                "metadata": self._meta(release, namespace, labels={"release": release}),
                "spec": {"volumeName": f"{namespace}-{release}", "resources": {"requests": {"storage": "100Gi"}}},
                "status": {"phase": "Bound", "capacity": {"storage": "100Gi"}},
            }
        ]

    async def get_persistent_volume(self, name: str) -> Obj:
        return {
            "apiVersion": "v1",
            "kind": "PersistentVolume",
            "metadata": self._meta(name, None, labels=None),
            "spec": {"capacity": {"storage": "100Gi"}},
            "status": {"phase": "Bound"},
        }

    async def list_config_maps(self, namespace: str, label_selector: str) -> list[Obj]:
        release = _release(label_selector)
        return [
            {
                "apiVersion": "v1",
                "kind": "ConfigMap",
                "metadata": self._meta(f"{release}-{suffix}", namespace, labels={"release": release, "app": "alluxio"}),
                "data": {"alluxio-site.properties": f"alluxio.master.hostname={release}-master-0"},
            }
            for suffix in ("config", "master-config", "worker-config")
        ]

    async def list_secrets(self, namespace: str, label_selector: str) -> list[Obj]:
        release = _release(label_selector)
        return [
            {
                "apiVersion": "v1",
                "kind": "Secret",
                "type": "Opaque",
                "metadata": self._meta(f"{release}-secret", namespace, labels={"release": release, "app": "alluxio"}),
            }
        ]

    # ------------------------------------------------------------------
    # Object factories
    # ------------------------------------------------------------------

    def _ago(self, **kwargs: float) -> str:
        return (self._now - timedelta(**kwargs)).isoformat()

    def _meta(
        self,
        name: str,
        namespace: str | None,
        labels: dict[str, str] | None,
        age: timedelta = timedelta(hours=24),
    ) -> dict[str, Any]:
        meta: dict[str, Any] = {"name": name, "creationTimestamp": (self._now - age).isoformat()}
        if namespace is not None:
            meta["namespace"] = namespace
        if labels:
            meta["labels"] = labels
        return meta

    def _dataset(self, name: str, namespace: str, phase: str, runtimes: list[dict[str, str]] | None) -> Obj:
        status: dict[str, Any] = {
            "phase": phase,
            "conditions": [
                {
                    "type": "Ready",
                    "status": "True",
                    "reason": "DatasetReady",
                    "message": "Dataset is ready",
                    "lastTransitionTime": self._ago(hours=1),
                }
            ],
        }
        if phase == "Bound":
            status["ufsTotal"] = "100Gi"
            status["cacheStates"] = {"cacheCapacity": "50Gi", "cached": "25Gi", "cachedPercentage": "50%"}
        if runtimes is not None:
            status["runtimes"] = runtimes
        return {
            "apiVersion": FLUID_API,
            "kind": "Dataset",
            "metadata": self._meta(name, namespace, labels=None),
            "spec": {"mounts": [{"mountPoint": "s3://example-bucket/data", "name": "data"}]},
            "status": status,
        }

    def _workload_meta(self, name: str, namespace: str, release: str, role: str) -> dict[str, Any]:
        meta = self._meta(name, namespace, labels={"release": release, "app": "alluxio", "role": role})
        meta["ownerReferences"] = [
            {
                "apiVersion": FLUID_API,
                "kind": "AlluxioRuntime",
                "name": release,
                "uid": "mock-uid-runtime",
                "controller": True,
            }
        ]
        return meta

    def _stateful_set(self, name: str, namespace: str, release: str, role: str, replicas: int, ready: int) -> Obj:
        return {
            "apiVersion": "apps/v1",
            "kind": "StatefulSet",
            "metadata": self._workload_meta(name, namespace, release, role),
            "spec": {"replicas": replicas},
            "status": {"replicas": replicas, "readyReplicas": ready},
        }

    def _daemon_set(self, name: str, namespace: str, release: str, role: str, desired: int, ready: int) -> Obj:
        return {
            "apiVersion": "apps/v1",
            "kind": "DaemonSet",
            "metadata": self._workload_meta(name, namespace, release, role),
            "status": {"desiredNumberScheduled": desired, "numberReady": ready, "currentNumberScheduled": ready},
        }

    def _pod(self, name: str, namespace: str, release: str, role: str, phase: str) -> Obj:
        running = phase == "Running"
        container: dict[str, Any] = {"name": "main", "ready": running, "state": {}}
        if running:
            container["state"] = {"running": {"startedAt": self._ago(hours=1)}}
        return {
            "apiVersion": "v1",
            "kind": "Pod",
            "metadata": self._meta(
                name, namespace, labels={"release": release, "app": "alluxio", "role": role}, age=timedelta(hours=1)
            ),
            "status": {"phase": phase, "containerStatuses": [container]},
        }


def _runtime_ref(name: str, namespace: str) -> dict[str, str]:
    return {"name": name, "namespace": namespace, "type": "alluxio", "category": "Accelerate"}


def _release(label_selector: str) -> str:
    for term in label_selector.split(","):
        key, _, value = term.partition("=")
        if key.strip() == "release" and value:
            return value.strip()
    return "demo-data"
