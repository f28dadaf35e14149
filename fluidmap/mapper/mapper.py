"""Mapping pipeline: resolve, discover, assemble, detect.

Only ``ClusterUnreachableError`` escapes ``map_from_dataset``.  Every other
problem, including a missing Dataset, is returned as a MappingWarning on the
graph.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import replace
from datetime import UTC, datetime

from fluidmap.k8s.client import QueryClient
from fluidmap.k8s.errors import ClusterUnreachableError, QueryError, UnknownRuntimeTypeError
from fluidmap.mapper.conventions import DEFAULT_CONVENTIONS, Conventions
from fluidmap.mapper.detector import detect
from fluidmap.mapper.discovery import Discovery, DiscoveryOptions
from fluidmap.mapper.errors import ResolutionError
from fluidmap.mapper.graph_builder import assemble
from fluidmap.mapper.resolver import Resolver, parse_dataset
from fluidmap.models.graph import (
    DatasetPhase,
    DatasetSnapshot,
    GraphMetadata,
    MappingWarning,
    ResourceGraph,
    RuntimeSnapshot,
    WarningCode,
    WarningLevel,
)
from fluidmap.observability.logging import get_logger, mapping_context
from fluidmap.observability.metrics import (
    mapping_duration_seconds,
    mapping_warnings_total,
    mappings_total,
)

_log = get_logger("mapper")

DEFAULT_TIMEOUT_SECONDS = 30.0


class Mapper:
    """Builds ResourceGraphs for Datasets.

    One instance may serve many concurrent calls; nothing is kept between
    them.

    Args:
        client:      Query Interface to read from.
        timeout:     Deadline in seconds for one whole mapping call.
        conventions: Label and role tables.
    """

    def __init__(
        self,
        client: QueryClient,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        conventions: Conventions = DEFAULT_CONVENTIONS,
    ) -> None:
        self._client = client
        self._timeout = timeout
        self._resolver = Resolver(client)
        self._discovery = Discovery(client, conventions)
        self._conventions = conventions

    @property
    def client(self) -> QueryClient:
        return self._client

    async def map_from_dataset(
        self,
        name: str,
        namespace: str,
        options: DiscoveryOptions | None = None,
    ) -> ResourceGraph:
        """Map every resource behind the Dataset *namespace*/*name*.

        Raises:
            ClusterUnreachableError: the API server could not be reached, or
                the Dataset read did not finish before the deadline.
        """
        with mapping_context(name, namespace):
            return await self._map(name, namespace, options or DiscoveryOptions())

    async def _map(self, name: str, namespace: str, options: DiscoveryOptions) -> ResourceGraph:
        started = time.monotonic()
        mapped_at = datetime.now(tz=UTC)
        deadline = asyncio.get_running_loop().time() + self._timeout

        try:
            async with asyncio.timeout_at(deadline):
                dataset = await self._resolver.resolve_dataset(name, namespace)
        except TimeoutError as exc:
            mappings_total.labels(outcome="unreachable").inc()
            raise ClusterUnreachableError(
                f"Dataset {namespace}/{name}: no answer within {self._timeout:g}s", target="Dataset"
            ) from exc
        except ClusterUnreachableError:
            mappings_total.labels(outcome="unreachable").inc()
            raise
        except QueryError as exc:
            _log.info("dataset_not_found", error=str(exc))
            graph = ResourceGraph(
                dataset=DatasetSnapshot(name=name, namespace=namespace),
                warnings=(
                    MappingWarning(
                        level=WarningLevel.ERROR,
                        code=WarningCode.DATASET_NOT_FOUND,
                        message=f"Failed to get Dataset {namespace}/{name}: {exc}",
                        resource=name,
                        suggestion="Verify the Dataset name and namespace are correct",
                    ),
                ),
                metadata=self._metadata(mapped_at, started),
            )
            self._record(graph, outcome="dataset_not_found")
            return graph

        warnings: list[MappingWarning] = []
        runtime = await self._runtime(dataset, deadline, warnings)

        remaining = max(deadline - asyncio.get_running_loop().time(), 0.0)
        discovered = await self._discovery.discover(
            name,
            namespace,
            runtime.type if runtime else None,
            options,
            timeout=remaining,
        )

        graph = assemble(dataset, runtime, discovered, warnings, self._metadata(mapped_at, started))
        detected = detect(graph, runtime, self._conventions)
        graph = replace(
            graph,
            warnings=(*graph.warnings, *detected),
            metadata=self._metadata(mapped_at, started),
        )
        self._record(graph, outcome="healthy" if graph.healthy else "unhealthy")
        _log.info(
            "mapping_complete",
            runtime=runtime.type.value if runtime else None,
            resources=len(graph.resources),
            warnings=len(graph.warnings),
            healthy=graph.healthy,
            duration_ms=round(graph.metadata.duration_ms, 3),
        )
        return graph

    async def list_datasets(self, namespace: str) -> list[DatasetSnapshot]:
        """Datasets in *namespace*, sorted by name.

        Raises:
            QueryError: the list call failed.
            ClusterUnreachableError: no answer before the deadline.
        """
        try:
            async with asyncio.timeout(self._timeout):
                objs = await self._client.list_datasets(namespace)
        except TimeoutError as exc:
            raise ClusterUnreachableError(
                f"Dataset list in {namespace}: no answer within {self._timeout:g}s", target="Dataset"
            ) from exc
        datasets = [parse_dataset(obj, namespace=namespace) for obj in objs]
        return sorted(datasets, key=lambda d: d.name)

    async def _runtime(
        self,
        dataset: DatasetSnapshot,
        deadline: float,
        warnings: list[MappingWarning],
    ) -> RuntimeSnapshot | None:
        try:
            async with asyncio.timeout_at(deadline):
                return await self._resolver.resolve_runtime(dataset)
        except UnknownRuntimeTypeError as exc:
            warnings.append(
                MappingWarning(
                    level=WarningLevel.WARNING,
                    code=WarningCode.UNKNOWN_RUNTIME_TYPE,
                    message=f"Dataset is bound to unsupported runtime type {exc.runtime_type!r}",
                    resource=dataset.name,
                    suggestion="Add the runtime type to the supported-type table",
                )
            )
        except ResolutionError as exc:
            # NotBound: no runtime expected yet.
            if dataset.phase != DatasetPhase.NOT_BOUND:
                warnings.append(_runtime_not_bound(dataset, exc.reason))
        except TimeoutError:
            warnings.append(_runtime_not_bound(dataset, "runtime lookup timed out"))
        return None

    def _metadata(self, mapped_at: datetime, started: float) -> GraphMetadata:
        return GraphMetadata(
            mapped_at=mapped_at,
            duration_ms=(time.monotonic() - started) * 1000.0,
            cluster_name=self._client.cluster_name,
            mock_mode=self._client.mock_mode,
        )

    @staticmethod
    def _record(graph: ResourceGraph, outcome: str) -> None:
        mappings_total.labels(outcome=outcome).inc()
        mapping_duration_seconds.observe(graph.metadata.duration_ms / 1000.0)
        for warning in graph.warnings:
            mapping_warnings_total.labels(code=warning.code.value, level=warning.level.value).inc()


def _runtime_not_bound(dataset: DatasetSnapshot, reason: str) -> MappingWarning:
    return MappingWarning(
        level=WarningLevel.WARNING,
        code=WarningCode.RUNTIME_NOT_BOUND,
        message=f"No Runtime bound to Dataset: {reason}",
        resource=dataset.name,
        suggestion="Create a Runtime CR with the same name as the Dataset",
    )
