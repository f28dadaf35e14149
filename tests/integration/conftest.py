"""Shared fixtures for fluidmap integration tests.

Wires the full pipeline (mock Query Interface, resolver, discovery, graph
builder, detector) so tests exercise every canned scenario end to end
without touching a real Kubernetes cluster.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from datetime import UTC, datetime

import pytest

from fluidmap.k8s.mock import MockQueryClient, MockScenario
from fluidmap.mapper import DiscoveryOptions, Mapper
from fluidmap.models.graph import ResourceGraph

MapScenario = Callable[..., Awaitable[ResourceGraph]]

DATASET = "demo-data"
NAMESPACE = "fluid-system"


@pytest.fixture()
def now() -> datetime:
    """Reference time the mock cluster stamps creation times against."""
    return datetime.now(UTC)


@pytest.fixture()
def map_scenario(now: datetime) -> MapScenario:
    """Map a Dataset against a fresh mock cluster in the given scenario."""

    async def _map(
        scenario: MockScenario,
        name: str = DATASET,
        namespace: str = NAMESPACE,
        options: DiscoveryOptions | None = None,
    ) -> ResourceGraph:
        mapper = Mapper(MockQueryClient(scenario, now=now))
        return await mapper.map_from_dataset(name, namespace, options)

    return _map
