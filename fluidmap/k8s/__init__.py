"""Cluster access for fluidmap.

Exposes:
    QueryClient            -- read-only interface the mapper depends on.
    KubernetesQueryClient  -- kubernetes-asyncio implementation.
    MockQueryClient        -- scenario-driven in-memory cluster.
    connect                -- builds a KubernetesQueryClient from configuration.
"""

from fluidmap.k8s.client import KubernetesQueryClient, QueryClient, connect
from fluidmap.k8s.errors import (
    ClusterUnreachableError,
    ForbiddenError,
    NotFoundError,
    QueryError,
    UnknownRuntimeTypeError,
)
from fluidmap.k8s.mock import MockQueryClient, MockScenario

__all__ = [
    "ClusterUnreachableError",
    "ForbiddenError",
    "KubernetesQueryClient",
    "MockQueryClient",
    "MockScenario",
    "NotFoundError",
    "QueryClient",
    "QueryError",
    "UnknownRuntimeTypeError",
    "connect",
]
