"""Core data structures for fluidmap."""

from fluidmap.models.config import FluidMapConfig
from fluidmap.models.graph import (
    MAPPER_VERSION,
    COMPONENT_ORDER,
    ComponentType,
    Condition,
    DatasetPhase,
    DatasetSnapshot,
    GraphMetadata,
    MappingWarning,
    OwnerInfo,
    ResourceGraph,
    ResourceKind,
    ResourceNode,
    ResourcePhase,
    ResourceStatus,
    RuntimeComponents,
    RuntimeRef,
    RuntimeSnapshot,
    RuntimeType,
    WarningCode,
    WarningLevel,
    group_by_component,
    runtime_components,
)

__all__ = [
    "MAPPER_VERSION",
    "COMPONENT_ORDER",
    "ComponentType",
    "Condition",
    "DatasetPhase",
    "DatasetSnapshot",
    "FluidMapConfig",
    "GraphMetadata",
    "MappingWarning",
    "OwnerInfo",
    "ResourceGraph",
    "ResourceKind",
    "ResourceNode",
    "ResourcePhase",
    "ResourceStatus",
    "RuntimeComponents",
    "RuntimeRef",
    "RuntimeSnapshot",
    "RuntimeType",
    "WarningCode",
    "WarningLevel",
    "group_by_component",
    "runtime_components",
]
