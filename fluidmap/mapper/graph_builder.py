"""Pure assembly of a ResourceGraph from resolved and discovered parts."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import replace

from fluidmap.mapper.discovery import DiscoveryResult, NodeKey
from fluidmap.models.graph import (
    DatasetSnapshot,
    GraphMetadata,
    MappingWarning,
    ResourceGraph,
    ResourceNode,
    RuntimeSnapshot,
    group_by_component,
)

__all__ = ["assemble", "attach_children", "group_by_component"]


def assemble(
    dataset: DatasetSnapshot,
    runtime: RuntimeSnapshot | None,
    discovery: DiscoveryResult,
    warnings: Sequence[MappingWarning],
    metadata: GraphMetadata,
) -> ResourceGraph:
    """Build the graph value.

    Pod children found during discovery are attached to their workload set.
    Resource order is discovery order.  *warnings* (from resolution) precede
    the discovery warnings.  No I/O.
    """
    return ResourceGraph(
        dataset=dataset,
        runtime=runtime,
        resources=tuple(attach_children(discovery.nodes, discovery.children)),
        warnings=(*warnings, *discovery.warnings),
        metadata=metadata,
    )


def attach_children(
    nodes: Iterable[ResourceNode],
    children: Mapping[NodeKey, tuple[ResourceNode, ...]],
) -> list[ResourceNode]:
    attached = []
    for node in nodes:
        pods = children.get((node.kind, node.name))
        attached.append(replace(node, children=pods) if pods else node)
    return attached
