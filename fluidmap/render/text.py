"""Human-readable terminal output.

Functions return strings; colour is applied with ``click.style`` and
stripped by ``click.echo`` when stdout is not a terminal.
"""

from __future__ import annotations

from collections.abc import Sequence

import click

from fluidmap.models.graph import (
    COMPONENT_ORDER,
    ComponentType,
    DatasetSnapshot,
    MappingWarning,
    ResourceGraph,
    ResourceKind,
    ResourceNode,
    ResourcePhase,
    WarningLevel,
)

_RULE = "─" * 60

_PHASE_STYLE: dict[ResourcePhase, tuple[str, str]] = {
    ResourcePhase.READY: ("✓", "green"),
    ResourcePhase.BOUND: ("✓", "green"),
    ResourcePhase.NOT_READY: ("!", "yellow"),
    ResourcePhase.PENDING: ("…", "yellow"),
    ResourcePhase.NOT_BOUND: ("✗", "red"),
    ResourcePhase.FAILED: ("✗", "red"),
    ResourcePhase.UNKNOWN: ("?", "white"),
}

_LEVEL_STYLE: dict[WarningLevel, tuple[str, str]] = {
    WarningLevel.ERROR: ("✗", "red"),
    WarningLevel.WARNING: ("⚠", "yellow"),
    WarningLevel.INFO: ("ℹ", "cyan"),
}

_SECTION_TITLES = {
    ComponentType.MASTER: "Master",
    ComponentType.WORKER: "Worker",
    ComponentType.FUSE: "Fuse",
    ComponentType.STORAGE: "Storage",
    ComponentType.CONFIG: "Configuration",
    ComponentType.UNKNOWN: "Unclassified",
}


def _icon(phase: ResourcePhase) -> str:
    symbol, colour = _PHASE_STYLE[phase]
    return click.style(symbol, fg=colour)


def _node_label(node: ResourceNode) -> str:
    state = [node.status.ready] if node.status.ready else []
    if node.kind == ResourceKind.POD and node.status.message:
        state.insert(0, node.status.message)
    suffix = f" ({' '.join(state)})" if state else ""
    return f"{_icon(node.status.phase)} {node.kind.value}: {node.name}{suffix}"


def _branch(nodes: Sequence[ResourceNode], indent: str) -> list[str]:
    lines = []
    for i, node in enumerate(nodes):
        last = i == len(nodes) - 1
        lines.append(f"{indent}{'└── ' if last else '├── '}{_node_label(node)}")
        if node.children:
            lines.extend(_branch(node.children, indent + ("    " if last else "│   ")))
    return lines


def _sections(graph: ResourceGraph) -> list[tuple[str, list[ResourceNode], str]]:
    """(title, nodes, placeholder) per component, with placeholders for expected components that are absent."""
    groups = graph.by_component()
    expected = graph.runtime.components if graph.runtime else None
    missing = {
        ComponentType.MASTER: bool(expected and expected.has_master),
        ComponentType.WORKER: bool(expected and expected.has_worker),
        ComponentType.FUSE: bool(expected and expected.has_fuse),
    }
    sections = []
    for component in COMPONENT_ORDER:
        title = _SECTION_TITLES[component]
        if component in groups:
            sections.append((title, groups[component], ""))
        elif missing.get(component):
            if component == ComponentType.FUSE:
                placeholder = click.style("⚠ not deployed (on-demand)", fg="yellow")
            else:
                placeholder = click.style("✗ MISSING", fg="red")
            sections.append((title, [], placeholder))
    return sections


def _warning_lines(warnings: Sequence[MappingWarning]) -> list[str]:
    lines = ["", _RULE, click.style(f"Warnings ({len(warnings)})", fg="yellow", bold=True), _RULE]
    for w in warnings:
        symbol, colour = _LEVEL_STYLE[w.level]
        lines.append(f"{click.style(symbol, fg=colour)} [{w.code.value}] {w.message}")
        if w.suggestion:
            lines.append(f"   hint: {w.suggestion}")
    return lines


def render_tree(graph: ResourceGraph) -> str:
    """Dataset, Runtime and resources as a tree, followed by warnings and a summary."""
    ds = graph.dataset
    lines = [_RULE, click.style(f"Resource Map for Dataset: {ds.namespace}/{ds.name}", bold=True), _RULE, ""]

    ds_icon = _icon(ResourcePhase.BOUND if ds.is_bound else ResourcePhase.NOT_BOUND)
    lines.append(f"{ds_icon} Dataset: {ds.name} ({ds.phase or 'Unknown'})")
    if ds.ufs_total:
        cache = f" | Cached: {ds.cached} ({ds.cached_percentage})" if ds.cached else ""
        lines.append(f"   UFS Total: {ds.ufs_total}{cache}")
    for mount in ds.mount_points:
        lines.append(f"   Mount: {mount}")
    lines.append("│")

    if graph.runtime is None:
        lines.append("└── " + click.style("⚠ No Runtime bound", fg="yellow"))
    else:
        lines.append(f"└── Runtime: {graph.runtime.name} ({graph.runtime.type.value})")

    sections = _sections(graph)
    for i, (title, nodes, placeholder) in enumerate(sections):
        last = i == len(sections) - 1
        lines.append(f"    {'└── ' if last else '├── '}{title}")
        pad = "    " + ("    " if last else "│   ")
        if placeholder:
            lines.append(f"{pad}└── {placeholder}")
        else:
            lines.extend(_branch(nodes, pad))

    if graph.warnings:
        lines.extend(_warning_lines(graph.warnings))

    lines.extend(["", _RULE])
    lines.append(
        f"Summary: {len(graph.resources)} resources mapped in {graph.metadata.duration_ms:.1f}ms"
    )
    if graph.healthy:
        lines.append(click.style("Status: HEALTHY", fg="green", bold=True))
    else:
        lines.append(click.style("Status: UNHEALTHY", fg="red", bold=True))
    lines.append(_RULE)
    return "\n".join(lines)


def _table(header: Sequence[str], rows: Sequence[Sequence[str]]) -> list[str]:
    widths = [max(len(row[i]) for row in (header, *rows)) for i in range(len(header))]
    fmt = "  ".join(f"{{:<{w}}}" for w in widths)
    return [fmt.format(*header).rstrip()] + [fmt.format(*row).rstrip() for row in rows]


def render_wide(graph: ResourceGraph) -> str:
    """One row per resource; pods follow their workload set, indented."""
    now = graph.metadata.mapped_at
    rows: list[list[str]] = []

    def add(node: ResourceNode, depth: int) -> None:
        rows.append(
            [
                node.kind.value,
                "  " * depth + node.name,
                node.component.value,
                node.status.phase.value,
                node.status.ready or "-",
                node.status.age(now) or "-",
            ]
        )
        for child in node.children:
            add(child, depth + 1)

    for resource in graph.resources:
        add(resource, 0)

    lines = [f"{graph.summary()} ({len(graph.resources)} resources)", ""]
    if rows:
        lines.extend(_table(("KIND", "NAME", "COMPONENT", "STATUS", "READY", "AGE"), rows))
    else:
        lines.append("No resources found.")
    if graph.warnings:
        lines.extend(_warning_lines(graph.warnings))
    return "\n".join(lines)


def render_dataset_list(datasets: Sequence[DatasetSnapshot], namespace: str = "") -> str:
    if not datasets:
        where = f" in namespace {namespace}" if namespace else ""
        return f"No datasets found{where}."
    rows = [
        [
            d.name,
            d.phase or "-",
            ",".join(r.type for r in d.runtimes) or "-",
            d.ufs_total or "-",
            f"{d.cached} ({d.cached_percentage})" if d.cached else "-",
        ]
        for d in datasets
    ]
    return "\n".join(_table(("NAME", "PHASE", "RUNTIME", "UFS TOTAL", "CACHED"), rows))
