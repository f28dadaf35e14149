"""Machine-readable output."""

from __future__ import annotations

import json

from fluidmap.models.graph import ResourceGraph


def render_json(graph: ResourceGraph, indent: int | None = 2) -> str:
    return json.dumps(graph.to_dict(), indent=indent, ensure_ascii=False)
