"""Presentation of ResourceGraphs.

Exposes:
    render_json          -- stable JSON document.
    render_tree          -- hierarchical terminal view.
    render_wide          -- one row per resource.
    render_dataset_list  -- table of Datasets in a namespace.
"""

from fluidmap.render.export import render_json
from fluidmap.render.text import render_dataset_list, render_tree, render_wide

__all__ = ["render_dataset_list", "render_json", "render_tree", "render_wide"]
