"""Entry point for `python -m fluidmap`.

Usage:
    python -m fluidmap dataset demo-data --mock
"""

from __future__ import annotations

from fluidmap.cli import cli

cli()
