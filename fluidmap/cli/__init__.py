"""fluidmap command-line interface.

Exposes:
    cli -- Click group entry point (registered as ``fluidmap`` script).
"""

from fluidmap.cli.main import cli

__all__ = ["cli"]
