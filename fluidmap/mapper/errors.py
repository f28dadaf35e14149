"""Errors raised inside the mapping pipeline."""

from __future__ import annotations


class ResolutionError(Exception):
    """The Runtime bound to a Dataset could not be resolved."""

    def __init__(self, dataset: str, reason: str) -> None:
        super().__init__(f"cannot resolve runtime for dataset {dataset}: {reason}")
        self.dataset = dataset
        self.reason = reason
