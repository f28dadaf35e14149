"""Prometheus metrics for mapping runs."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

mappings_total = Counter(
    "fluidmap_mappings_total",
    "Dataset mapping calls by outcome",
    ["outcome"],  # healthy | unhealthy | dataset_not_found | unreachable
)

mapping_warnings_total = Counter(
    "fluidmap_mapping_warnings_total",
    "Warnings emitted by mapping calls",
    ["code", "level"],
)

discovery_failures_total = Counter(
    "fluidmap_discovery_failures_total",
    "Discovery categories that failed or hit the deadline",
    ["category"],
)

mapping_duration_seconds = Histogram(
    "fluidmap_mapping_duration_seconds",
    "Wall time of a full mapping call",
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)
