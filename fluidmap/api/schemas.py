"""Pydantic models for the REST API.

Graph responses are produced by ``ResourceGraph.to_dict`` directly so the
JSON contract has a single source; the models here cover everything else.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from fluidmap.models.graph import DatasetSnapshot


class ErrorResponse(BaseModel):
    """Error envelope returned for every non-2xx response."""

    error: str
    detail: str


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str
    cluster_id: str = ""
    mock_mode: bool = False

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DatasetSummary(BaseModel):
    """One row of a Dataset listing."""

    name: str
    namespace: str
    phase: str = ""
    runtimes: list[str] = Field(default_factory=list)
    ufs_total: str = ""
    cached: str = ""
    cached_percentage: str = ""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @classmethod
    def from_snapshot(cls, dataset: DatasetSnapshot) -> DatasetSummary:
        return cls(
            name=dataset.name,
            namespace=dataset.namespace,
            phase=dataset.phase,
            runtimes=[r.type for r in dataset.runtimes],
            ufs_total=dataset.ufs_total,
            cached=dataset.cached,
            cached_percentage=dataset.cached_percentage,
        )


class DatasetListResponse(BaseModel):
    namespace: str
    datasets: list[DatasetSummary]
