"""REST endpoints under ``/api/v1``."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Path, Query, Request
from fastapi.responses import JSONResponse

from fluidmap import __version__
from fluidmap.api.schemas import DatasetListResponse, DatasetSummary, HealthResponse
from fluidmap.mapper import DiscoveryOptions, Mapper

router = APIRouter()

# DNS-1123 label (namespaces) and subdomain (object names).
_NAMESPACE = Path(pattern=r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$", max_length=63)
_NAME = Path(pattern=r"^[a-z0-9]([-a-z0-9.]*[a-z0-9])?$", max_length=253)

HEALTHY_HEADER = "X-Fluidmap-Healthy"


def _mapper(request: Request) -> Mapper:
    return request.app.state.mapper  # type: ignore[no-any-return]


@router.get("/health", response_model=HealthResponse)
async def health(request: Request) -> HealthResponse:
    return HealthResponse(
        version=__version__,
        cluster_id=request.app.state.cluster_id,
        mock_mode=request.app.state.client.mock_mode,
    )


@router.get("/datasets/{namespace}", response_model=DatasetListResponse)
async def list_datasets(
    request: Request,
    namespace: Annotated[str, _NAMESPACE],
) -> DatasetListResponse:
    datasets = await _mapper(request).list_datasets(namespace)
    return DatasetListResponse(
        namespace=namespace,
        datasets=[DatasetSummary.from_snapshot(d) for d in datasets],
    )


@router.get("/datasets/{namespace}/{name}")
async def map_dataset(
    request: Request,
    namespace: Annotated[str, _NAMESPACE],
    name: Annotated[str, _NAME],
    pods: Annotated[bool, Query()] = True,
    configs: Annotated[bool, Query()] = True,
    storage: Annotated[bool, Query()] = True,
) -> JSONResponse:
    """Map a Dataset.  Unhealthy graphs are still 200; the header carries health."""
    options = DiscoveryOptions(include_pods=pods, include_configs=configs, include_storage=storage)
    graph = await _mapper(request).map_from_dataset(name, namespace, options)
    return JSONResponse(
        content=graph.to_dict(),
        headers={HEALTHY_HEADER: "true" if graph.healthy else "false"},
    )
