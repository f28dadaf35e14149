"""Dataset and Runtime resolution.

A Dataset and its Runtime share name and namespace.  The Dataset's
``status.runtimes`` list only tells us the runtime *type*; the object itself
is fetched by the Dataset's own identity.
"""

from __future__ import annotations

from typing import Any

from fluidmap.k8s.client import QueryClient
from fluidmap.k8s.crds import parse_runtime_type
from fluidmap.k8s.errors import ClusterUnreachableError, QueryError, UnknownRuntimeTypeError
from fluidmap.mapper.accessors import get_int, get_maps, get_str
from fluidmap.mapper.errors import ResolutionError
from fluidmap.models.graph import (
    Condition,
    DatasetSnapshot,
    RuntimeRef,
    RuntimeSnapshot,
    RuntimeType,
)
from fluidmap.observability.logging import get_logger

_log = get_logger("resolver")


class Resolver:
    """Turns a Dataset identity into Dataset and Runtime snapshots."""

    def __init__(self, client: QueryClient) -> None:
        self._client = client

    async def resolve_dataset(self, name: str, namespace: str) -> DatasetSnapshot:
        """Fetch and parse a Dataset.

        Raises:
            QueryError: the fetch failed (``NotFoundError`` when absent).
        """
        obj = await self._client.get_dataset(name, namespace)
        dataset = parse_dataset(obj, name=name, namespace=namespace)
        _log.debug("dataset_resolved", dataset=f"{namespace}/{name}", phase=dataset.phase)
        return dataset

    async def resolve_runtime(self, dataset: DatasetSnapshot) -> RuntimeSnapshot:
        """Fetch and parse the Runtime bound to *dataset*.

        Only the first ``status.runtimes`` entry is used; a Dataset bound to
        several runtimes is outside the one-to-one model.

        Raises:
            ResolutionError: the Dataset is not Bound, records no runtime, or
                the runtime fetch failed.
            UnknownRuntimeTypeError: the recorded type is not supported.
            ClusterUnreachableError: the API server could not be reached.
        """
        ident = f"{dataset.namespace}/{dataset.name}"
        if not dataset.is_bound:
            raise ResolutionError(ident, f"dataset is not bound (phase: {dataset.phase or '<none>'})")
        if not dataset.runtimes:
            raise ResolutionError(ident, "dataset status lists no bound runtime")
        if len(dataset.runtimes) > 1:
            _log.warning(
                "multiple_runtimes_bound",
                dataset=ident,
                runtimes=[r.type for r in dataset.runtimes],
                using=dataset.runtimes[0].type,
            )

        declared = dataset.runtimes[0].type
        runtime_type = parse_runtime_type(declared)
        if runtime_type == RuntimeType.UNKNOWN:
            raise UnknownRuntimeTypeError(declared)

        try:
            obj = await self._client.get_runtime(runtime_type.value, dataset.name, dataset.namespace)
        except ClusterUnreachableError:
            raise
        except UnknownRuntimeTypeError:
            raise
        except QueryError as exc:
            raise ResolutionError(ident, str(exc)) from exc

        runtime = parse_runtime(obj, runtime_type, dataset)
        _log.debug("runtime_resolved", dataset=ident, runtime_type=runtime_type.value)
        return runtime


def parse_conditions(obj: Any, *keys: str) -> tuple[Condition, ...]:
    return tuple(
        Condition(
            type=get_str(c, "type"),
            status=get_str(c, "status"),
            reason=get_str(c, "reason"),
            message=get_str(c, "message"),
            last_transition_time=get_str(c, "lastTransitionTime"),
        )
        for c in get_maps(obj, *keys)
    )


def parse_dataset(obj: Any, name: str = "", namespace: str = "") -> DatasetSnapshot:
    """Build a DatasetSnapshot; missing status fields become empty values.

    *name* and *namespace* fill in identity when the object's metadata lacks it.
    """
    return DatasetSnapshot(
        name=get_str(obj, "metadata", "name") or name,
        namespace=get_str(obj, "metadata", "namespace") or namespace,
        phase=get_str(obj, "status", "phase"),
        ufs_total=get_str(obj, "status", "ufsTotal"),
        cached=get_str(obj, "status", "cacheStates", "cached"),
        cached_percentage=get_str(obj, "status", "cacheStates", "cachedPercentage"),
        conditions=parse_conditions(obj, "status", "conditions"),
        mount_points=tuple(
            mp for mp in (get_str(m, "mountPoint") for m in get_maps(obj, "spec", "mounts")) if mp
        ),
        runtimes=tuple(
            RuntimeRef(
                type=get_str(r, "type"),
                name=get_str(r, "name"),
                namespace=get_str(r, "namespace"),
            )
            for r in get_maps(obj, "status", "runtimes")
        ),
    )


def _ready_count(status: dict[str, Any], component: str) -> str:
    # Only report when the desired count is known, so "0/0" never shows up.
    title = component.capitalize()
    desired = get_int(status, f"desired{title}NumberScheduled")
    if desired <= 0:
        return ""
    current = get_int(status, f"current{title}NumberScheduled")
    return f"{current}/{desired}"


def parse_runtime(obj: Any, runtime_type: RuntimeType, dataset: DatasetSnapshot) -> RuntimeSnapshot:
    """Build a RuntimeSnapshot under the Dataset's identity."""
    status = obj.get("status") if isinstance(obj, dict) else None
    status = status if isinstance(status, dict) else {}
    return RuntimeSnapshot(
        name=dataset.name,
        namespace=dataset.namespace,
        type=runtime_type,
        master_phase=get_str(status, "masterPhase"),
        worker_phase=get_str(status, "workerPhase"),
        fuse_phase=get_str(status, "fusePhase"),
        master_ready=_ready_count(status, "master"),
        worker_ready=_ready_count(status, "worker"),
        fuse_ready=_ready_count(status, "fuse"),
        conditions=parse_conditions(status, "conditions"),
    )
