"""Query Interface used by the mapper, and its kubernetes-asyncio implementation.

Every read returns plain Kubernetes JSON (camelCase keys, ``items`` lists
flattened into Python lists).  The mapper never sees client model classes,
so real and mock clients are interchangeable.
"""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from collections.abc import Awaitable
from typing import TYPE_CHECKING, Any

import aiohttp
from kubernetes_asyncio import client as k8s_client  # type: ignore[import-untyped]
from kubernetes_asyncio import config as k8s_config  # type: ignore[import-untyped]
from kubernetes_asyncio.client.exceptions import ApiException  # type: ignore[import-untyped]

from fluidmap.k8s.crds import (
    DATASET_PLURAL,
    FLUID_API_GROUP,
    FLUID_API_VERSION,
    RUNTIME_RESOURCES,
    parse_runtime_type,
)
from fluidmap.k8s.errors import (
    ClusterUnreachableError,
    ForbiddenError,
    NotFoundError,
    QueryError,
    UnknownRuntimeTypeError,
)
from fluidmap.observability.logging import get_logger

if TYPE_CHECKING:
    from fluidmap.models.config import FluidMapConfig

_log = get_logger("k8s.client")

Obj = dict[str, Any]


class QueryClient(ABC):
    """Read-only capability set the resolver and discovery depend on.

    Implementations raise ``QueryError`` subclasses and nothing else for
    failed reads.
    """

    @property
    @abstractmethod
    def cluster_name(self) -> str:
        """Identifier of the cluster, for graph metadata only."""

    @property
    def mock_mode(self) -> bool:
        return False

    @abstractmethod
    async def get_dataset(self, name: str, namespace: str) -> Obj: ...

    @abstractmethod
    async def list_datasets(self, namespace: str) -> list[Obj]: ...

    @abstractmethod
    async def get_runtime(self, runtime_type: str, name: str, namespace: str) -> Obj:
        """Fetch a runtime object.

        Raises:
            UnknownRuntimeTypeError: *runtime_type* is not a supported engine.
        """

    @abstractmethod
    async def list_stateful_sets(self, namespace: str, label_selector: str) -> list[Obj]: ...

    @abstractmethod
    async def list_daemon_sets(self, namespace: str, label_selector: str) -> list[Obj]: ...

    @abstractmethod
    async def list_pods(self, namespace: str, label_selector: str) -> list[Obj]: ...

    @abstractmethod
    async def list_persistent_volume_claims(self, namespace: str, label_selector: str) -> list[Obj]: ...

    @abstractmethod
    async def get_persistent_volume(self, name: str) -> Obj: ...

    @abstractmethod
    async def list_config_maps(self, namespace: str, label_selector: str) -> list[Obj]: ...

    @abstractmethod
    async def list_secrets(self, namespace: str, label_selector: str) -> list[Obj]: ...

    async def close(self) -> None:  # noqa: B027
        """Release connections.  Default is a no-op."""


class KubernetesQueryClient(QueryClient):
    """QueryClient backed by a kubernetes-asyncio ApiClient."""

    def __init__(self, api_client: Any, cluster_name: str = "unknown") -> None:
        self._api = api_client
        self._cluster_name = cluster_name
        self._custom = k8s_client.CustomObjectsApi(api_client)
        self._apps = k8s_client.AppsV1Api(api_client)
        self._core = k8s_client.CoreV1Api(api_client)

    @property
    def cluster_name(self) -> str:
        return self._cluster_name

    async def get_dataset(self, name: str, namespace: str) -> Obj:
        return await self._call(
            f"Dataset {namespace}/{name}",
            self._custom.get_namespaced_custom_object(
                FLUID_API_GROUP, FLUID_API_VERSION, namespace, DATASET_PLURAL, name
            ),
        )

    async def list_datasets(self, namespace: str) -> list[Obj]:
        result = await self._call(
            f"Dataset list in {namespace}",
            self._custom.list_namespaced_custom_object(FLUID_API_GROUP, FLUID_API_VERSION, namespace, DATASET_PLURAL),
        )
        return list(result.get("items") or [])

    async def get_runtime(self, runtime_type: str, name: str, namespace: str) -> Obj:
        resource = RUNTIME_RESOURCES.get(parse_runtime_type(runtime_type))
        if resource is None:
            raise UnknownRuntimeTypeError(runtime_type)
        return await self._call(
            f"{resource.kind} {namespace}/{name}",
            self._custom.get_namespaced_custom_object(
                FLUID_API_GROUP, FLUID_API_VERSION, namespace, resource.plural, name
            ),
        )

    async def list_stateful_sets(self, namespace: str, label_selector: str) -> list[Obj]:
        return await self._list(
            f"StatefulSet list in {namespace}",
            self._apps.list_namespaced_stateful_set(namespace, label_selector=label_selector),
        )

    async def list_daemon_sets(self, namespace: str, label_selector: str) -> list[Obj]:
        return await self._list(
            f"DaemonSet list in {namespace}",
            self._apps.list_namespaced_daemon_set(namespace, label_selector=label_selector),
        )

    async def list_pods(self, namespace: str, label_selector: str) -> list[Obj]:
        return await self._list(
            f"Pod list in {namespace}",
            self._core.list_namespaced_pod(namespace, label_selector=label_selector),
        )

    async def list_persistent_volume_claims(self, namespace: str, label_selector: str) -> list[Obj]:
        return await self._list(
            f"PersistentVolumeClaim list in {namespace}",
            self._core.list_namespaced_persistent_volume_claim(namespace, label_selector=label_selector),
        )

    async def get_persistent_volume(self, name: str) -> Obj:
        obj = await self._call(f"PersistentVolume {name}", self._core.read_persistent_volume(name))
        return self._api.sanitize_for_serialization(obj)  # type: ignore[no-any-return]

    async def list_config_maps(self, namespace: str, label_selector: str) -> list[Obj]:
        return await self._list(
            f"ConfigMap list in {namespace}",
            self._core.list_namespaced_config_map(namespace, label_selector=label_selector),
        )

    async def list_secrets(self, namespace: str, label_selector: str) -> list[Obj]:
        return await self._list(
            f"Secret list in {namespace}",
            self._core.list_namespaced_secret(namespace, label_selector=label_selector),
        )

    async def close(self) -> None:
        await self._api.close()

    async def _list(self, target: str, awaitable: Awaitable[Any]) -> list[Obj]:
        result = self._api.sanitize_for_serialization(await self._call(target, awaitable))
        return list(result.get("items") or [])

    async def _call(self, target: str, awaitable: Awaitable[Any]) -> Any:
        try:
            return await awaitable
        except ApiException as exc:
            raise _translate_api_exception(exc, target) from exc
        except (aiohttp.ClientError, OSError) as exc:
            raise ClusterUnreachableError(f"{target}: {exc}", target=target) from exc


def _translate_api_exception(exc: ApiException, target: str) -> QueryError:
    message = f"{target}: {exc.status} {exc.reason}"
    if exc.status == 404:
        return NotFoundError(message, target=target, status=404)
    if exc.status in (401, 403):
        return ForbiddenError(message, target=target, status=exc.status)
    return QueryError(message, target=target, status=exc.status)


async def connect(config: FluidMapConfig) -> KubernetesQueryClient:
    """Build a KubernetesQueryClient from in-cluster config or kubeconfig.

    Raises:
        ClusterUnreachableError: no usable cluster configuration was found.
    """
    kube = config.kube
    try:
        if kube.in_cluster:
            k8s_config.load_incluster_config()
            _log.info("k8s client configured from in-cluster service account")
        else:
            kubeconfig = kube.kubeconfig or os.environ.get("KUBECONFIG") or None
            await k8s_config.load_kube_config(config_file=kubeconfig, context=kube.context or None)
            _log.info("k8s client configured from kubeconfig", context=kube.context or "<current>")
    except (k8s_config.ConfigException, OSError) as exc:
        raise ClusterUnreachableError(f"cannot load cluster configuration: {exc}") from exc

    cluster_name = config.cluster_id or kube.context or "unknown"
    return KubernetesQueryClient(k8s_client.ApiClient(), cluster_name=cluster_name)
