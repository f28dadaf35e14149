"""Configuration data structures."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class KubeConfig:
    """Cluster connection configuration."""

    kubeconfig: str = ""
    context: str = ""
    in_cluster: bool = False


@dataclass
class MapperConfig:
    """Default mapping options."""

    timeout_seconds: int = 30
    include_pods: bool = True
    include_configs: bool = True
    include_storage: bool = True


@dataclass
class APIConfig:
    """REST API configuration."""

    port: int = 8080


@dataclass
class LogConfig:
    """Logging configuration."""

    level: str = "warning"


@dataclass
class FluidMapConfig:
    """Top-level fluidmap configuration."""

    cluster_id: str = ""
    kube: KubeConfig = field(default_factory=KubeConfig)
    mapper: MapperConfig = field(default_factory=MapperConfig)
    api: APIConfig = field(default_factory=APIConfig)
    log: LogConfig = field(default_factory=LogConfig)
