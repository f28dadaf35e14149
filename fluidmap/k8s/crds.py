"""Fluid custom resource coordinates."""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType

from fluidmap.models.graph import RuntimeType

FLUID_API_GROUP = "data.fluid.io"
FLUID_API_VERSION = "v1alpha1"
FLUID_API = f"{FLUID_API_GROUP}/{FLUID_API_VERSION}"

DATASET_KIND = "Dataset"
DATASET_PLURAL = "datasets"


@dataclass(frozen=True)
class RuntimeResource:
    """Kind and plural resource name of one runtime CRD."""

    kind: str
    plural: str


RUNTIME_RESOURCES: MappingProxyType[RuntimeType, RuntimeResource] = MappingProxyType(
    {
        RuntimeType.ALLUXIO: RuntimeResource("AlluxioRuntime", "alluxioruntimes"),
        RuntimeType.JINDO: RuntimeResource("JindoRuntime", "jindoruntimes"),
        RuntimeType.JUICEFS: RuntimeResource("JuiceFSRuntime", "juicefsruntimes"),
        RuntimeType.GOOSEFS: RuntimeResource("GooseFSRuntime", "goosefsruntimes"),
        RuntimeType.VINEYARD: RuntimeResource("VineyardRuntime", "vineyardruntimes"),
        RuntimeType.EFC: RuntimeResource("EFCRuntime", "efcruntimes"),
        RuntimeType.THIN: RuntimeResource("ThinRuntime", "thinruntimes"),
    }
)


def parse_runtime_type(value: str) -> RuntimeType:
    """Map a runtime type tag to a known RuntimeType, or UNKNOWN."""
    try:
        runtime_type = RuntimeType(value.lower())
    except ValueError:
        return RuntimeType.UNKNOWN
    return runtime_type if runtime_type in RUNTIME_RESOURCES else RuntimeType.UNKNOWN
