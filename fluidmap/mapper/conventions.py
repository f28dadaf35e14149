"""Static Fluid naming and labelling conventions.

These tables are domain knowledge, not state: they are built once at import
and exposed read-only.  Components receive a ``Conventions`` instance so
tests can substitute their own.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from fluidmap.k8s.crds import DATASET_KIND, RUNTIME_RESOURCES
from fluidmap.models.graph import ComponentType, RuntimeType

LABEL_RELEASE = "release"
LABEL_APP = "app"
LABEL_ROLE = "role"
LABEL_COMPONENT = "component"

# Labels copied onto resource nodes; everything else is dropped.
KEPT_LABELS: frozenset[str] = frozenset({LABEL_RELEASE, LABEL_APP, LABEL_ROLE, LABEL_COMPONENT})

_ROLE_COMPONENTS = (ComponentType.MASTER, ComponentType.WORKER, ComponentType.FUSE)


def _role_vocabulary(runtime_type: RuntimeType) -> Mapping[str, ComponentType]:
    return MappingProxyType({f"{runtime_type.value}-{c.value}": c for c in _ROLE_COMPONENTS})


ROLE_VOCABULARY: Mapping[RuntimeType, Mapping[str, ComponentType]] = MappingProxyType(
    {rt: _role_vocabulary(rt) for rt in RUNTIME_RESOURCES}
)

ALL_ROLES: Mapping[str, ComponentType] = MappingProxyType(
    {role: component for vocab in ROLE_VOCABULARY.values() for role, component in vocab.items()}
)

RUNTIME_KINDS: frozenset[str] = frozenset(r.kind for r in RUNTIME_RESOURCES.values())

# Owner kinds that make a release-labelled workload set Fluid-managed.
RECOGNIZED_OWNER_KINDS: frozenset[str] = RUNTIME_KINDS

# Claims and config objects may also be owned by the Dataset itself.
RECOGNIZED_CONFIG_OWNER_KINDS: frozenset[str] = RUNTIME_KINDS | {DATASET_KIND}


def release_selector(name: str) -> str:
    return f"{LABEL_RELEASE}={name}"


def master_stateful_set_name(name: str) -> str:
    return f"{name}-master"


def worker_stateful_set_name(name: str) -> str:
    return f"{name}-worker"


def fuse_daemon_set_name(name: str) -> str:
    return f"{name}-fuse"


@dataclass(frozen=True)
class Conventions:
    """Lookup tables used by discovery and warning detection."""

    role_vocabulary: Mapping[RuntimeType, Mapping[str, ComponentType]] = field(default_factory=lambda: ROLE_VOCABULARY)
    all_roles: Mapping[str, ComponentType] = field(default_factory=lambda: ALL_ROLES)
    kept_labels: frozenset[str] = KEPT_LABELS
    recognized_owner_kinds: frozenset[str] = RECOGNIZED_OWNER_KINDS
    recognized_config_owner_kinds: frozenset[str] = RECOGNIZED_CONFIG_OWNER_KINDS

    def roles_for(self, runtime_type: RuntimeType | None) -> Mapping[str, ComponentType]:
        """Role vocabulary of *runtime_type*; every known role when it is unresolved or unknown."""
        if runtime_type is None:
            return self.all_roles
        return self.role_vocabulary.get(runtime_type, self.all_roles)

    def classify_role(self, labels: Mapping[str, str], runtime_type: RuntimeType | None) -> ComponentType:
        """Exact-match the ``role`` label against the vocabulary, else UNKNOWN."""
        return self.roles_for(runtime_type).get(labels.get(LABEL_ROLE, ""), ComponentType.UNKNOWN)

    def filter_labels(self, labels: Mapping[str, str]) -> dict[str, str]:
        return {k: v for k, v in labels.items() if k in self.kept_labels}


DEFAULT_CONVENTIONS = Conventions()
