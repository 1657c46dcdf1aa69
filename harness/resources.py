"""
Resource kinds, versioned snapshots, and status interpretation.

Objects travel as the plain JSON dicts the API server returns; the helpers
here read the few fields the scenarios care about.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from harness.config.constants import (
    NODE_CURRENT_IMAGE_ANNOTATION,
    NODE_STATE_ANNOTATION,
    POOL_OS_IMAGE_ANNOTATION,
)


@dataclass(frozen=True)
class ResourceKind:
    """Where a kind lives in the REST API."""

    name: str
    api_prefix: str
    plural: str
    namespaced: bool

    def collection_path(self, namespace: str | None = None) -> str:
        if self.namespaced:
            if not namespace:
                raise ValueError(f"{self.name} is namespaced, a namespace is required")
            return f"{self.api_prefix}/namespaces/{namespace}/{self.plural}"
        return f"{self.api_prefix}/{self.plural}"

    def path(self, name: str, namespace: str | None = None) -> str:
        return f"{self.collection_path(namespace)}/{name}"

    def __str__(self) -> str:
        return self.name


POOL = ResourceKind("MachineConfigPool", "/apis/machineconfiguration.openshift.io/v1", "machineconfigpools", False)
CONFIG_MAP = ResourceKind("ConfigMap", "/api/v1", "configmaps", True)
SECRET = ResourceKind("Secret", "/api/v1", "secrets", True)
NODE = ResourceKind("Node", "/api/v1", "nodes", False)
IMAGE_STREAM = ResourceKind("ImageStream", "/apis/image.openshift.io/v1", "imagestreams", True)


@dataclass(frozen=True)
class Snapshot:
    """An object as read from the API together with its resourceVersion."""

    obj: dict[str, Any]
    version: str

    @property
    def name(self) -> str:
        return self.obj["metadata"]["name"]

    @property
    def labels(self) -> dict[str, str]:
        return self.obj.get("metadata", {}).get("labels") or {}

    @property
    def annotations(self) -> dict[str, str]:
        return self.obj.get("metadata", {}).get("annotations") or {}

    @classmethod
    def of(cls, obj: dict[str, Any]) -> "Snapshot":
        return cls(obj, obj.get("metadata", {}).get("resourceVersion", ""))


class BuildState(str, Enum):
    Idle = "Idle"
    Building = "Building"
    Succeeded = "Succeeded"
    Failed = "Failed"

    def __str__(self) -> str:
        return self.value

    @property
    def terminal(self) -> bool:
        return self in (BuildState.Succeeded, BuildState.Failed)


def _true_conditions(obj: dict[str, Any]) -> set[str]:
    conditions = obj.get("status", {}).get("conditions") or []
    return {c.get("type") for c in conditions if c.get("status") == "True"}


class PoolBuildState:
    """
    Read-only view of a pool's build status.

    Precedence when several build conditions are true at once:
    BuildFailed > BuildSuccess > Building/BuildPending.
    """

    def __init__(self, pool: dict[str, Any] | Snapshot):
        self.pool = pool.obj if isinstance(pool, Snapshot) else pool

    @property
    def name(self) -> str:
        return self.pool["metadata"]["name"]

    @property
    def state(self) -> BuildState:
        conds = _true_conditions(self.pool)
        if "BuildFailed" in conds:
            return BuildState.Failed
        if "BuildSuccess" in conds:
            return BuildState.Succeeded
        if "Building" in conds or "BuildPending" in conds:
            return BuildState.Building
        return BuildState.Idle

    def is_building(self) -> bool:
        return self.state == BuildState.Building

    def is_build_success(self) -> bool:
        return self.state == BuildState.Succeeded

    def is_build_failure(self) -> bool:
        return self.state == BuildState.Failed

    def get_os_image(self) -> str | None:
        annotations = self.pool.get("metadata", {}).get("annotations") or {}
        return annotations.get(POOL_OS_IMAGE_ANNOTATION) or None

    def has_os_image(self) -> bool:
        return self.get_os_image() is not None

    def rendered_config(self) -> tuple[str | None, list[str]]:
        """Name of the current rendered config and the machine configs it was built from."""
        configuration = self.pool.get("status", {}).get("configuration") or {}
        sources = [s.get("name") for s in configuration.get("source") or []]
        return configuration.get("name"), sources

    def __repr__(self) -> str:
        return f"PoolBuildState({self.name!r}, state={self.state}, image={self.get_os_image()!r})"


def node_current_image(node: dict[str, Any] | Snapshot) -> str | None:
    obj = node.obj if isinstance(node, Snapshot) else node
    return (obj.get("metadata", {}).get("annotations") or {}).get(NODE_CURRENT_IMAGE_ANNOTATION)


def node_state(node: dict[str, Any] | Snapshot) -> str | None:
    obj = node.obj if isinstance(node, Snapshot) else node
    return (obj.get("metadata", {}).get("annotations") or {}).get(NODE_STATE_ANNOTATION)
