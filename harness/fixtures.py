"""
Fixture helpers for on-cluster build scenarios.

Every helper that creates an object registers its deletion with the given
`CleanupRegistry` before returning, so an abort halfway through provisioning
still unwinds whatever already exists.
"""

import logging
import random

from harness.cleanup import CleanupAction, CleanupRegistry
from harness.client import ResourceStore
from harness.config import BuildConfiguration, DockerfileOverride, RetryPolicy
from harness.config.constants import (
    BUILDER_PUSH_SECRET_PREFIX,
    CUSTOM_DOCKERFILE_CONFIGMAP,
    GLOBAL_PULL_SECRET_CLONE_NAME,
    GLOBAL_PULL_SECRET_NAME,
    GLOBAL_PULL_SECRET_NAMESPACE,
    LAYERING_ENABLED_POOL_LABEL,
    NODE_STATE_DEGRADED,
    ON_CLUSTER_BUILD_CONFIGMAP,
    role_label,
)
from harness.errors import NotFoundError
from harness.mutate import add_label, mutate_with_retry, remove_label
from harness.resources import (
    CONFIG_MAP,
    IMAGE_STREAM,
    NODE,
    POOL,
    SECRET,
    PoolBuildState,
    ResourceKind,
    Snapshot,
    node_current_image,
    node_state,
)
from harness.wait import Outcome, StateWaiter

logger = logging.getLogger(__name__)


def _register_delete(
    store: ResourceStore,
    registry: CleanupRegistry,
    kind: ResourceKind,
    name: str,
    namespace: str | None = None,
) -> CleanupAction:
    def delete():
        try:
            store.delete(kind, name, namespace)
        except NotFoundError:
            logger.info(f"{kind} '{name}' already gone")

    return registry.register(delete, name=f"delete {kind} {name}")


def _create_and_register(
    store: ResourceStore,
    registry: CleanupRegistry,
    kind: ResourceKind,
    obj: dict,
    namespace: str | None = None,
) -> Snapshot:
    created = store.create(kind, obj, namespace)
    _register_delete(store, registry, kind, obj["metadata"]["name"], namespace)
    return created


# ---------------------------------------------------------------------------
# Build prerequisites
# ---------------------------------------------------------------------------


def get_builder_push_secret_name(store: ResourceStore, namespace: str) -> str:
    """Name of the builder service account's dockercfg secret in `namespace`."""
    for secret in store.list(SECRET, namespace):
        if secret.name.startswith(BUILDER_PUSH_SECRET_PREFIX):
            return secret.name
    raise NotFoundError(SECRET.name, f"{BUILDER_PUSH_SECRET_PREFIX}*", f"no builder push secret in {namespace}")


def create_image_stream(store: ResourceStore, registry: CleanupRegistry, name: str, namespace: str) -> Snapshot:
    obj = {
        "apiVersion": "image.openshift.io/v1",
        "kind": "ImageStream",
        "metadata": {"name": name, "namespace": namespace},
    }
    return _create_and_register(store, registry, IMAGE_STREAM, obj, namespace)


def get_image_stream_pullspec(waiter: StateWaiter, name: str, namespace: str, timeout: float = 60) -> str:
    """Wait for the image registry to assign the stream a repository and return its :latest pullspec."""

    def has_repository(snap: Snapshot) -> Outcome:
        repo = snap.obj.get("status", {}).get("dockerImageRepository")
        return Outcome.Satisfied if repo else Outcome.Continue

    snap = waiter.wait_for(
        IMAGE_STREAM,
        name,
        has_repository,
        timeout=timeout,
        namespace=namespace,
        description=f"ImageStream '{name}' repository",
    )
    return f"{snap.obj['status']['dockerImageRepository']}:latest"


def clone_global_pull_secret(store: ResourceStore, registry: CleanupRegistry, namespace: str) -> Snapshot:
    """Copy the cluster pull secret into `namespace` so the build can pull base images."""
    src = store.get(SECRET, GLOBAL_PULL_SECRET_NAME, GLOBAL_PULL_SECRET_NAMESPACE)
    obj = {
        "apiVersion": "v1",
        "kind": "Secret",
        "metadata": {"name": GLOBAL_PULL_SECRET_CLONE_NAME, "namespace": namespace},
        "type": src.obj.get("type", "kubernetes.io/dockerconfigjson"),
        "data": dict(src.obj.get("data") or {}),
    }
    return _create_and_register(store, registry, SECRET, obj, namespace)


def create_build_config(
    store: ResourceStore,
    registry: CleanupRegistry,
    build_config: BuildConfiguration,
    namespace: str,
) -> Snapshot:
    obj = {
        "apiVersion": "v1",
        "kind": "ConfigMap",
        "metadata": {"name": ON_CLUSTER_BUILD_CONFIGMAP, "namespace": namespace},
        "data": build_config.as_data(),
    }
    return _create_and_register(store, registry, CONFIG_MAP, obj, namespace)


def create_dockerfile_overrides(
    store: ResourceStore,
    registry: CleanupRegistry,
    overrides: list[DockerfileOverride],
    namespace: str,
) -> Snapshot | None:
    """Create the custom Dockerfile ConfigMap. Nothing is created for an empty list."""
    if not overrides:
        return None
    obj = {
        "apiVersion": "v1",
        "kind": "ConfigMap",
        "metadata": {"name": CUSTOM_DOCKERFILE_CONFIGMAP, "namespace": namespace},
        "data": {o.pool: o.content for o in overrides},
    }
    return _create_and_register(store, registry, CONFIG_MAP, obj, namespace)


# ---------------------------------------------------------------------------
# Pools
# ---------------------------------------------------------------------------


def create_pool(store: ResourceStore, registry: CleanupRegistry, name: str) -> Snapshot:
    """Create a pool that inherits worker configs and selects nodes with the `name` role."""
    obj = {
        "apiVersion": "machineconfiguration.openshift.io/v1",
        "kind": "MachineConfigPool",
        "metadata": {"name": name},
        "spec": {
            "machineConfigSelector": {
                "matchExpressions": [
                    {
                        "key": "machineconfiguration.openshift.io/role",
                        "operator": "In",
                        "values": ["worker", name],
                    }
                ]
            },
            "nodeSelector": {"matchLabels": {role_label(name): ""}},
        },
    }
    return _create_and_register(store, registry, POOL, obj)


def wait_for_rendered_config(
    waiter: StateWaiter,
    pool: str,
    required_config: str,
    timeout: float,
) -> str:
    """Wait until the pool has a rendered config built from `required_config`. Returns its name."""

    def rendered(snap: Snapshot) -> Outcome:
        current, sources = PoolBuildState(snap).rendered_config()
        if current and current.startswith(f"rendered-{pool}-") and required_config in sources:
            return Outcome.Satisfied
        return Outcome.Continue

    snap = waiter.wait_for(POOL, pool, rendered, timeout=timeout, description=f"rendered config for pool '{pool}'")
    name, _ = PoolBuildState(snap).rendered_config()
    logger.info(f"Pool '{pool}' has rendered config {name}")
    return name


def opt_pool_into_layering(
    store: ResourceStore,
    registry: CleanupRegistry,
    pool: str,
    policy: RetryPolicy | None = None,
) -> CleanupAction:
    """Add the layering label to `pool`. Returns the registered action that removes it again."""
    mutate_with_retry(store, POOL, pool, add_label(LAYERING_ENABLED_POOL_LABEL), policy=policy)
    logger.info(f"Added label {LAYERING_ENABLED_POOL_LABEL!r} to pool {pool} to opt into layering")

    def opt_out():
        mutate_with_retry(store, POOL, pool, remove_label(LAYERING_ENABLED_POOL_LABEL), policy=policy)
        logger.info(f"Removed label {LAYERING_ENABLED_POOL_LABEL!r} from pool {pool} to opt out of layering")

    return registry.register(opt_out, name=f"unlabel pool {pool}")


# ---------------------------------------------------------------------------
# Nodes
# ---------------------------------------------------------------------------


def get_random_node(store: ResourceStore, role: str) -> str:
    nodes = store.list(NODE, label_selector=role_label(role))
    if not nodes:
        raise NotFoundError(NODE.name, f"<role={role}>", f"no nodes with role {role}")
    return random.choice(nodes).name


def label_node(
    store: ResourceStore,
    registry: CleanupRegistry,
    node: str,
    role: str,
    policy: RetryPolicy | None = None,
) -> CleanupAction:
    """Move `node` into the pool for `role`. Returns the registered action that undoes it."""
    label = role_label(role)
    mutate_with_retry(store, NODE, node, add_label(label), policy=policy)
    logger.info(f"Labelled node {node} with {label}")

    def unlabel():
        mutate_with_retry(store, NODE, node, remove_label(label), policy=policy)
        logger.info(f"Removed label {label} from node {node}")

    return registry.register(unlabel, name=f"unlabel node {node}")


def wait_for_node_image(waiter: StateWaiter, node: str, pullspec: str, timeout: float) -> Snapshot:
    """Wait for `node` to boot into `pullspec`. A degraded node fails the wait immediately."""

    def booted(snap: Snapshot) -> Outcome:
        if node_current_image(snap) == pullspec:
            return Outcome.Satisfied
        if node_state(snap) == NODE_STATE_DEGRADED:
            return Outcome.Unrecoverable
        return Outcome.Continue

    return waiter.wait_for(NODE, node, booted, timeout=timeout, description=f"node '{node}' to run {pullspec}")
