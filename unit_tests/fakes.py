"""In-memory stand-ins for the control plane, the build controller and the clock."""

import copy
import itertools
from collections.abc import Callable

from harness.config.constants import (
    BUILDER_PUSH_SECRET_PREFIX,
    GLOBAL_PULL_SECRET_NAME,
    GLOBAL_PULL_SECRET_NAMESPACE,
    LAYERING_ENABLED_POOL_LABEL,
    MCO_NAMESPACE,
    NODE_CURRENT_IMAGE_ANNOTATION,
    POOL_OS_IMAGE_ANNOTATION,
    role_label,
)
from harness.errors import AlreadyExistsError, ConflictError, NotFoundError
from harness.resources import IMAGE_STREAM, NODE, POOL, SECRET, BuildState, ResourceKind, Snapshot

BUILT_IMAGE = "registry.example/os-image@sha256:deadbeef"

CONDITION_FOR_STATE = {
    BuildState.Building: "Building",
    BuildState.Succeeded: "BuildSuccess",
    BuildState.Failed: "BuildFailed",
}


class FakeClock:
    """Monotonic clock that only moves when something sleeps."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class InMemoryControlPlane:
    """
    Versioned object store with the same surface as `KubeClient`.

    `inject_conflicts(kind, name, n)` makes the next `n` updates of that object
    lose a race: a competing write bumps the version just before the compare.
    """

    def __init__(self):
        self.objects: dict[tuple[str, str | None, str], dict] = {}
        self.calls: list[tuple[str, str, str]] = []
        self._versions = itertools.count(1)
        self._pending_conflicts: dict[tuple[str, str], int] = {}
        self.get_hooks: list[Callable[["InMemoryControlPlane", ResourceKind, dict], None]] = []
        self.create_hooks: list[Callable[["InMemoryControlPlane", ResourceKind, dict], None]] = []
        self.fail_deletes: set[tuple[str, str]] = set()

    def _key(self, kind: ResourceKind, name: str, namespace: str | None):
        return (kind.name, namespace if kind.namespaced else None, name)

    def _bump(self, obj: dict) -> None:
        obj.setdefault("metadata", {})["resourceVersion"] = str(next(self._versions))

    def seed(self, kind: ResourceKind, obj: dict, namespace: str | None = None) -> None:
        obj = copy.deepcopy(obj)
        self._bump(obj)
        self.objects[self._key(kind, obj["metadata"]["name"], namespace)] = obj

    def raw(self, kind: ResourceKind, name: str, namespace: str | None = None) -> dict:
        return self.objects[self._key(kind, name, namespace)]

    def exists(self, kind: ResourceKind, name: str, namespace: str | None = None) -> bool:
        return self._key(kind, name, namespace) in self.objects

    def count(self, verb: str, kind: ResourceKind, name: str) -> int:
        return self.calls.count((verb, kind.name, name))

    def inject_conflicts(self, kind: ResourceKind, name: str, n: int) -> None:
        self._pending_conflicts[(kind.name, name)] = n

    def get(self, kind: ResourceKind, name: str, namespace: str | None = None) -> Snapshot:
        self.calls.append(("get", kind.name, name))
        key = self._key(kind, name, namespace)
        if key not in self.objects:
            raise NotFoundError(kind.name, name)
        for hook in self.get_hooks:
            hook(self, kind, self.objects[key])
        return Snapshot.of(copy.deepcopy(self.objects[key]))

    def list(self, kind: ResourceKind, namespace: str | None = None, label_selector: str | None = None):
        self.calls.append(("list", kind.name, namespace or ""))
        wanted = {}
        for term in (label_selector or "").split(","):
            if term:
                k, _, v = term.partition("=")
                wanted[k] = v
        items = []
        for (kname, ns, _), obj in sorted(self.objects.items(), key=lambda kv: kv[0][2]):
            if kname != kind.name or (kind.namespaced and ns != namespace):
                continue
            labels = obj["metadata"].get("labels") or {}
            if all(k in labels and (not v or labels[k] == v) for k, v in wanted.items()):
                items.append(Snapshot.of(copy.deepcopy(obj)))
        return items

    def create(self, kind: ResourceKind, obj: dict, namespace: str | None = None) -> Snapshot:
        name = obj["metadata"]["name"]
        self.calls.append(("create", kind.name, name))
        key = self._key(kind, name, namespace)
        if key in self.objects:
            raise AlreadyExistsError(kind.name, name)
        stored = copy.deepcopy(obj)
        self._bump(stored)
        self.objects[key] = stored
        for hook in self.create_hooks:
            hook(self, kind, stored)
        return Snapshot.of(copy.deepcopy(stored))

    def update(self, kind: ResourceKind, name: str, obj: dict, expected_version: str, namespace=None) -> Snapshot:
        self.calls.append(("update", kind.name, name))
        key = self._key(kind, name, namespace)
        if key not in self.objects:
            raise NotFoundError(kind.name, name)
        current = self.objects[key]

        pending = self._pending_conflicts.get((kind.name, name), 0)
        if pending:
            self._pending_conflicts[(kind.name, name)] = pending - 1
            self._bump(current)

        if current["metadata"]["resourceVersion"] != expected_version:
            raise ConflictError(kind.name, name)

        stored = copy.deepcopy(obj)
        stored.setdefault("status", current.get("status"))
        self._bump(stored)
        self.objects[key] = stored
        return Snapshot.of(copy.deepcopy(stored))

    def delete(self, kind: ResourceKind, name: str, namespace: str | None = None) -> None:
        self.calls.append(("delete", kind.name, name))
        if (kind.name, name) in self.fail_deletes:
            raise RuntimeError(f"injected delete failure for {kind} {name}")
        key = self._key(kind, name, namespace)
        if key not in self.objects:
            raise NotFoundError(kind.name, name)
        del self.objects[key]


def set_build_state(pool: dict, state: BuildState, image: str | None = None) -> None:
    status = pool.setdefault("status", {})
    status["conditions"] = [
        {"type": cond, "status": "True" if s == state else "False"} for s, cond in CONDITION_FOR_STATE.items()
    ]
    if image:
        pool.setdefault("metadata", {}).setdefault("annotations", {})[POOL_OS_IMAGE_ANNOTATION] = image


class FakeBuildController:
    """
    Reacts to the control plane like the real controller would, one step per read.

    - new pools get a rendered config right away
    - new image streams get a repository
    - a labelled pool walks through `states`, one state per read, the last one sticks
    - a node moved into the pool reports the built image on its next read
    """

    def __init__(self, states: list[BuildState], image: str = BUILT_IMAGE):
        self.states = list(states)
        self.image = image
        self.observed: list[BuildState] = []

    def install(self, cp: InMemoryControlPlane) -> "FakeBuildController":
        cp.create_hooks.append(self.on_create)
        cp.get_hooks.append(self.on_get)
        return self

    def on_create(self, cp: InMemoryControlPlane, kind: ResourceKind, obj: dict) -> None:
        name = obj["metadata"]["name"]
        if kind == POOL:
            obj["status"] = {
                "configuration": {
                    "name": f"rendered-{name}-0123456789abcdef",
                    "source": [{"name": "00-worker"}, {"name": "01-worker-kubelet"}],
                }
            }
        elif kind == IMAGE_STREAM:
            obj["status"] = {"dockerImageRepository": f"image-registry.example:5000/{MCO_NAMESPACE}/{name}"}

    def on_get(self, cp: InMemoryControlPlane, kind: ResourceKind, obj: dict) -> None:
        if kind == POOL:
            labels = obj["metadata"].get("labels") or {}
            if LAYERING_ENABLED_POOL_LABEL not in labels or not self.states:
                return
            state = self.states.pop(0) if len(self.states) > 1 else self.states[0]
            self.observed.append(state)
            set_build_state(obj, state, self.image if state == BuildState.Succeeded else None)
        elif kind == NODE:
            labels = obj["metadata"].get("labels") or {}
            if any(k.startswith(role_label("")) and k != role_label("worker") for k in labels):
                obj["metadata"].setdefault("annotations", {})[NODE_CURRENT_IMAGE_ANNOTATION] = self.image


def seed_cluster(cp: InMemoryControlPlane, workers: int = 2) -> InMemoryControlPlane:
    cp.seed(
        SECRET,
        {"metadata": {"name": f"{BUILDER_PUSH_SECRET_PREFIX}x7k2p"}, "type": "kubernetes.io/dockercfg"},
        MCO_NAMESPACE,
    )
    cp.seed(SECRET, {"metadata": {"name": "default-token-abcde"}}, MCO_NAMESPACE)
    cp.seed(
        SECRET,
        {
            "metadata": {"name": GLOBAL_PULL_SECRET_NAME},
            "type": "kubernetes.io/dockerconfigjson",
            "data": {".dockerconfigjson": "e30="},
        },
        GLOBAL_PULL_SECRET_NAMESPACE,
    )
    for i in range(workers):
        cp.seed(NODE, {"metadata": {"name": f"worker-{i}", "labels": {role_label("worker"): ""}}})
    return cp


class FakeExecutor:
    def __init__(self, output: str = " ______\n< Moo! >\n ------"):
        self.output = output
        self.calls: list[tuple[str, tuple[str, ...]]] = []

    def exec_on_node(self, node: str, *cmd: str) -> str:
        self.calls.append((node, cmd))
        return self.output
