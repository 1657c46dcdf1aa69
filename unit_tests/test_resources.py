import pytest

from harness.config.constants import NODE_CURRENT_IMAGE_ANNOTATION, POOL_OS_IMAGE_ANNOTATION
from harness.resources import POOL, SECRET, BuildState, PoolBuildState, Snapshot, node_current_image


def pool_with(*true_conditions, image=None):
    pool = {
        "metadata": {"name": "layered", "resourceVersion": "7"},
        "status": {"conditions": [{"type": c, "status": "True"} for c in true_conditions]},
    }
    if image:
        pool["metadata"]["annotations"] = {POOL_OS_IMAGE_ANNOTATION: image}
    return pool


@pytest.mark.parametrize(
    "conditions,state",
    [
        ((), BuildState.Idle),
        (("BuildPending",), BuildState.Building),
        (("Building",), BuildState.Building),
        (("BuildSuccess",), BuildState.Succeeded),
        (("BuildFailed",), BuildState.Failed),
        (("Building", "BuildFailed"), BuildState.Failed),
    ],
)
def test_build_state_from_conditions(conditions, state):
    assert PoolBuildState(pool_with(*conditions)).state == state


def test_false_conditions_are_ignored():
    pool = {"metadata": {"name": "layered"}, "status": {"conditions": [{"type": "Building", "status": "False"}]}}
    assert PoolBuildState(pool).state == BuildState.Idle


def test_os_image_from_snapshot():
    lps = PoolBuildState(Snapshot.of(pool_with("BuildSuccess", image="registry.example/os-image@sha256:deadbeef")))

    assert lps.is_build_success()
    assert lps.get_os_image() == "registry.example/os-image@sha256:deadbeef"


def test_paths():
    assert POOL.path("layered") == "/apis/machineconfiguration.openshift.io/v1/machineconfigpools/layered"
    assert SECRET.collection_path("openshift-config") == "/api/v1/namespaces/openshift-config/secrets"


def test_node_current_image():
    node = {"metadata": {"name": "n", "annotations": {NODE_CURRENT_IMAGE_ANNOTATION: "img"}}}
    assert node_current_image(node) == "img"
    assert node_current_image({"metadata": {"name": "n"}}) is None
