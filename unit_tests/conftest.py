import pytest

from harness.config import HarnessConfig, RetryPolicy
from unit_tests.fakes import FakeClock, FakeExecutor, InMemoryControlPlane, seed_cluster


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def control_plane() -> InMemoryControlPlane:
    return seed_cluster(InMemoryControlPlane())


@pytest.fixture
def executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture
def harness_config() -> HarnessConfig:
    return HarnessConfig(
        poll_interval=5,
        rendered_config_timeout=60,
        build_start_timeout=300,
        build_timeout=1200,
        rollout_timeout=600,
        scenario_timeout=3600,
        retry=RetryPolicy(max_attempts=5, delay=0.01, jitter=0),
    )
