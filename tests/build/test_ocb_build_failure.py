"""Test that a failing build is reported as such instead of timing out."""

import logging
import time

import flexitest

from harness.base_test import LayeringTest
from harness.config import ImageBuilderType, ScenarioOptions
from harness.config.constants import LAYERED_POOL_NAME
from harness.errors import ScenarioError, UnrecoverableStateError
from harness.scenario import Phase

logger = logging.getLogger(__name__)

BROKEN_DOCKERFILE = """FROM configs AS final
RUN exit 1"""


@flexitest.register
class TestOnClusterBuildFailureIsUnrecoverable(LayeringTest):
    """A Dockerfile that cannot build must fail the completion wait immediately."""

    def __init__(self, ctx: flexitest.InitContext):
        ctx.set_env("cluster")

    def main(self, ctx):
        build_timeout = self.harness_config.build_timeout
        started = time.monotonic()
        try:
            self.run_scenario(
                ScenarioOptions(
                    builder_type=ImageBuilderType.OpenshiftImageBuilder,
                    pool_name=LAYERED_POOL_NAME,
                    dockerfile_overrides={LAYERED_POOL_NAME: BROKEN_DOCKERFILE},
                    skip_cleanup=self.harness_config.skip_cleanup,
                )
            )
        except ScenarioError as e:
            elapsed = time.monotonic() - started
            logger.info(f"scenario failed as expected in {elapsed:.0f}s: {e}")
            assert e.phase == Phase.BuildComplete, f"expected failure in build-complete, got {e.phase}"
            assert isinstance(e.cause, UnrecoverableStateError), f"expected unrecoverable, got {e.kind}"
            assert e.cleanup_error is None, f"cleanup failed: {e.cleanup_error}"
            return True

        raise AssertionError(f"build with a broken Dockerfile succeeded (budget was {build_timeout}s)")
