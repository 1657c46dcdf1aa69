"""Test an on-cluster build with the OpenShift Image Builder."""

import flexitest

from harness.base_test import LayeringTest
from harness.config import ImageBuilderType, ScenarioOptions
from harness.config.constants import COWSAY_DOCKERFILE, LAYERED_POOL_NAME


@flexitest.register
class TestOnClusterBuildsOpenshiftImageBuilder(LayeringTest):
    """Test that an on-cluster build can be performed with the OpenShift Image Builder."""

    def __init__(self, ctx: flexitest.InitContext):
        ctx.set_env("cluster")

    def main(self, ctx):
        result = self.run_scenario(
            ScenarioOptions(
                builder_type=ImageBuilderType.OpenshiftImageBuilder,
                pool_name=LAYERED_POOL_NAME,
                dockerfile_overrides={LAYERED_POOL_NAME: COWSAY_DOCKERFILE},
                skip_cleanup=self.harness_config.skip_cleanup,
            )
        )
        assert result.image_pullspec, "expected a built image pullspec"
        return True
