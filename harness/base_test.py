"""
Base test class with common utilities.
"""

import logging

import flexitest

from harness.config import HarnessConfig, ScenarioOptions, ServiceType
from harness.node_exec import NodeExecutor
from harness.scenario import ScenarioOrchestrator, ScenarioResult
from harness.services import KubeProxyService


class BaseTest(flexitest.Test):
    """
    Base class for all functional tests.

    Tests should explicitly:
    - Get services from self.get_service()
    - Create API clients
    - Set up any required state
    """

    def premain(self, ctx: flexitest.RunContext):
        """
        Things that need to be done before we run the test.
        """
        self.runctx = ctx
        self.logger = logging.getLogger(f"test.{type(self).__name__}")

    def main(self, ctx) -> bool:  # type: ignore[override]
        raise NotImplementedError


class LayeringTest(BaseTest):
    """
    Base Test class for on-cluster build scenarios. Assumes the cluster env.
    """

    def get_service(self, typ: ServiceType) -> KubeProxyService:
        svc = self.runctx.get_service(typ)
        if svc is None:
            raise RuntimeError(
                f"Service '{typ}' not found. Available services: "
                f"{list(self.runctx.env.services.keys())}"  # type: ignore[union-attr]
            )
        return svc

    @property
    def harness_config(self) -> HarnessConfig:
        return getattr(self.runctx.env, "harness_config", None) or HarnessConfig()

    def make_orchestrator(self) -> ScenarioOrchestrator:
        config = self.harness_config
        client = self.get_service(ServiceType.KubeProxy).create_client()
        executor = NodeExecutor(config.oc_binary, config.kubeconfig)
        return ScenarioOrchestrator(client, executor, config)

    def run_scenario(self, options: ScenarioOptions) -> ScenarioResult:
        result = self.make_orchestrator().run(options)
        self.logger.info(f"Built image: {result.image_pullspec}")
        return result
