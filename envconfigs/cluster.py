"""Environment configurations."""

from typing import cast

import flexitest

from factories.kube_proxy import KubeProxyFactory
from harness.config import HarnessConfig, ServiceType


class ClusterLiveEnv(flexitest.LiveEnv):
    """
    Live environment for a running cluster. Carries the harness configuration
    so tests can build orchestrators without reaching for globals.
    """

    def __init__(self, services, harness_config: HarnessConfig):
        super().__init__(services)
        self.harness_config = harness_config


class ClusterEnvConfig(flexitest.EnvConfig):
    """
    Cluster environment: starts an API proxy against an existing cluster.
    """

    def __init__(self, harness_config: HarnessConfig | None = None):
        self.harness_config = harness_config or HarnessConfig()

    def init(self, ectx: flexitest.EnvContext) -> flexitest.LiveEnv:
        proxy_factory = cast(KubeProxyFactory, ectx.get_factory(ServiceType.KubeProxy))

        proxy = proxy_factory.create_proxy(
            kubeconfig=self.harness_config.kubeconfig,
            binary=self.harness_config.kubectl_binary,
        )

        # Wait for the proxy to reach the API server
        proxy.wait_for_ready(timeout=30)

        services = {
            ServiceType.KubeProxy: proxy,
        }

        return ClusterLiveEnv(services, self.harness_config)
