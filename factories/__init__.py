"""Service factories for creating test services."""

from factories.kube_proxy import KubeProxyFactory

__all__ = ["KubeProxyFactory"]
