"""
Service wrappers for test infrastructure.
"""

from harness.services.base import ApiService
from harness.services.kube_proxy import KubeProxyProps, KubeProxyService

__all__ = [
    "ApiService",
    "KubeProxyService",
    "KubeProxyProps",
]
