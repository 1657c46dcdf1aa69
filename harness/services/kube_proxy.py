"""
`kubectl proxy` service wrapper.
"""

from typing import TypedDict

from harness.client import KubeClient
from harness.services.base import ApiService


class KubeProxyProps(TypedDict):
    """Properties for the API proxy service."""

    port: int
    api_url: str
    kubeconfig: str | None
    datadir: str


class KubeProxyService(ApiService):
    """
    ApiService for a local `kubectl proxy`, health-checked via `/version`.
    """

    props: KubeProxyProps

    def __init__(
        self,
        props: KubeProxyProps,
        cmd: list[str],
        stdout: str | None = None,
        name: str | None = None,
    ):
        super().__init__(dict(props), cmd, stdout, name)

    def _health_check(self, client: KubeClient):
        client.server_version()

    def create_client(self) -> KubeClient:
        if not self.check_status():
            raise RuntimeError("Service is not running")

        return KubeClient(self.props["api_url"], name=self._name)
