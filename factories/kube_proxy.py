"""
API proxy factory.
Starts a local `kubectl proxy` so the harness can reach the cluster over plain HTTP.
"""

import contextlib
import os

import flexitest

from harness.config import ServiceType
from harness.services import KubeProxyProps, KubeProxyService


class KubeProxyFactory(flexitest.Factory):
    """
    Factory for creating API proxies.

    Usage:
        factory = KubeProxyFactory(range(18001, 18101))
        proxy = factory.create_proxy(kubeconfig="/path/to/kubeconfig")
        client = proxy.create_client()
    """

    def __init__(self, port_range: range):
        ports = list(port_range)
        if any(p < 1024 or p > 65535 for p in ports):
            raise ValueError(
                f"KubeProxyFactory: Port range must be between 1024 and 65535. "
                f"Got: {port_range.start}-{port_range.stop - 1}"
            )
        super().__init__(ports)

    @flexitest.with_ectx("ctx")
    def create_proxy(
        self,
        kubeconfig: str | None = None,
        binary: str = "kubectl",
        **kwargs,
    ) -> KubeProxyService:
        """
        Start `kubectl proxy` on the next free port.

        Args:
            kubeconfig: Kubeconfig to use; falls back to $KUBECONFIG / ~/.kube/config
            binary: kubectl (or oc) executable
        """
        # The `with_ectx` ensures this is available.
        ctx: flexitest.EnvContext = kwargs["ctx"]

        datadir = ctx.make_service_dir(ServiceType.KubeProxy)
        port = self.next_port()
        logfile = os.path.join(datadir, "service.log")

        cmd = [
            binary,
            "proxy",
            "--address=127.0.0.1",
            f"--port={port}",
        ]
        if kubeconfig:
            cmd.append(f"--kubeconfig={kubeconfig}")

        props: KubeProxyProps = {
            "port": port,
            "api_url": f"http://127.0.0.1:{port}",
            "kubeconfig": kubeconfig,
            "datadir": datadir,
        }

        svc = KubeProxyService(props, cmd, stdout=logfile, name=ServiceType.KubeProxy)
        try:
            svc.start()
        except Exception as e:
            # Ensure cleanup on failure to prevent resource leaks
            with contextlib.suppress(Exception):
                svc.stop()
            raise RuntimeError(f"Failed to start kube proxy: {e}") from e

        return svc
