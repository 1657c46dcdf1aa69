"""
Remote command execution on cluster nodes.

Wraps `oc debug node/<name>`, which schedules a privileged debug pod on the
node with the host filesystem mounted inside it.
"""

import logging
import os
import subprocess

from harness.errors import RemoteExecError

logger = logging.getLogger(__name__)


class NodeExecutor:
    """
    Runs commands on nodes through the `oc` CLI.

    Usage:
        executor = NodeExecutor(kubeconfig="/path/to/kubeconfig")
        out = executor.exec_on_node("worker-0", "chroot", "/rootfs", "cowsay", "Moo!")
    """

    def __init__(self, binary: str = "oc", kubeconfig: str | None = None, timeout: int = 300):
        self.binary = binary
        self.kubeconfig = kubeconfig
        self.timeout = timeout

    def _run_command(self, node: str, args: list[str]) -> str:
        """Run a CLI command and return stdout.

        Raises:
            RemoteExecError: If command fails (includes stderr in message).
        """
        cmd = [self.binary] + args
        env = dict(os.environ)
        if self.kubeconfig:
            env["KUBECONFIG"] = self.kubeconfig

        logger.debug(f"exec: {' '.join(cmd)}")
        result = subprocess.run(cmd, capture_output=True, text=True, env=env, timeout=self.timeout)
        if result.returncode != 0:
            raise RemoteExecError(node, cmd, result.returncode, result.stderr)
        return result.stdout.strip()

    def exec_on_node(self, node: str, *cmd: str) -> str:
        """Execute `cmd` on `node` and return its output."""
        if not cmd:
            raise ValueError("no command given")
        # fmt: off
        args = [
            "debug", f"node/{node}",
            "--quiet",
            "--",
            *cmd,
        ]
        # fmt: on
        return self._run_command(node, args)
