import subprocess

import pytest

from harness.errors import RemoteExecError
from harness.node_exec import NodeExecutor


def test_exec_on_node_builds_debug_command(monkeypatch):
    seen = {}

    def fake_run(cmd, capture_output, text, env, timeout):
        seen["cmd"] = cmd
        seen["env"] = env
        return subprocess.CompletedProcess(cmd, 0, stdout=" Moo! \n", stderr="")

    monkeypatch.setattr(subprocess, "run", fake_run)

    out = NodeExecutor(kubeconfig="/tmp/kc").exec_on_node("worker-0", "chroot", "/host", "cowsay", "Moo!")

    assert out == "Moo!"
    assert seen["cmd"] == ["oc", "debug", "node/worker-0", "--quiet", "--", "chroot", "/host", "cowsay", "Moo!"]
    assert seen["env"]["KUBECONFIG"] == "/tmp/kc"


def test_exec_failure_carries_stderr(monkeypatch):
    monkeypatch.setattr(
        subprocess,
        "run",
        lambda cmd, **kwargs: subprocess.CompletedProcess(cmd, 127, stdout="", stderr="cowsay: not found"),
    )

    with pytest.raises(RemoteExecError) as excinfo:
        NodeExecutor().exec_on_node("worker-0", "cowsay")

    assert excinfo.value.returncode == 127
    assert "cowsay: not found" in str(excinfo.value)


def test_exec_requires_a_command():
    with pytest.raises(ValueError):
        NodeExecutor().exec_on_node("worker-0")
