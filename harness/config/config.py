"""
Configuration dataclasses for the harness and its scenarios.
"""

from collections.abc import Mapping
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

import toml

from harness.config.constants import (
    BASE_IMAGE_PULL_SECRET_NAME_KEY,
    FINAL_IMAGE_PULLSPEC_KEY,
    FINAL_IMAGE_PUSH_SECRET_NAME_KEY,
    IMAGE_BUILDER_TYPE_KEY,
    LAYERED_POOL_NAME,
    MCO_NAMESPACE,
    ImageBuilderType,
)


@dataclass(frozen=True)
class RetryPolicy:
    """
    Backoff for optimistic-concurrency retries.

    The defaults match client-go's `retry.DefaultRetry`: five attempts, 10ms
    apart, no growth, 10% jitter.
    """

    max_attempts: int = field(default=5)
    delay: float = field(default=0.01)
    factor: float = field(default=1.0)
    jitter: float = field(default=0.1)

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {self.max_attempts}")


@dataclass(frozen=True)
class BuildConfiguration:
    """Contents of the on-cluster-build-config ConfigMap."""

    builder_type: str
    base_pull_secret_name: str
    final_push_secret_name: str
    final_pullspec: str

    def as_data(self) -> dict[str, str]:
        return {
            BASE_IMAGE_PULL_SECRET_NAME_KEY: self.base_pull_secret_name,
            FINAL_IMAGE_PUSH_SECRET_NAME_KEY: self.final_push_secret_name,
            FINAL_IMAGE_PULLSPEC_KEY: self.final_pullspec,
            IMAGE_BUILDER_TYPE_KEY: str(self.builder_type),
        }


@dataclass(frozen=True)
class DockerfileOverride:
    """Custom Dockerfile content built for a single pool."""

    pool: str
    content: str


@dataclass(frozen=True)
class ScenarioOptions:
    """
    Immutable description of one on-cluster build run.

    `target_nodes` is only consulted when `verify_rollout` is set; an empty
    tuple means a random worker is picked.
    """

    builder_type: str = field(default=ImageBuilderType.OpenshiftImageBuilder)
    pool_name: str = field(default=LAYERED_POOL_NAME)
    dockerfile_overrides: Mapping[str, str] = field(default_factory=dict)
    target_nodes: tuple[str, ...] = field(default=())
    verify_rollout: bool = field(default=False)
    verify_command: tuple[str, ...] = field(default=())
    skip_cleanup: bool = field(default=False)

    def overrides(self) -> list[DockerfileOverride]:
        return [DockerfileOverride(pool, content) for pool, content in self.dockerfile_overrides.items()]


@dataclass
class HarnessConfig:
    """
    Run-wide settings, loadable from TOML.

    Example file:
        kubeconfig = "/home/me/.kube/config"
        build_timeout = 1200

        [retry]
        max_attempts = 8
    """

    kubeconfig: str | None = field(default=None)
    namespace: str = field(default=MCO_NAMESPACE)
    kubectl_binary: str = field(default="kubectl")
    oc_binary: str = field(default="oc")
    poll_interval: float = field(default=1.0)
    image_stream_timeout: float = field(default=60)
    rendered_config_timeout: float = field(default=300)
    build_start_timeout: float = field(default=300)
    build_timeout: float = field(default=1200)
    rollout_timeout: float = field(default=1200)
    scenario_timeout: float | None = field(default=3600)
    skip_cleanup: bool = field(default=False)
    retry: RetryPolicy = field(default_factory=RetryPolicy)

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "HarnessConfig":
        known = {f.name for f in fields(cls)}
        unknown = set(d) - known
        if unknown:
            raise ValueError(f"Unknown harness config keys: {sorted(unknown)}")
        values = dict(d)
        if "retry" in values:
            values["retry"] = RetryPolicy(**values["retry"])
        return cls(**values)

    @classmethod
    def from_toml_file(cls, path: str | Path) -> "HarnessConfig":
        with open(path) as f:
            return cls.from_dict(toml.load(f))

    def as_toml_string(self) -> str:
        d = asdict(self)
        # Remove None values (optional configs)
        d = {k: v for k, v in d.items() if v is not None}
        return toml.dumps(d)
