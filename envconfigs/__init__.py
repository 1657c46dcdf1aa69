"""Environment configurations for functional tests."""

from envconfigs.cluster import ClusterEnvConfig, ClusterLiveEnv

__all__ = [
    "ClusterEnvConfig",
    "ClusterLiveEnv",
]
