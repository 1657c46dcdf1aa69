"""
Configuration dataclasses and constants.
"""

from harness.config.config import (
    BuildConfiguration,
    DockerfileOverride,
    HarnessConfig,
    RetryPolicy,
    ScenarioOptions,
)
from harness.config.constants import ImageBuilderType, ServiceType

__all__ = [
    # config.py
    "BuildConfiguration",
    "DockerfileOverride",
    "HarnessConfig",
    "RetryPolicy",
    "ScenarioOptions",
    # constants.py
    "ImageBuilderType",
    "ServiceType",
]
