"""
Core library for on-cluster build functional tests.
Provides the cleanup registry, conflict-retrying updates, state waiting,
and the scenario orchestrator that strings them together.
"""

from .cleanup import CleanupAction, CleanupRegistry
from .client import KubeClient, ResourceStore
from .errors import (
    ConflictError,
    ConflictExhausted,
    HarnessError,
    NotFoundError,
    ScenarioError,
    UnrecoverableStateError,
    WaitTimeout,
)
from .mutate import mutate_with_retry
from .scenario import ScenarioOrchestrator, ScenarioResult
from .wait import Outcome, StateWaiter, wait_for_condition

__all__ = [
    "CleanupAction",
    "CleanupRegistry",
    "KubeClient",
    "ResourceStore",
    "mutate_with_retry",
    "Outcome",
    "StateWaiter",
    "wait_for_condition",
    "ScenarioOrchestrator",
    "ScenarioResult",
    "HarnessError",
    "ConflictError",
    "ConflictExhausted",
    "NotFoundError",
    "ScenarioError",
    "UnrecoverableStateError",
    "WaitTimeout",
]
