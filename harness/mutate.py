"""
Read-modify-write updates that tolerate optimistic-concurrency conflicts.

The build controller writes to the same objects the harness labels, so a
stale resourceVersion is routine. Each retry starts again from a fresh read,
which is why `mutate_fn` has to be pure: it gets a private copy of the
current object and returns the desired one.
"""

import copy
import logging
import time
from collections.abc import Callable
from typing import Any

from tenacity import (
    RetryError,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_fixed,
    wait_random,
)

from harness.client import ResourceStore
from harness.config import RetryPolicy
from harness.errors import ConflictError, ConflictExhausted
from harness.resources import ResourceKind, Snapshot

logger = logging.getLogger(__name__)

MutateFn = Callable[[dict[str, Any]], dict[str, Any]]


def _wait_strategy(policy: RetryPolicy):
    if policy.factor == 1.0:
        base = wait_fixed(policy.delay)
    else:
        base = wait_exponential(multiplier=policy.delay, exp_base=policy.factor)
    if policy.jitter > 0:
        return base + wait_random(0, policy.delay * policy.jitter)
    return base


def mutate_with_retry(
    store: ResourceStore,
    kind: ResourceKind,
    name: str,
    mutate_fn: MutateFn,
    namespace: str | None = None,
    policy: RetryPolicy | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> Snapshot:
    """
    Fetch, mutate and commit `name`, starting over on conflict.

    Returns:
        The committed snapshot.

    Raises:
        ConflictExhausted: If every attempt hit a conflict
        NotFoundError, ApiError, ...: Immediately, without retry
    """
    policy = policy or RetryPolicy()

    def attempt() -> Snapshot:
        current = store.get(kind, name, namespace)
        desired = mutate_fn(copy.deepcopy(current.obj))
        return store.update(kind, name, desired, current.version, namespace)

    retrying = Retrying(
        stop=stop_after_attempt(policy.max_attempts),
        wait=_wait_strategy(policy),
        retry=retry_if_exception_type(ConflictError),
        sleep=sleep,
        before_sleep=lambda rs: logger.debug(
            f"conflict updating {kind} '{name}' (attempt {rs.attempt_number}), retrying"
        ),
    )
    try:
        return retrying(attempt)
    except RetryError as e:
        raise ConflictExhausted(kind.name, name, policy.max_attempts) from e.last_attempt.exception()


def add_label(key: str, value: str = "") -> MutateFn:
    def mutate(obj: dict[str, Any]) -> dict[str, Any]:
        metadata = obj.setdefault("metadata", {})
        labels = metadata.get("labels") or {}
        labels[key] = value
        metadata["labels"] = labels
        return obj

    return mutate


def remove_label(key: str) -> MutateFn:
    def mutate(obj: dict[str, Any]) -> dict[str, Any]:
        labels = obj.get("metadata", {}).get("labels")
        if labels:
            labels.pop(key, None)
        return obj

    return mutate
