"""
Waiting utilities for test synchronization.

`wait_for_condition` is the polling primitive used against the control plane.
Its predicate answers with a three-way `Outcome` so a terminal failure ends
the wait at once instead of running out the clock.
"""

import logging
import math
import time
from collections.abc import Callable
from enum import Enum
from typing import Any, TypeVar

from harness.client import ResourceStore
from harness.errors import TransportError, UnrecoverableStateError, WaitTimeout
from harness.resources import ResourceKind, Snapshot
from harness.test_logging import get_test_logger

logger = logging.getLogger(__name__)


class Outcome(str, Enum):
    Continue = "continue"
    Satisfied = "satisfied"
    Unrecoverable = "unrecoverable"

    def __str__(self) -> str:
        return self.value


T = TypeVar("T")


def wait_until(
    fn: Callable[[], Any],
    error_with: str = "Timed out",
    timeout: int = 30,
    step: float = 0.5,
):
    """
    Wait until a function call returns truth value, given time step, and timeout.
    This function waits until function call returns truth value at the interval of step seconds.
    """
    for _ in range(math.ceil(timeout / step)):
        try:
            if fn():
                return
        except Exception as e:
            ety = type(e)
            get_test_logger().warning(f"caught exception {ety}, will still wait for timeout: {e}")
        time.sleep(step)
    raise AssertionError(error_with)


def wait_for_condition(
    fn: Callable[[], T],
    predicate: Callable[[T], Outcome],
    timeout: float,
    interval: float = 1.0,
    description: str = "condition",
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> T:
    """
    Poll `fn` until `predicate` accepts its value.

    A `TransportError` from `fn` counts as one more `Continue`; any other
    exception propagates.

    Returns:
        The first value the predicate reported `Satisfied` for.

    Raises:
        UnrecoverableStateError: As soon as the predicate reports `Unrecoverable`
        WaitTimeout: If `timeout` seconds pass without satisfaction
    """
    start = clock()
    deadline = start + timeout
    last: T | None = None
    polls = 0

    while True:
        polls += 1
        try:
            last = fn()
        except TransportError as e:
            get_test_logger().warning(f"transient error while waiting for {description}: {e}")
        else:
            outcome = predicate(last)
            if outcome == Outcome.Satisfied:
                logger.debug(f"{description}: satisfied after {polls} poll(s)")
                return last
            if outcome == Outcome.Unrecoverable:
                elapsed = clock() - start
                logger.error(f"{description}: unrecoverable state after {elapsed:.1f}s: {last}")
                raise UnrecoverableStateError(description, last, elapsed)

        remaining = deadline - clock()
        if remaining <= 0:
            raise WaitTimeout(description, timeout, last)
        sleep(min(interval, remaining))


class StateWaiter:
    """
    Waits on objects in a resource store.

    Usage:
        waiter = StateWaiter(client, interval=1.0)
        pool = waiter.wait_for(POOL, "layered", building_predicate, timeout=300)
    """

    def __init__(
        self,
        store: ResourceStore,
        interval: float = 1.0,
        logger: logging.Logger | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.store = store
        self.interval = interval
        self.logger = logger or logging.getLogger(__name__)
        self._sleep = sleep
        self._clock = clock

    def wait_for(
        self,
        kind: ResourceKind,
        name: str,
        predicate: Callable[[Snapshot], Outcome],
        timeout: float,
        namespace: str | None = None,
        description: str | None = None,
    ) -> Snapshot:
        description = description or f"{kind} '{name}'"
        self.logger.info(f"Waiting up to {timeout}s for {description}")
        return wait_for_condition(
            lambda: self.store.get(kind, name, namespace),
            predicate,
            timeout=timeout,
            interval=self.interval,
            description=description,
            sleep=self._sleep,
            clock=self._clock,
        )
