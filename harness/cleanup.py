"""
Idempotent cleanup registry.

Every resource a scenario creates registers its teardown here before the next
step runs. Actions execute at most once, whether invoked manually, by
`run_all()`, or both, and `run_all()` releases them in reverse order of
acquisition.
"""

import logging
from collections.abc import Callable

from harness.errors import CleanupError

logger = logging.getLogger(__name__)


class CleanupAction:
    """
    A teardown callable guarded so the wrapped function runs at most once.

    Usage:
        action = registry.register(lambda: client.delete(NODE, "n1"), name="delete node n1")
        action()  # runs
        action()  # no-op
    """

    def __init__(self, fn: Callable[[], object], name: str | None = None):
        self._fn = fn
        self.name = name or getattr(fn, "__name__", repr(fn))
        self._done = False
        self._ran = False

    @property
    def done(self) -> bool:
        """True once the action has run or been skipped."""
        return self._done

    @property
    def ran(self) -> bool:
        return self._ran

    def skip(self) -> None:
        """Mark the action as handled without running it."""
        self._done = True

    def __call__(self) -> None:
        if self._done:
            return
        # Flip the guard first so a re-entrant call from inside `fn`, or a
        # second call after `fn` raised, stays a no-op.
        self._done = True
        self._ran = True
        logger.debug(f"running cleanup: {self.name}")
        self._fn()

    def __repr__(self) -> str:
        return f"CleanupAction({self.name!r}, done={self._done})"


class CleanupRegistry:
    """
    Ordered collection of cleanup actions for one scenario.

    Args:
        skip_cleanup: Leave everything in place at `run_all()` for debugging.
            Manually invoked actions still run.
    """

    def __init__(self, skip_cleanup: bool = False):
        self.skip_cleanup = skip_cleanup
        self._actions: list[CleanupAction] = []

    def register(self, fn: Callable[[], object], name: str | None = None) -> CleanupAction:
        action = fn if isinstance(fn, CleanupAction) else CleanupAction(fn, name)
        self._actions.append(action)
        return action

    @property
    def actions(self) -> list[CleanupAction]:
        return list(self._actions)

    def pending(self) -> list[CleanupAction]:
        return [a for a in self._actions if not a.done]

    def run_all(self) -> None:
        """
        Run every pending action, last registered first.

        Failures do not stop the remaining actions from being attempted.

        Raises:
            CleanupError: If any action raised.
        """
        pending = self.pending()
        if self.skip_cleanup:
            if pending:
                logger.warning(
                    f"cleanup skipped: leaving {len(pending)} resource(s) behind: "
                    f"{[a.name for a in reversed(pending)]}"
                )
            return

        failures: list[tuple[str, Exception]] = []
        for action in reversed(pending):
            try:
                action()
            except Exception as e:
                logger.error(f"cleanup '{action.name}' failed: {e}")
                failures.append((action.name, e))

        if failures:
            raise CleanupError(failures)

    def __enter__(self) -> "CleanupRegistry":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.run_all()
