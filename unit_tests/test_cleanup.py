import logging

import pytest

from harness.cleanup import CleanupAction, CleanupRegistry
from harness.errors import CleanupError


@pytest.mark.parametrize("k", [1, 2, 5])
def test_guarded_action_runs_once_however_often_called(k):
    calls = []
    registry = CleanupRegistry()
    action = registry.register(lambda: calls.append("x"), name="x")

    for _ in range(k):
        action()
    registry.run_all()

    assert calls == ["x"]
    assert action.ran


def test_run_all_is_reverse_registration_order():
    observed = []
    registry = CleanupRegistry()
    n = 6
    for i in range(n):
        registry.register(lambda i=i: observed.append(i), name=f"action {i}")

    registry.run_all()

    assert observed == list(range(n - 1, -1, -1))


def test_manually_run_actions_are_not_repeated_by_run_all():
    observed = []
    registry = CleanupRegistry()
    first = registry.register(lambda: observed.append("first"))
    registry.register(lambda: observed.append("second"))

    first()
    registry.run_all()
    registry.run_all()

    assert observed == ["first", "second"]


def test_skip_marks_done_without_running():
    observed = []
    registry = CleanupRegistry()
    action = registry.register(lambda: observed.append("ran"))

    action.skip()
    registry.run_all()

    assert observed == []
    assert action.done and not action.ran


def test_reentrant_call_is_a_noop():
    calls = []

    def fn():
        calls.append(1)
        action()

    action = CleanupAction(fn, "reentrant")
    action()

    assert calls == [1]


def test_failures_do_not_stop_remaining_actions():
    observed = []
    registry = CleanupRegistry()
    registry.register(lambda: observed.append("a"), name="a")
    registry.register(lambda: 1 / 0, name="boom")
    registry.register(lambda: observed.append("c"), name="c")

    with pytest.raises(CleanupError) as excinfo:
        registry.run_all()

    assert observed == ["c", "a"]
    assert [name for name, _ in excinfo.value.failures] == ["boom"]
    assert isinstance(excinfo.value.failures[0][1], ZeroDivisionError)


def test_failed_action_is_not_retried():
    calls = []

    def flaky():
        calls.append(1)
        raise RuntimeError("nope")

    registry = CleanupRegistry()
    registry.register(flaky, name="flaky")

    with pytest.raises(CleanupError):
        registry.run_all()
    registry.run_all()

    assert calls == [1]


def test_skip_cleanup_leaves_actions_and_warns(caplog):
    observed = []
    registry = CleanupRegistry(skip_cleanup=True)
    manual = registry.register(lambda: observed.append("manual"), name="manual")
    registry.register(lambda: observed.append("auto"), name="delete pool layered")

    with caplog.at_level(logging.WARNING, logger="harness.cleanup"):
        registry.run_all()

    assert observed == []
    assert "cleanup skipped" in caplog.text
    assert "delete pool layered" in caplog.text

    manual()
    assert observed == ["manual"]


def test_context_manager_runs_cleanup_on_error():
    observed = []
    with pytest.raises(ValueError):
        with CleanupRegistry() as registry:
            registry.register(lambda: observed.append("cleaned"))
            raise ValueError("scenario body failed")

    assert observed == ["cleaned"]
