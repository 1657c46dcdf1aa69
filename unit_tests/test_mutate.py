import pytest

from harness.config import RetryPolicy
from harness.errors import ConflictError, ConflictExhausted, NotFoundError
from harness.mutate import add_label, mutate_with_retry, remove_label
from harness.resources import POOL

BUDGET = 5


@pytest.fixture
def pool(control_plane):
    control_plane.seed(POOL, {"metadata": {"name": "layered"}})
    return control_plane


def no_sleep(_):
    pass


@pytest.mark.parametrize("conflicts", range(BUDGET))
def test_commits_when_conflicts_fit_in_budget(pool, conflicts):
    pool.inject_conflicts(POOL, "layered", conflicts)

    snap = mutate_with_retry(
        pool, POOL, "layered", add_label("managed"), policy=RetryPolicy(max_attempts=BUDGET), sleep=no_sleep
    )

    assert snap.labels == {"managed": ""}
    assert pool.raw(POOL, "layered")["metadata"]["labels"] == {"managed": ""}
    assert pool.count("update", POOL, "layered") == conflicts + 1


@pytest.mark.parametrize("conflicts", [BUDGET, BUDGET + 3])
def test_exhausted_budget_is_a_distinct_error(pool, conflicts):
    pool.inject_conflicts(POOL, "layered", conflicts)

    with pytest.raises(ConflictExhausted) as excinfo:
        mutate_with_retry(
            pool, POOL, "layered", add_label("managed"), policy=RetryPolicy(max_attempts=BUDGET), sleep=no_sleep
        )

    assert excinfo.value.attempts == BUDGET
    assert isinstance(excinfo.value.__cause__, ConflictError)
    assert pool.count("update", POOL, "layered") == BUDGET
    assert "labels" not in pool.raw(POOL, "layered")["metadata"]


def test_each_retry_starts_from_a_fresh_read(pool):
    pool.inject_conflicts(POOL, "layered", 2)
    seen_versions = []

    def mutate(obj):
        seen_versions.append(obj["metadata"]["resourceVersion"])
        return add_label("managed")(obj)

    mutate_with_retry(pool, POOL, "layered", mutate, sleep=no_sleep)

    assert pool.count("get", POOL, "layered") == 3
    assert len(set(seen_versions)) == 3


def test_non_conflict_errors_are_not_retried(control_plane):
    with pytest.raises(NotFoundError):
        mutate_with_retry(control_plane, POOL, "missing", add_label("managed"), sleep=no_sleep)

    assert control_plane.count("get", POOL, "missing") == 1


def test_mutate_fn_errors_propagate_without_retry(pool):
    def broken(obj):
        raise KeyError("spec")

    with pytest.raises(KeyError):
        mutate_with_retry(pool, POOL, "layered", broken, sleep=no_sleep)

    assert pool.count("update", POOL, "layered") == 0


def test_backoff_follows_policy(pool):
    pool.inject_conflicts(POOL, "layered", 3)
    sleeps = []

    mutate_with_retry(
        pool,
        POOL,
        "layered",
        add_label("managed"),
        policy=RetryPolicy(max_attempts=5, delay=0.5, factor=2.0, jitter=0),
        sleep=sleeps.append,
    )

    assert len(sleeps) == 3
    assert sleeps == sorted(sleeps)
    assert sleeps[-1] > sleeps[0]


def test_remove_label_tolerates_missing_labels(pool):
    snap = mutate_with_retry(pool, POOL, "layered", remove_label("managed"), sleep=no_sleep)
    assert snap.labels == {}


def test_retry_policy_rejects_zero_attempts():
    with pytest.raises(ValueError):
        RetryPolicy(max_attempts=0)
