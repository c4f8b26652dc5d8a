import itertools

import pytest

from siteclone.plan import (
    CreateBranch,
    Deploy,
    ForcePush,
    MergeBranch,
    Push,
    ResetToCommitsAgo,
    Strategy,
    build_deploy_plan,
)


def test_fully_promoted_site() -> None:
    plan = build_deploy_plan(True, True, 0, 0)
    assert plan.strategy is Strategy.FULLY_PROMOTED
    assert plan.steps == (Push(), Deploy("test"), Deploy("live"))


def test_test_only_when_live_missing() -> None:
    plan = build_deploy_plan(False, True, None, 0)
    assert plan.strategy is Strategy.TEST_PROMOTED
    assert plan.steps == (Push(), Deploy("test"))


def test_test_only_regardless_of_live_pending() -> None:
    plan = build_deploy_plan(True, True, 3, 0)
    assert plan.strategy is Strategy.TEST_PROMOTED
    assert plan.steps == (Push(), Deploy("test"))


def test_pending_in_test_and_live() -> None:
    plan = build_deploy_plan(True, True, 3, 2)
    assert plan.strategy is Strategy.PARTITIONED
    assert plan.steps == (
        CreateBranch("original"),
        ResetToCommitsAgo(5),
        ForcePush(),
        Deploy("test"),
        Deploy("live"),
        MergeBranch("original"),
        ResetToCommitsAgo(2),
        ForcePush(),
        Deploy("test"),
        MergeBranch("original"),
        Push(),
    )


def test_pending_in_test_with_live_caught_up() -> None:
    plan = build_deploy_plan(True, True, 0, 4)
    assert plan.steps == (
        CreateBranch("original"),
        ResetToCommitsAgo(4),
        ForcePush(),
        Deploy("test"),
        Deploy("live"),
        MergeBranch("original"),
        Push(),
    )


def test_pending_in_test_without_live() -> None:
    plan = build_deploy_plan(False, True, None, 1)
    assert plan.steps == (
        CreateBranch("original"),
        ResetToCommitsAgo(1),
        ForcePush(),
        Deploy("test"),
        MergeBranch("original"),
        Push(),
    )
    assert plan.deployed_environments == ["test"]


def test_uninitialized_test_pushes_dev_only() -> None:
    plan = build_deploy_plan(False, False, None, None)
    assert plan.strategy is Strategy.DEV_ONLY
    assert plan.steps == (Push(),)


def test_counts_of_uninitialized_environments_are_ignored() -> None:
    assert build_deploy_plan(False, False, 0, 0).steps == (Push(),)
    assert build_deploy_plan(False, True, 0, 0).strategy is Strategy.TEST_PROMOTED


def test_initialized_environment_requires_count() -> None:
    with pytest.raises(ValueError):
        build_deploy_plan(True, True, None, 0)
    with pytest.raises(ValueError):
        build_deploy_plan(False, True, None, -1)


def _replay(plan, length: int) -> dict[str, int]:
    """Simulate the plan on a linear history of `length` commits."""
    head = length
    snapshots: dict[str, int] = {}
    remote = length
    deployed = {"dev": length}
    for step in plan:
        if isinstance(step, CreateBranch):
            snapshots[step.name] = head
        elif isinstance(step, ResetToCommitsAgo):
            head -= step.count
        elif isinstance(step, MergeBranch):
            head = max(head, snapshots[step.name])
        elif isinstance(step, (Push, ForcePush)):
            remote = head
            deployed["dev"] = remote
        elif isinstance(step, Deploy):
            parent = "dev" if step.environment == "test" else "test"
            deployed[step.environment] = deployed[parent]
    return deployed


@pytest.mark.parametrize(
    ("live_init", "test_init", "live", "test"),
    [
        (live_init, test_init, live, test)
        for live_init, test_init in itertools.product([True, False], repeat=2)
        if test_init or not live_init
        for live, test in itertools.product(range(4), repeat=2)
    ],
)
def test_plan_is_deterministic_and_preserves_boundaries(
    live_init: bool, test_init: bool, live: int, test: int
) -> None:
    live_count = live if live_init else None
    test_count = test if test_init else None
    first = build_deploy_plan(live_init, test_init, live_count, test_count)
    assert first == build_deploy_plan(live_init, test_init, live_count, test_count)

    state = _replay(first, length=10)
    assert state["dev"] == 10
    if not test_init:
        assert set(state) == {"dev"}
        return
    if test == 0 and live > 0:
        # live is never rolled back past test when test has nothing pending
        assert state["dev"] - state["test"] == 0
        return
    assert state["dev"] - state["test"] == test
    if live_init:
        assert state["test"] - state["live"] == live
