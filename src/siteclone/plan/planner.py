"""Commit-partition planner.

Rebuilds the source's promotion boundaries on a single linear history. The
only inputs are whether test and live exist and how many commits each is
behind its parent environment; the output is the ordered list of git and
deploy steps that leaves the target's dev, test and live the same distances
apart.
"""

from __future__ import annotations

from siteclone.models import LIVE, TEST
from siteclone.plan.steps import (
    CreateBranch,
    Deploy,
    DeployPlan,
    ForcePush,
    MergeBranch,
    Push,
    ResetToCommitsAgo,
    Step,
    Strategy,
)

SNAPSHOT_BRANCH = "original"


def build_deploy_plan(
    live_initialized: bool,
    test_initialized: bool,
    live_deployable: int | None,
    test_deployable: int | None,
) -> DeployPlan:
    """Choose a strategy and expand it into steps. First matching rule wins.

    Counts of uninitialized environments are ignored: they never satisfy a
    "nothing pending" check and never contribute to a reset depth.
    """
    live_pending = _pending(LIVE, live_initialized, live_deployable)
    test_pending = _pending(TEST, test_initialized, test_deployable)

    if test_pending is None:
        return DeployPlan(Strategy.DEV_ONLY, (Push(),))

    if test_pending == 0 and live_pending == 0:
        return DeployPlan(Strategy.FULLY_PROMOTED, (Push(), Deploy(TEST), Deploy(LIVE)))

    if test_pending == 0:
        return DeployPlan(Strategy.TEST_PROMOTED, (Push(), Deploy(TEST)))

    steps: list[Step] = [CreateBranch(SNAPSHOT_BRANCH)]
    if live_pending:
        steps += [
            ResetToCommitsAgo(live_pending + test_pending),
            ForcePush(),
            Deploy(TEST),
            Deploy(LIVE),
            MergeBranch(SNAPSHOT_BRANCH),
        ]
    steps += [ResetToCommitsAgo(test_pending), ForcePush(), Deploy(TEST)]
    if live_pending == 0:
        # live sits at test's boundary in the source
        steps.append(Deploy(LIVE))
    steps += [MergeBranch(SNAPSHOT_BRANCH), Push()]
    return DeployPlan(Strategy.PARTITIONED, tuple(steps))


def _pending(env: str, initialized: bool, count: int | None) -> int | None:
    if not initialized:
        return None
    if count is None:
        raise ValueError(f"{env} is initialized but has no deployable commit count")
    if count < 0:
        raise ValueError(f"{env} deployable commit count must be >= 0, got {count}")
    return count
