"""Deploy planning: typed steps and the commit-partition planner."""

from siteclone.plan.planner import SNAPSHOT_BRANCH, build_deploy_plan
from siteclone.plan.steps import (
    CheckoutBranch,
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

__all__ = [
    "SNAPSHOT_BRANCH",
    "CheckoutBranch",
    "CreateBranch",
    "Deploy",
    "DeployPlan",
    "ForcePush",
    "MergeBranch",
    "Push",
    "ResetToCommitsAgo",
    "Step",
    "Strategy",
    "build_deploy_plan",
]
