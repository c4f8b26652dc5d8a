"""Git history replicator: owns one working copy and executes plan steps on it."""

from __future__ import annotations

import logging
import shlex
from collections.abc import Callable
from pathlib import Path

from siteclone.errors import GitOperationError
from siteclone.plan import (
    CheckoutBranch,
    CreateBranch,
    Deploy,
    DeployPlan,
    ForcePush,
    MergeBranch,
    Push,
    ResetToCommitsAgo,
    Step,
)
from siteclone.process import ExecResult, ProcessExecutor

logger = logging.getLogger(__name__)

Deployer = Callable[[str], None]

# `git clone` options whose value is the following token.
_VALUE_OPTIONS = frozenset({"-b", "--branch", "-o", "--origin", "-c", "--config", "--depth"})


class GitReplicator:
    def __init__(
        self,
        executor: ProcessExecutor,
        path: Path,
        *,
        branch: str = "master",
        remote: str = "origin",
    ) -> None:
        self.executor = executor
        self.path = path
        self.branch = branch
        self.remote = remote

    @property
    def is_cloned(self) -> bool:
        return (self.path / ".git").exists()

    def clone_or_pull(self, git_command: str, depth: int | None = None) -> str:
        """Bring the working copy up to date. Returns "pull" or "clone"."""
        if self.is_cloned:
            logger.info("pulling existing working copy at %s", self.path)
            self._git("pull", self.remote, self.branch)
            return "pull"
        self.path.parent.mkdir(parents=True, exist_ok=True)
        args = clone_args(git_command, self.path, depth=depth)
        logger.info("cloning into %s%s", self.path, f" (depth {depth})" if depth else "")
        self._check(self.executor.run(args, cwd=self.path.parent, verbose=True))
        return "clone"

    def latest_commit(self) -> str:
        result = self._git("log", "--pretty=format:%H", "-1")
        sha = result.stdout.strip()
        if not sha:
            raise GitOperationError(
                "repository has no commits",
                context={"path": str(self.path)},
            )
        return sha

    def commit_count(self, ref: str = "HEAD") -> int:
        return int(self._git("rev-list", "--count", ref).stdout.strip())

    def seed_from(self, source: Path, sha: str) -> None:
        """Point the working branch at `sha` taken from another local clone."""
        self._git("fetch", str(source), self.branch)
        self._git("reset", "--hard", sha)

    def force_push(self) -> None:
        self._git("push", "--force", self.remote, self.branch)

    def commit_all_and_push(self, message: str) -> bool:
        """Commit every working-tree change and push. Returns False when clean."""
        self._git("add", "-A")
        if not self._git("status", "--porcelain").stdout.strip():
            return False
        self._git("commit", "-m", message)
        self._git("push", self.remote, self.branch)
        return True

    def apply_plan(self, plan: DeployPlan, deployer: Deployer, *, base: str = "HEAD") -> None:
        """Run every step of `plan`. Resets count back from `base`, not from HEAD."""
        logger.info("applying %s plan from %s: %s", plan.strategy.value, base, plan.describe())
        for step in plan:
            self.execute(step, deployer, base=base)

    def execute(self, step: Step, deployer: Deployer, *, base: str = "HEAD") -> None:
        match step:
            case Deploy(environment=environment):
                deployer(environment)
            case CreateBranch(name=name):
                self._git("branch", name)
            case CheckoutBranch(name=name):
                self._git("checkout", name)
            case ResetToCommitsAgo(count=count):
                self._git("reset", "--hard", f"{base}~{count}")
            case ForcePush():
                self.force_push()
            case Push():
                self._git("push", self.remote, self.branch)
            case MergeBranch(name=name):
                self._git("merge", "--no-edit", name)
            case _:
                raise TypeError(f"unsupported plan step: {step!r}")

    def remove(self) -> bool:
        return self.executor.remove_tree(self.path)

    def _git(self, *args: str) -> ExecResult:
        return self._check(self.executor.run(["git", *args], cwd=self.path, verbose=True))

    def _check(self, result: ExecResult) -> ExecResult:
        if not result.ok:
            raise GitOperationError(
                f"git command failed: {' '.join(result.args)}: {result.detail}",
                context={
                    "path": str(self.path),
                    "command": result.args,
                    "exit_code": result.exit_code,
                    "output": result.stdout.strip(),
                },
            )
        return result


def clone_args(git_command: str, path: Path, *, depth: int | None = None) -> list[str]:
    """Rewrite a platform-supplied `git clone` command to clone into `path`."""
    tokens = shlex.split(git_command)
    if tokens[:2] != ["git", "clone"]:
        raise GitOperationError(
            "expected a 'git clone' connection command",
            context={"command": git_command},
        )
    options: list[str] = []
    positionals: list[str] = []
    rest = iter(tokens[2:])
    for token in rest:
        if token in _VALUE_OPTIONS:
            options += [token, next(rest, "")]
        elif token.startswith("-"):
            options.append(token)
        else:
            positionals.append(token)
    if not positionals:
        raise GitOperationError(
            "connection command has no repository url",
            context={"command": git_command},
        )
    if depth is not None:
        options = [*options, "--depth", str(depth)]
    return ["git", "clone", *options, positionals[0], str(path)]
