"""Typed steps of a deploy plan."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum


class Strategy(str, Enum):
    FULLY_PROMOTED = "fully_promoted"
    TEST_PROMOTED = "test_promoted"
    PARTITIONED = "partitioned"
    DEV_ONLY = "dev_only"


@dataclass(frozen=True, slots=True)
class ResetToCommitsAgo:
    count: int

    def __str__(self) -> str:
        return f"reset {self.count} commits back"


@dataclass(frozen=True, slots=True)
class ForcePush:
    def __str__(self) -> str:
        return "force-push"


@dataclass(frozen=True, slots=True)
class MergeBranch:
    name: str

    def __str__(self) -> str:
        return f"merge {self.name}"


@dataclass(frozen=True, slots=True)
class CreateBranch:
    name: str

    def __str__(self) -> str:
        return f"branch {self.name}"


@dataclass(frozen=True, slots=True)
class CheckoutBranch:
    name: str

    def __str__(self) -> str:
        return f"checkout {self.name}"


@dataclass(frozen=True, slots=True)
class Push:
    def __str__(self) -> str:
        return "push"


@dataclass(frozen=True, slots=True)
class Deploy:
    environment: str

    def __str__(self) -> str:
        return f"deploy {self.environment}"


Step = ResetToCommitsAgo | ForcePush | MergeBranch | CreateBranch | CheckoutBranch | Push | Deploy


@dataclass(frozen=True, slots=True)
class DeployPlan:
    strategy: Strategy
    steps: tuple[Step, ...]

    def __iter__(self) -> Iterator[Step]:
        return iter(self.steps)

    def __len__(self) -> int:
        return len(self.steps)

    @property
    def deployed_environments(self) -> list[str]:
        seen: list[str] = []
        for step in self.steps:
            if isinstance(step, Deploy) and step.environment not in seen:
                seen.append(step.environment)
        return seen

    def describe(self) -> str:
        return ", ".join(str(step) for step in self.steps)
