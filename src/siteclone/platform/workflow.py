"""Remote workflows: asynchronous platform jobs that must be awaited."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from siteclone.process import ExecResult, RunningCommand

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class WorkflowResult:
    description: str
    ok: bool
    message: str = ""


class Workflow(Protocol):
    description: str

    def await_completion(self) -> WorkflowResult: ...


class CompletedWorkflow:
    """A workflow whose outcome is already known (nothing to poll)."""

    def __init__(self, description: str, *, ok: bool = True, message: str = "") -> None:
        self.description = description
        self._result = WorkflowResult(description=description, ok=ok, message=message)

    def await_completion(self) -> WorkflowResult:
        return self._result


class CommandWorkflow:
    """A workflow backed by a started platform CLI process, polled to completion."""

    def __init__(
        self,
        description: str,
        running: RunningCommand,
        *,
        poll_interval_s: float = 3.0,
        timeout_s: float = 3600.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.description = description
        self._running = running
        self._poll_interval_s = poll_interval_s
        self._timeout_s = timeout_s
        self._clock = clock
        self._result: WorkflowResult | None = None

    def await_completion(self) -> WorkflowResult:
        if self._result is not None:
            return self._result
        deadline = self._clock() + self._timeout_s
        while True:
            finished = self._running.wait(self._poll_interval_s)
            if finished is not None:
                self._result = _from_exec(self.description, finished)
                break
            if self._clock() >= deadline:
                self._running.kill()
                self._result = WorkflowResult(
                    description=self.description,
                    ok=False,
                    message=f"timed out after {self._timeout_s:.0f}s",
                )
                break
            logger.debug("waiting for workflow: %s", self.description)
        logger.info(
            "workflow %s: %s",
            "finished" if self._result.ok else "failed",
            self.description,
        )
        return self._result


def _from_exec(description: str, result: ExecResult) -> WorkflowResult:
    if result.ok:
        return WorkflowResult(description=description, ok=True, message=result.stdout.strip())
    return WorkflowResult(description=description, ok=False, message=result.detail)
