"""Narrow process executor used for git, terminus and filesystem cleanup."""

from __future__ import annotations

import logging
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

_MAX_LOGGED_CHARS = 4000


@dataclass(slots=True)
class ExecResult:
    args: list[str]
    exit_code: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    @property
    def lines(self) -> list[str]:
        return [line for line in self.stdout.splitlines() if line.strip()]

    @property
    def detail(self) -> str:
        return (self.stderr.strip() or self.stdout.strip() or f"exit code {self.exit_code}")[
            :_MAX_LOGGED_CHARS
        ]


class RunningCommand:
    """A started process whose completion is collected by polling."""

    def __init__(self, args: list[str], proc: subprocess.Popen[str]) -> None:
        self.args = args
        self._proc = proc
        self._result: ExecResult | None = None

    def wait(self, timeout_s: float) -> ExecResult | None:
        """Wait up to timeout_s. Returns None while the process is still running."""
        if self._result is not None:
            return self._result
        try:
            stdout, stderr = self._proc.communicate(timeout=timeout_s)
        except subprocess.TimeoutExpired:
            return None
        self._result = ExecResult(
            args=self.args,
            exit_code=self._proc.returncode,
            stdout=stdout or "",
            stderr=stderr or "",
        )
        return self._result

    def kill(self) -> None:
        self._proc.kill()
        self._proc.communicate()


class ProcessExecutor:
    def __init__(self, *, timeout_s: float | None = None) -> None:
        self._timeout_s = timeout_s

    def run(
        self,
        args: list[str],
        cwd: Path | str | None = None,
        *,
        verbose: bool = False,
    ) -> ExecResult:
        if verbose:
            logger.info("exec: %s", " ".join(args))
        if cwd is not None and not Path(cwd).is_dir():
            return ExecResult(
                args=args, exit_code=1, stdout="", stderr=f"working directory {cwd} does not exist"
            )
        try:
            proc = subprocess.run(
                args,
                cwd=cwd,
                capture_output=True,
                text=True,
                timeout=self._timeout_s,
                check=False,
            )
        except FileNotFoundError:
            return ExecResult(args=args, exit_code=127, stdout="", stderr=f"{args[0]}: not found")
        except subprocess.TimeoutExpired as exc:
            return ExecResult(
                args=args,
                exit_code=124,
                stdout=_to_text(exc.stdout),
                stderr=f"timed out after {self._timeout_s}s",
            )
        result = ExecResult(
            args=args,
            exit_code=proc.returncode,
            stdout=proc.stdout or "",
            stderr=proc.stderr or "",
        )
        if verbose:
            if result.ok and result.stdout.strip():
                logger.info("output: %s", result.stdout.strip()[:_MAX_LOGGED_CHARS])
            elif not result.ok:
                logger.error("failed (%s): %s", result.exit_code, result.detail)
        return result

    def start(self, args: list[str], cwd: Path | str | None = None) -> RunningCommand:
        logger.debug("start: %s", " ".join(args))
        proc = subprocess.Popen(
            args,
            cwd=cwd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
        )
        return RunningCommand(args, proc)

    def which(self, name: str) -> str | None:
        return shutil.which(name)

    def remove_tree(self, path: Path) -> bool:
        """Recursively delete path. Failures are logged, never raised."""
        if not path.exists():
            return True
        errors: list[str] = []

        def _onexc(_func: object, failed: str, exc: BaseException) -> None:
            errors.append(f"{failed}: {exc}")

        shutil.rmtree(path, onexc=_onexc)
        if errors or path.exists():
            logger.warning("failed to remove %s: %s", path, "; ".join(errors[:5]))
            return False
        return True


def _to_text(value: str | bytes | None) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="ignore")
    return value
