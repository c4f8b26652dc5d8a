import logging
import os
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from siteclone.config import get_settings
from siteclone.context import RunContext
from siteclone.models import (
    CONTENT_ELEMENTS,
    Backup,
    ConnectionMode,
    Element,
    Environment,
    SiteInfo,
)
from siteclone.platform.workflow import CompletedWorkflow, Workflow
from siteclone.process import ExecResult

RUN_STARTED = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


@pytest.fixture(autouse=True)
def test_env(tmp_path: Path):
    os.environ["SITECLONE_CLONE_ROOT"] = str(tmp_path / "clones")
    os.environ["APP_ENV"] = "test"
    get_settings.cache_clear()
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    get_settings.cache_clear()
    root.handlers[:] = handlers
    root.setLevel(level)


class FakePlatform:
    """In-memory platform. Every call is appended to `calls`."""

    def __init__(self) -> None:
        self.sites: dict[str, SiteInfo] = {}
        self.environments: dict[str, list[Environment]] = {}
        self.git_commands: dict[tuple[str, str], str] = {}
        self.deployable: dict[tuple[str, str], int] = {}
        self.backups: dict[tuple[str, str, Element], list[Backup]] = {}
        self.missing_urls: set[tuple[str, str, Element]] = set()
        self.import_codes: dict[tuple[str, str, Element], int] = {}
        self.hostnames: dict[tuple[str, str], list[str]] = {}
        self.failing: set[str] = set()
        self.on_deploy: Callable[[str, str], None] | None = None
        self.calls: list[tuple] = []

    # setup helpers
    def add_site(
        self,
        name: str,
        *,
        envs: dict[str, bool] | None = None,
        upstream: str = "drupal8",
        org: str = "acme",
    ) -> SiteInfo:
        site = SiteInfo(id=f"id-{name}", name=name, organization=org, upstream=upstream)
        self.sites[name] = site
        states = envs if envs is not None else {"dev": True, "test": True, "live": True}
        self.environments[name] = [Environment(id=k, initialized=v) for k, v in states.items()]
        return site

    def add_fresh_backups(self, site: str, env: str, *, finished: datetime = RUN_STARTED) -> None:
        for element in CONTENT_ELEMENTS:
            self.backups.setdefault((site, env, element), []).append(
                Backup(site, env, element, finished - timedelta(hours=1), f"{env}_{element.value}.gz")
            )

    def _done(self, kind: str, description: str) -> Workflow:
        return CompletedWorkflow(description, ok=kind not in self.failing, message=f"{kind} failed")

    # PlatformClient
    def get_site(self, name: str) -> SiteInfo | None:
        return self.sites.get(name)

    def site_exists(self, name: str) -> bool:
        return name in self.sites

    def create_site(self, name: str, *, org: str, upstream: str) -> Workflow:
        self.calls.append(("create_site", name, org, upstream))
        if "create_site" not in self.failing:
            self.add_site(name, envs={"dev": True, "test": False, "live": False}, upstream=upstream, org=org)
        return self._done("create_site", f"create {name}")

    def list_environments(self, site: str) -> list[Environment]:
        return list(self.environments.get(site, []))

    def connection_git_command(self, site: str, env: str) -> str:
        return self.git_commands.get((site, env), f"git clone ssh://codeserver/{site}.git {site}")

    def set_connection_mode(self, site: str, env: str, mode: ConnectionMode) -> Workflow:
        self.calls.append(("set_connection_mode", site, env, mode))
        return self._done("set_connection_mode", f"mode {site}.{env}")

    def count_deployable_commits(self, site: str, env: str) -> int:
        self.calls.append(("count_deployable_commits", site, env))
        return self.deployable.get((site, env), 0)

    def list_backups(self, site: str, env: str, element: Element) -> list[Backup]:
        return list(self.backups.get((site, env, element), []))

    def backup_url(self, backup: Backup) -> str | None:
        if (backup.site, backup.environment, backup.element) in self.missing_urls:
            return None
        return f"https://backups.example/{backup.site}/{backup.environment}/{backup.file}"

    def create_backup(self, site: str, env: str, element: Element | None = None) -> Workflow:
        self.calls.append(("create_backup", site, env, element))
        return self._done("create_backup", f"backup {site}.{env}")

    def import_content(self, site: str, env: str, element: Element, url: str) -> int:
        self.calls.append(("import_content", site, env, element, url))
        return self.import_codes.get((site, env, element), 0)

    def clear_cache(self, site: str, env: str) -> Workflow:
        self.calls.append(("clear_cache", site, env))
        return self._done("clear_cache", f"clear cache {site}.{env}")

    def deploy(self, site: str, env: str, note: str) -> Workflow:
        self.calls.append(("deploy", site, env))
        if "deploy" not in self.failing:
            self.environments[site] = [
                Environment(id=item.id, initialized=item.initialized or item.id == env)
                for item in self.environments.get(site, [])
            ]
            if self.on_deploy is not None:
                self.on_deploy(site, env)
        return self._done("deploy", f"deploy {site}.{env}")

    def list_hostnames(self, site: str, env: str) -> list[str]:
        return self.hostnames.get((site, env), [f"{env}-{site}.pantheonsite.io"])

    def called(self, name: str) -> list[tuple]:
        return [call for call in self.calls if call[0] == name]


class FakeExecutor:
    """Records commands and answers git queries without touching a shell."""

    def __init__(self, *, head: str = "abc123", tools: set[str] | None = None) -> None:
        self.head = head
        self.tools = {"git", "terminus"} if tools is None else tools
        self.commands: list[list[str]] = []
        self.removed: list[Path] = []
        self.fail_on: str | None = None

    def run(self, args: list[str], cwd: Path | str | None = None, *, verbose: bool = False) -> ExecResult:
        self.commands.append(list(args))
        joined = " ".join(args)
        if self.fail_on and self.fail_on in joined:
            return ExecResult(args=list(args), exit_code=1, stdout="", stderr="boom")
        stdout = ""
        if args[:2] == ["git", "log"]:
            stdout = self.head
        elif args[:2] == ["git", "rev-list"]:
            stdout = "1"
        return ExecResult(args=list(args), exit_code=0, stdout=stdout, stderr="")

    def which(self, name: str) -> str | None:
        return f"/usr/bin/{name}" if name in self.tools else None

    def remove_tree(self, path: Path) -> bool:
        self.removed.append(path)
        return True

    def git_commands(self) -> list[list[str]]:
        return [cmd for cmd in self.commands if cmd and cmd[0] == "git"]


@pytest.fixture
def platform() -> FakePlatform:
    return FakePlatform()


@pytest.fixture
def executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture
def make_run(tmp_path: Path) -> Callable[..., RunContext]:
    def _make(**overrides) -> RunContext:
        values = {
            "run_id": "run_test",
            "source_site": "src-site",
            "target_site": "dst-site",
            "clone_root": tmp_path / "clones",
            "started_at": RUN_STARTED,
        }
        values.update(overrides)
        return RunContext(**values)

    return _make


@pytest.fixture
def fresh_source(platform: FakePlatform) -> FakePlatform:
    platform.add_site("src-site")
    for env in ("dev", "test", "live"):
        platform.add_fresh_backups("src-site", env)
    return platform

